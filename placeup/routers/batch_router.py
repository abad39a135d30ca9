from typing import Any, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from placeup.containers import Container
from placeup.core.auth_middleware import require_admin_or_scheduler
from placeup.schemas.common import BaseResponse
from placeup.schemas.user import ActingContext
from placeup.services.auto_refund_service import AutoRefundService

router = APIRouter(
    prefix="/batch",
    tags=["batch"],
)


@router.post("/auto-refund", response_model=BaseResponse)
@inject
def run_auto_refund(
    caller: Optional[ActingContext] = Depends(require_admin_or_scheduler),
    service: AutoRefundService = Depends(Provide[Container.services.auto_refund_service]),
) -> Any:
    """
    자동 환불 배치 실행

    스케줄러는 AUTH_TOKEN 베어러로, 관리자는 자신의 토큰으로 호출합니다.
    auto_refund_days 설정이 없으면 CONFIG_MISSING 으로 실패합니다.
    """
    result = service.run()
    triggered_by = f"admin {caller.actor_id}" if caller else "scheduler"
    return BaseResponse(
        success=True,
        message=f"Auto refund finished ({triggered_by})",
        data=result.model_dump(),
    )
