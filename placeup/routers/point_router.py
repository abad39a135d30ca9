from datetime import datetime
from typing import Any, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from placeup.containers import Container
from placeup.core.auth_middleware import get_acting_context, require_admin
from placeup.models.points import TransactionType
from placeup.schemas.common import BaseResponse
from placeup.schemas.points import PointAdjustRequest, PointTransactionFilter
from placeup.schemas.user import ActingContext
from placeup.services.point_service import PointService

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/balance", response_model=BaseResponse)
@inject
def get_balance(
    user_id: Optional[int] = Query(None, gt=0, description="관리자만 다른 사용자 조회 가능"),
    ctx: ActingContext = Depends(get_acting_context),
    service: PointService = Depends(Provide[Container.services.point_service]),
) -> Any:
    """
    포인트 잔액 조회

    잔액 행이 없으면 0으로 초기화 후 반환합니다.
    actual_spent는 승인 완료된 리뷰 금액의 합계입니다.
    """
    balance = service.get_balance(ctx, user_id)
    return BaseResponse(success=True, data={"balance": balance.model_dump()})


@router.get("/transactions", response_model=BaseResponse)
@inject
def list_transactions(
    user_id: Optional[int] = Query(None, gt=0),
    transaction_type: Optional[TransactionType] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: PointService = Depends(Provide[Container.services.point_service]),
) -> Any:
    """거래 내역 조회 (최신순). 관리자가 아니면 본인 거래만 조회됩니다."""
    filters = PointTransactionFilter(
        user_id=user_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    result = service.list_transactions(ctx, filters)
    return BaseResponse(
        success=True,
        data=result.model_dump(),
        meta={"limit": limit, "offset": offset, "total_count": result.total_count},
    )


@router.post("/adjust", response_model=BaseResponse)
@inject
def adjust_points(
    payload: PointAdjustRequest,
    admin: ActingContext = Depends(require_admin),
    service: PointService = Depends(Provide[Container.services.point_service]),
) -> Any:
    """관리자 수동 조정 (양수: admin_add, 음수: admin_subtract)"""
    result = service.adjust_balance(
        admin.actor_id, payload.user_id, payload.amount, payload.description
    )
    return BaseResponse(
        success=True,
        message=f"Adjusted {payload.amount} points for user {payload.user_id}",
        data=result.model_dump(),
    )
