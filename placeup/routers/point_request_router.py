from typing import Any, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from placeup.containers import Container
from placeup.core.auth_middleware import get_acting_context, require_admin
from placeup.models.points import PointRequestStatus
from placeup.schemas.common import BaseResponse
from placeup.schemas.point_requests import PointRequestCreate, PointRequestReview
from placeup.schemas.user import ActingContext
from placeup.services.point_request_service import PointRequestService

router = APIRouter(prefix="/point-requests", tags=["point-requests"])


@router.post("", response_model=BaseResponse)
@inject
def create_point_request(
    payload: PointRequestCreate,
    ctx: ActingContext = Depends(get_acting_context),
    service: PointRequestService = Depends(
        Provide[Container.services.point_request_service]
    ),
) -> Any:
    """포인트 충전 요청 (총판/개발자)"""
    request = service.create_request(ctx, payload.requested_amount, payload.purpose)
    return BaseResponse(
        success=True,
        message="Point request created",
        data={"request": request.model_dump()},
    )


@router.get("", response_model=BaseResponse)
@inject
def list_point_requests(
    status: Optional[PointRequestStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: PointRequestService = Depends(
        Provide[Container.services.point_request_service]
    ),
) -> Any:
    result = service.list_requests(ctx, status=status, limit=limit, offset=offset)
    return BaseResponse(success=True, data=result.model_dump())


@router.get("/{request_id}", response_model=BaseResponse)
@inject
def get_point_request(
    request_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: PointRequestService = Depends(
        Provide[Container.services.point_request_service]
    ),
) -> Any:
    request = service.get_request(ctx, request_id)
    return BaseResponse(success=True, data={"request": request.model_dump()})


@router.patch("/{request_id}/review", response_model=BaseResponse)
@inject
def review_point_request(
    payload: PointRequestReview,
    request_id: int = Path(..., gt=0),
    admin: ActingContext = Depends(require_admin),
    service: PointRequestService = Depends(
        Provide[Container.services.point_request_service]
    ),
) -> Any:
    """
    충전 요청 승인/거절

    승인 시 같은 트랜잭션에서 요청자에게 earn 거래로 포인트를 지급합니다.
    """
    request = service.review_request(
        admin.actor_id, request_id, payload.status, payload.review_notes
    )
    return BaseResponse(
        success=True,
        message=f"Point request {payload.status}",
        data={"request": request.model_dump()},
    )
