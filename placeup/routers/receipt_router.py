"""
영수증 리뷰 API 라우터

사용자용:
- POST /receipts/place/{place_id}: 리뷰 N건 제출 (commit=false면 임시 저장)
- PUT /receipts/{id}: 임시 저장 리뷰 수정
- POST /receipts/{id}/submit: 임시 저장 리뷰 제출
- POST /receipts/{id}/cancel, /resubmit: 취소(환불) / 재제출
- POST /receipts/{id}/url, /check-url: 게시 URL 등록 / 확인
- POST /receipts/{id}/request-delete: 삭제 요청

관리자용:
- POST /receipts/{id}/approve, /reject: 승인(확정 사용) / 거절(환불)
- POST /receipts/{id}/approve-delete, /reject-delete: 삭제 요청 처리
- PUT /receipts/{id}/review-status: 게시 상태 직접 변경
- GET /receipts/admin/all, /admin/pending, /admin/delete-requests
"""

from typing import Any, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from placeup.containers import Container
from placeup.core.auth_middleware import get_acting_context, require_admin
from placeup.models.receipt import PointStatus
from placeup.schemas.common import BaseResponse
from placeup.schemas.receipts import (
    DeletionRequest,
    RegisterUrlRequest,
    RejectDeletionRequest,
    RejectReviewRequest,
    ReviewStatusUpdateRequest,
    SubmitReviewsRequest,
    UpdateDraftRequest,
)
from placeup.schemas.user import ActingContext
from placeup.services.receipt_service import ReceiptService

router = APIRouter(prefix="/receipts", tags=["receipts"])


def _review_response(review, message: str) -> BaseResponse:
    return BaseResponse(success=True, message=message, data={"review": review.model_dump()})


@router.get("/admin/all", response_model=BaseResponse)
@inject
def list_all_reviews(
    point_status: Optional[PointStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    """전체 리뷰 목록 (최근 생성 순)"""
    result = service.list_all_reviews(point_status=point_status, limit=limit, offset=offset)
    return BaseResponse(success=True, data=result.model_dump())


@router.get("/admin/pending", response_model=BaseResponse)
@inject
def list_pending_reviews(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    """승인 대기 리뷰 목록 (제출 오래된 순)"""
    result = service.list_pending_reviews(limit=limit, offset=offset)
    return BaseResponse(success=True, data=result.model_dump())


@router.get("/admin/delete-requests", response_model=BaseResponse)
@inject
def list_delete_requests(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    result = service.list_delete_requests(limit=limit, offset=offset)
    return BaseResponse(success=True, data=result.model_dump())


@router.get("/place/{place_id}", response_model=BaseResponse)
@inject
def list_place_reviews(
    place_id: int = Path(..., gt=0),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    result = service.list_place_reviews(ctx, place_id, limit=limit, offset=offset)
    return BaseResponse(success=True, data=result.model_dump())


@router.post("/place/{place_id}", response_model=BaseResponse)
@inject
def submit_reviews(
    payload: SubmitReviewsRequest,
    place_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    """
    리뷰 제출

    commit=true: 현재 단가 * 건수만큼 available -> pending 보류 후 pending 상태로 생성
    commit=false: draft로 저장 (포인트 변동 없음)
    """
    result = service.submit_reviews(
        ctx.user_id, place_id, payload.items, commit=payload.commit, actor_id=ctx.actor_id
    )
    count = len(result.reviews)
    message = (
        f"{count} reviews submitted ({result.points_charged} points held)"
        if payload.commit
        else f"{count} reviews saved as draft"
    )
    return BaseResponse(success=True, message=message, data=result.model_dump())


@router.get("/{review_id}", response_model=BaseResponse)
@inject
def get_review(
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.get_review(ctx, review_id)
    return BaseResponse(success=True, data={"review": review.model_dump()})


@router.put("/{review_id}", response_model=BaseResponse)
@inject
def update_draft(
    payload: UpdateDraftRequest,
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.update_draft(
        ctx.user_id,
        review_id,
        review_text=payload.review_text,
        images=payload.images,
        auto_generate_image=payload.auto_generate_image,
    )
    return _review_response(review, "Draft updated")


@router.post("/{review_id}/submit", response_model=BaseResponse)
@inject
def submit_draft(
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.submit_draft(ctx.user_id, review_id, actor_id=ctx.actor_id)
    return _review_response(review, "Review submitted")


@router.post("/{review_id}/approve", response_model=BaseResponse)
@inject
def approve_review(
    review_id: int = Path(..., gt=0),
    admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.approve_review(admin.actor_id, review_id)
    return _review_response(review, "Review approved")


@router.post("/{review_id}/reject", response_model=BaseResponse)
@inject
def reject_review(
    review_id: int = Path(..., gt=0),
    payload: Optional[RejectReviewRequest] = None,
    admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    """거절 사유는 선택 - 보류된 포인트는 available로 환불"""
    reason = payload.reason if payload else None
    review = service.reject_review(admin.actor_id, review_id, reason=reason)
    return _review_response(review, "Review rejected, points refunded")


@router.post("/{review_id}/cancel", response_model=BaseResponse)
@inject
def cancel_review(
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.cancel_review(ctx.user_id, review_id, actor_id=ctx.actor_id)
    return _review_response(review, "Review cancelled, points refunded")


@router.post("/{review_id}/resubmit", response_model=BaseResponse)
@inject
def resubmit_review(
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.resubmit_review(ctx.user_id, review_id, actor_id=ctx.actor_id)
    return _review_response(review, "Review resubmitted")


@router.post("/{review_id}/url", response_model=BaseResponse)
@inject
def register_review_url(
    payload: RegisterUrlRequest,
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.register_review_url(ctx.user_id, review_id, payload.url)
    return _review_response(review, "Review URL registered")


@router.post("/{review_id}/check-url", response_model=BaseResponse)
@inject
def check_review_url(
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.check_review_url(ctx, review_id)
    return _review_response(review, "Review URL checked")


@router.post("/{review_id}/request-delete", response_model=BaseResponse)
@inject
def request_deletion(
    payload: DeletionRequest,
    review_id: int = Path(..., gt=0),
    ctx: ActingContext = Depends(get_acting_context),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.request_deletion(ctx.user_id, review_id, payload.reason)
    return _review_response(review, "Deletion requested")


@router.post("/{review_id}/approve-delete", response_model=BaseResponse)
@inject
def approve_deletion(
    review_id: int = Path(..., gt=0),
    admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.approve_deletion(admin.actor_id, review_id)
    return _review_response(review, "Deletion approved")


@router.post("/{review_id}/reject-delete", response_model=BaseResponse)
@inject
def reject_deletion(
    payload: RejectDeletionRequest,
    review_id: int = Path(..., gt=0),
    admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.reject_deletion(admin.actor_id, review_id, payload.reason)
    return _review_response(review, "Deletion rejected")


@router.put("/{review_id}/review-status", response_model=BaseResponse)
@inject
def set_review_status(
    payload: ReviewStatusUpdateRequest,
    review_id: int = Path(..., gt=0),
    admin: ActingContext = Depends(require_admin),
    service: ReceiptService = Depends(Provide[Container.services.receipt_service]),
) -> Any:
    review = service.set_review_status(
        admin.actor_id,
        review_id,
        payload.review_status,
        review_url_registered_at=payload.review_url_registered_at,
        deleted_detected_at=payload.deleted_detected_at,
    )
    return _review_response(review, "Review status updated")
