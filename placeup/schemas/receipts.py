from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from placeup.models.receipt import PointStatus, ReviewStatus


class ReviewItem(BaseModel):
    """제출할 리뷰 한 건"""

    review_text: str = Field(..., description="리뷰 본문")
    images: List[str] = Field(default_factory=list, description="이미지 URL 목록")
    auto_generate_image: bool = False


class SubmitReviewsRequest(BaseModel):
    items: List[ReviewItem]
    # False면 임시 저장(draft), 포인트 변동 없음
    commit: bool = True


class ReviewResponse(BaseModel):
    id: int
    place_id: int
    review_text: str
    images: List[str] = Field(default_factory=list)
    auto_generate_image: bool = False
    status: str
    point_amount: Optional[int] = None
    point_status: PointStatus
    review_status: Optional[ReviewStatus] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_reason: Optional[str] = None
    review_url: Optional[str] = None
    review_url_registered_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    last_check_status: Optional[str] = None
    check_fail_count: int = 0
    deleted_detected_at: Optional[datetime] = None
    delete_requested_at: Optional[datetime] = None
    delete_request_reason: Optional[str] = None
    delete_rejected_at: Optional[datetime] = None
    delete_rejected_reason: Optional[str] = None
    delete_rejected_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmitReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    points_charged: int


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    total_count: int


class RejectReviewRequest(BaseModel):
    reason: Optional[str] = None


class RegisterUrlRequest(BaseModel):
    url: str


class DeletionRequest(BaseModel):
    reason: str


class RejectDeletionRequest(BaseModel):
    reason: str


class ReviewStatusUpdateRequest(BaseModel):
    """관리자 게시 상태 직접 변경"""

    review_status: ReviewStatus
    review_url_registered_at: Optional[datetime] = None
    deleted_detected_at: Optional[datetime] = None


class UpdateDraftRequest(BaseModel):
    """임시 저장 리뷰 수정 - 보낸 필드만 변경"""

    review_text: Optional[str] = None
    images: Optional[List[str]] = None
    auto_generate_image: Optional[bool] = None
