from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from placeup.models.base import BaseModel, BigIntPK


class PointStatus(str, Enum):
    """포인트 축 상태 - 원장 버킷 위치를 결정"""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"  # 자동 환불 배치로 종료


class ReviewStatus(str, Enum):
    """게시 축 상태 - 승인 이후의 리뷰 게시 수명주기 (draft는 NULL)"""

    AWAITING_POST = "awaiting_post"
    POSTED = "posted"
    DELETED_BY_SYSTEM = "deleted_by_system"
    DELETED_BY_REQUEST = "deleted_by_request"
    EXPIRED = "expired"


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class PlaceReceipt(BaseModel):
    """
    영수증 리뷰 작업 단위

    point_amount는 최초 제출 시점의 단가 스냅샷이며 이후 단가가 바뀌어도
    다시 계산하지 않는다. 임시 저장(draft) 상태에서는 NULL.
    """

    __tablename__ = "place_receipts"
    __table_args__ = (
        Index("idx_place_receipts_point_status_submitted", "point_status", "submitted_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    place_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("places.id"), nullable=False, index=True
    )
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    auto_generate_image: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=SubmissionStatus.DRAFT.value, nullable=False
    )

    # 포인트 축
    point_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    point_status: Mapped[str] = mapped_column(
        String(20), default=PointStatus.DRAFT.value, nullable=False
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    rejected_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 게시 축
    review_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    review_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    review_url_registered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_check_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    check_fail_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deleted_detected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # 삭제 요청 흐름
    delete_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delete_request_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delete_rejected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delete_rejected_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delete_rejected_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def __repr__(self):
        return (
            f"<PlaceReceipt(id={self.id}, place_id={self.place_id}, "
            f"point_status={self.point_status}, review_status={self.review_status})>"
        )
