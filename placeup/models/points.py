"""
포인트 시스템 데이터 모델

사용자별 3개 버킷(available / pending / spent) 잔액과, 모든 잔액 변동을 기록하는
추가 전용(append-only) 거래 원장, 그리고 총판의 포인트 충전 요청을 정의합니다.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from placeup.models.base import BaseModel, BigIntPK


class TransactionType(str, Enum):
    """포인트 거래 유형"""

    SPEND = "spend"  # 리뷰 제출(보류) / 승인(확정 사용)
    REFUND = "refund"  # 거절, 취소, 자동 환불
    EARN = "earn"  # 충전 요청 승인
    ADMIN_ADD = "admin_add"  # 관리자 수동 추가
    ADMIN_SUBTRACT = "admin_subtract"  # 관리자 수동 차감


class BalanceBucket(str, Enum):
    """거래 행이 추적하는 잔액 버킷"""

    AVAILABLE = "available"
    PENDING = "pending"


class PointRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PointBalance(BaseModel):
    """
    사용자 포인트 잔액 (사용자당 1행)

    - available_points: 즉시 사용 가능한 포인트
    - pending_points: 승인 대기 중인 작업에 묶인 포인트
    - total_earned / total_spent: 누적 카운터 (감소하지 않음)

    잔액 변경은 반드시 PointsRepository를 통해서만 이루어지며,
    같은 트랜잭션 안에서 PointTransaction 행이 함께 기록됩니다.
    """

    __tablename__ = "point_balances"
    __table_args__ = (
        CheckConstraint("available_points >= 0", name="ck_point_balances_available"),
        CheckConstraint("pending_points >= 0", name="ck_point_balances_pending"),
        CheckConstraint("total_earned >= 0", name="ck_point_balances_earned"),
        CheckConstraint("total_spent >= 0", name="ck_point_balances_spent"),
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), primary_key=True, autoincrement=False
    )
    available_points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    pending_points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_earned: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_spent: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self):
        return (
            f"<PointBalance(user_id={self.user_id}, available={self.available_points}, "
            f"pending={self.pending_points})>"
        )


class PointTransaction(BaseModel):
    """
    포인트 거래 원장 - 한번 기록된 행은 수정/삭제하지 않음

    amount는 부호가 있는 변동량이며, balance_bucket이 가리키는 버킷에 대해
    balance_after = balance_before + amount 가 항상 성립합니다.
    """

    __tablename__ = "point_transactions"
    __table_args__ = (
        CheckConstraint(
            "balance_after = balance_before + amount",
            name="ck_point_transactions_balance_math",
        ),
        Index("idx_point_transactions_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_before: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_bucket: Mapped[str] = mapped_column(
        String(20), default=BalanceBucket.AVAILABLE.value, nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # 거래를 발생시킨 리뷰 / 충전 요청
    related_work_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    related_request_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # 거래를 처리한 관리자 (사용자 본인 거래면 NULL)
    processed_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)


class PointRequest(BaseModel):
    """총판의 포인트 충전 요청 - 관리자 승인 시 earn 거래로 지급"""

    __tablename__ = "point_requests"
    __table_args__ = (
        CheckConstraint("requested_amount > 0", name="ck_point_requests_amount"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    requester_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )
    requested_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PointRequestStatus.PENDING.value, nullable=False
    )
    reviewed_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
