from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from placeup.models.points import TransactionType


class PointBalanceResponse(BaseModel):
    """포인트 잔액 응답"""

    user_id: int = Field(..., description="사용자 ID")
    available_points: int = Field(..., description="사용 가능 포인트")
    pending_points: int = Field(..., description="승인 대기 포인트")
    total_earned: int = Field(..., description="누적 적립 포인트")
    total_spent: int = Field(..., description="누적 사용 포인트")
    actual_spent: int = Field(0, description="승인 완료된 리뷰 금액 합계")

    class Config:
        from_attributes = True


class PointTransactionResponse(BaseModel):
    """포인트 거래 원장 항목"""

    id: int
    user_id: int
    transaction_type: TransactionType
    amount: int
    balance_before: int
    balance_after: int
    balance_bucket: str
    description: str
    related_work_id: Optional[int] = None
    related_request_id: Optional[int] = None
    processed_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointTransactionFilter(BaseModel):
    """거래 내역 조회 조건 - 모든 조건은 파라미터 바인딩으로만 적용"""

    user_id: Optional[int] = None
    transaction_type: Optional[TransactionType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)


class PointTransactionListResponse(BaseModel):
    transactions: List[PointTransactionResponse]
    total_count: int
    limit: int
    offset: int


class PointAdjustRequest(BaseModel):
    """관리자 포인트 조정 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    amount: int = Field(..., description="조정할 포인트 (양수: 추가, 음수: 차감)")
    description: str = Field(..., min_length=1, max_length=255, description="조정 사유")


class PointAdjustResponse(BaseModel):
    transaction_id: int
    new_balance: int
