from typing import List

from pydantic import BaseModel, Field


class AutoRefundResult(BaseModel):
    """자동 환불 배치 실행 결과"""

    processed: int = 0
    refunded: int = 0
    failed: int = 0
    # 조회 이후 다른 트랜잭션이 먼저 상태를 바꾼 건
    skipped: int = 0
    failed_ids: List[int] = Field(default_factory=list)
    auto_refund_days: int
