"""
포인트 리포지토리 - 잔액 행과 거래 원장에 대한 데이터베이스 접근

핵심 특징:
- 잔액 행은 SELECT ... FOR UPDATE로 잠근 뒤 변경합니다
- 변경은 "WHERE available_points >= :amount" 형태의 조건부 UPDATE로 수행하며
  영향받은 행 수가 1이 아니면 호출자가 실패로 처리합니다
- 원장(point_transactions)은 INSERT만 수행합니다
"""

from typing import List, Optional, Tuple

from sqlalchemy import and_, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from placeup.core.exceptions import InvariantViolationError
from placeup.models.points import PointBalance, PointTransaction
from placeup.repositories.base import BaseRepository
from placeup.schemas.points import (
    PointBalanceResponse,
    PointTransactionFilter,
    PointTransactionResponse,
)


class PointsRepository(BaseRepository[PointBalance, PointBalanceResponse]):
    def __init__(self, db: Session):
        super().__init__(PointBalance, PointBalanceResponse, db)

    def get_balance(self, user_id: int, for_update: bool = False) -> Optional[PointBalance]:
        query = self.db.query(PointBalance).filter(PointBalance.user_id == user_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def ensure_initialized(self, user_id: int) -> PointBalance:
        """
        잔액 행이 없으면 0으로 생성 (멱등)

        동시에 두 요청이 최초 생성을 시도하면 한쪽은 PK 충돌이 나므로
        SAVEPOINT 안에서 INSERT하고 충돌 시 기존 행을 다시 읽는다.
        """
        balance = self.get_balance(user_id)
        if balance is not None:
            return balance

        try:
            with self.db.begin_nested():
                balance = PointBalance(
                    user_id=user_id,
                    available_points=0,
                    pending_points=0,
                    total_earned=0,
                    total_spent=0,
                )
                self.db.add(balance)
        except IntegrityError:
            balance = self.get_balance(user_id)
            if balance is None:
                raise
        return balance

    def lock_balance(self, user_id: int) -> PointBalance:
        """잔액 행을 생성(필요 시)한 뒤 행 잠금으로 다시 읽는다"""
        self.ensure_initialized(user_id)
        balance = self.get_balance(user_id, for_update=True)
        if balance is None:
            raise InvariantViolationError(
                message="Point balance row disappeared after initialization",
                details={"user_id": user_id},
            )
        return balance

    def apply_delta(
        self,
        user_id: int,
        available_delta: int = 0,
        pending_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
    ) -> int:
        """
        버킷 변동을 조건부 UPDATE 한 번으로 적용

        감소하는 버킷에는 "현재 값 >= 감소량" 조건을 걸어 음수 잔액이 되는 갱신은
        0행으로 끝나게 한다. 반환값은 영향받은 행 수.
        """
        conditions = [PointBalance.user_id == user_id]
        if available_delta < 0:
            conditions.append(PointBalance.available_points >= -available_delta)
        if pending_delta < 0:
            conditions.append(PointBalance.pending_points >= -pending_delta)

        values = {}
        if available_delta:
            values[PointBalance.available_points] = (
                PointBalance.available_points + available_delta
            )
        if pending_delta:
            values[PointBalance.pending_points] = (
                PointBalance.pending_points + pending_delta
            )
        if earned_delta:
            values[PointBalance.total_earned] = PointBalance.total_earned + earned_delta
        if spent_delta:
            values[PointBalance.total_spent] = PointBalance.total_spent + spent_delta
        values[PointBalance.updated_at] = func.now()

        return (
            self.db.query(PointBalance)
            .filter(and_(*conditions))
            .update(values, synchronize_session=False)
        )

    def add_transaction(
        self,
        user_id: int,
        transaction_type: str,
        amount: int,
        balance_before: int,
        balance_after: int,
        balance_bucket: str,
        description: str,
        related_work_id: Optional[int] = None,
        related_request_id: Optional[int] = None,
        processed_by: Optional[int] = None,
    ) -> PointTransaction:
        entry = PointTransaction(
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            balance_bucket=balance_bucket,
            description=description,
            related_work_id=related_work_id,
            related_request_id=related_request_id,
            processed_by=processed_by,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_transactions(
        self, filters: PointTransactionFilter
    ) -> Tuple[List[PointTransactionResponse], int]:
        """거래 내역 조회 - 필터는 모두 타입이 정해진 SQLAlchemy 조건으로 적용"""
        conditions = []
        if filters.user_id is not None:
            conditions.append(PointTransaction.user_id == filters.user_id)
        if filters.transaction_type is not None:
            conditions.append(
                PointTransaction.transaction_type == filters.transaction_type.value
            )
        if filters.start_date is not None:
            conditions.append(PointTransaction.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(PointTransaction.created_at <= filters.end_date)

        query = self.db.query(PointTransaction)
        if conditions:
            query = query.filter(and_(*conditions))

        total_count = query.count()
        rows = (
            query.order_by(desc(PointTransaction.id))
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return [PointTransactionResponse.model_validate(r) for r in rows], total_count
