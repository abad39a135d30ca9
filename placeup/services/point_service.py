import logging
from typing import Optional

from sqlalchemy.orm import Session

from placeup.core.exceptions import (
    AuthorizationError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
)
from placeup.database.session import transaction
from placeup.models.points import BalanceBucket, PointTransaction, TransactionType
from placeup.repositories.points_repository import PointsRepository
from placeup.repositories.receipt_repository import ReceiptRepository
from placeup.repositories.user_repository import UserRepository
from placeup.schemas.points import (
    PointAdjustResponse,
    PointBalanceResponse,
    PointTransactionFilter,
    PointTransactionListResponse,
)
from placeup.schemas.user import ActingContext

logger = logging.getLogger(__name__)


class PointService:
    """
    포인트 원장 서비스

    hold / release / settle / adjust / earn 원장 연산은 호출자가 연
    트랜잭션(transaction(db)) 안에서 실행된다. 각 연산은
    1) 잔액 행 잠금 조회 2) 조건부 UPDATE 3) 거래 원장 INSERT 를 수행하며
    어느 단계든 실패하면 예외를 던져 호출자의 트랜잭션 전체가 롤백된다.
    """

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.receipt_repo = ReceiptRepository(db)
        self.user_repo = UserRepository(db)

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(
                message="Amount must be greater than zero", details={"amount": amount}
            )

    # ------------------------------------------------------------------
    # 원장 연산 (호출자가 트랜잭션 제공)
    # ------------------------------------------------------------------

    def ensure_initialized(self, user_id: int) -> PointBalanceResponse:
        balance = self.points_repo.ensure_initialized(user_id)
        return PointBalanceResponse.model_validate(balance)

    def debit_available_credit_pending(
        self,
        user_id: int,
        amount: int,
        description: str,
        related_work_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> PointTransaction:
        """available에서 amount를 빼 pending으로 보류 (리뷰 제출/재제출)"""
        self._require_positive(amount)
        balance = self.points_repo.lock_balance(user_id)
        before = balance.available_points

        if before < amount:
            raise InsufficientFundsError(
                message="Insufficient available points",
                details={"required": amount, "available": before},
            )

        updated = self.points_repo.apply_delta(
            user_id, available_delta=-amount, pending_delta=amount
        )
        if updated != 1:
            raise InsufficientFundsError(
                message="Insufficient available points",
                details={"required": amount, "available": before},
            )

        entry = self.points_repo.add_transaction(
            user_id=user_id,
            transaction_type=TransactionType.SPEND.value,
            amount=-amount,
            balance_before=before,
            balance_after=before - amount,
            balance_bucket=BalanceBucket.AVAILABLE.value,
            description=description,
            related_work_id=related_work_id,
            processed_by=actor_id,
        )
        logger.info(
            f"Held {amount} points for user {user_id} (work={related_work_id}, available {before} -> {before - amount})"
        )
        return entry

    def credit_available_from_pending(
        self,
        user_id: int,
        amount: int,
        description: str,
        related_work_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> PointTransaction:
        """pending에서 amount를 available로 반환 (거절/취소/자동 환불)"""
        self._require_positive(amount)
        balance = self.points_repo.lock_balance(user_id)
        pending_before = balance.pending_points
        before = balance.available_points

        if pending_before < amount:
            logger.error(
                f"Pending underflow on refund for user {user_id}: pending={pending_before}, amount={amount}, work={related_work_id}"
            )
            raise InvariantViolationError(
                message="Pending points underflow on refund",
                details={
                    "user_id": user_id,
                    "pending_points": pending_before,
                    "amount": amount,
                    "related_work_id": related_work_id,
                },
            )

        updated = self.points_repo.apply_delta(
            user_id, available_delta=amount, pending_delta=-amount
        )
        if updated != 1:
            raise InvariantViolationError(
                message="Pending points underflow on refund",
                details={"user_id": user_id, "amount": amount},
            )

        entry = self.points_repo.add_transaction(
            user_id=user_id,
            transaction_type=TransactionType.REFUND.value,
            amount=amount,
            balance_before=before,
            balance_after=before + amount,
            balance_bucket=BalanceBucket.AVAILABLE.value,
            description=description,
            related_work_id=related_work_id,
            processed_by=actor_id,
        )
        logger.info(
            f"Released {amount} points for user {user_id} (work={related_work_id}, available {before} -> {before + amount})"
        )
        return entry

    def settle_pending_as_spent(
        self,
        user_id: int,
        amount: int,
        description: str,
        related_work_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> PointTransaction:
        """
        pending에서 amount를 확정 사용 처리 (승인)

        available은 변하지 않으므로 원장 행은 pending 버킷 기준으로 기록한다.
        """
        self._require_positive(amount)
        balance = self.points_repo.lock_balance(user_id)
        pending_before = balance.pending_points

        if pending_before < amount:
            logger.error(
                f"Pending underflow on settle for user {user_id}: pending={pending_before}, amount={amount}, work={related_work_id}"
            )
            raise InvariantViolationError(
                message="Pending points underflow on approval",
                details={
                    "user_id": user_id,
                    "pending_points": pending_before,
                    "amount": amount,
                    "related_work_id": related_work_id,
                },
            )

        updated = self.points_repo.apply_delta(
            user_id, pending_delta=-amount, spent_delta=amount
        )
        if updated != 1:
            raise InvariantViolationError(
                message="Pending points underflow on approval",
                details={"user_id": user_id, "amount": amount},
            )

        entry = self.points_repo.add_transaction(
            user_id=user_id,
            transaction_type=TransactionType.SPEND.value,
            amount=-amount,
            balance_before=pending_before,
            balance_after=pending_before - amount,
            balance_bucket=BalanceBucket.PENDING.value,
            description=description,
            related_work_id=related_work_id,
            processed_by=actor_id,
        )
        logger.info(
            f"Settled {amount} points for user {user_id} (work={related_work_id}, pending {pending_before} -> {pending_before - amount})"
        )
        return entry

    def adjust(
        self, user_id: int, amount: int, description: str, actor_id: int
    ) -> PointTransaction:
        """관리자 수동 조정 - 양수는 admin_add, 음수는 admin_subtract"""
        if amount == 0:
            raise InvalidAmountError(
                message="Adjustment amount must not be zero", details={"amount": 0}
            )
        if not description or not description.strip():
            raise InvalidInputError(message="Description is required")

        balance = self.points_repo.lock_balance(user_id)
        before = balance.available_points

        if amount > 0:
            transaction_type = TransactionType.ADMIN_ADD
            updated = self.points_repo.apply_delta(
                user_id, available_delta=amount, earned_delta=amount
            )
        else:
            transaction_type = TransactionType.ADMIN_SUBTRACT
            if before < -amount:
                raise InsufficientFundsError(
                    message="Insufficient available points",
                    details={"required": -amount, "available": before},
                )
            updated = self.points_repo.apply_delta(user_id, available_delta=amount)

        if updated != 1:
            raise InsufficientFundsError(
                message="Insufficient available points",
                details={"required": abs(amount), "available": before},
            )

        entry = self.points_repo.add_transaction(
            user_id=user_id,
            transaction_type=transaction_type.value,
            amount=amount,
            balance_before=before,
            balance_after=before + amount,
            balance_bucket=BalanceBucket.AVAILABLE.value,
            description=description.strip(),
            processed_by=actor_id,
        )
        logger.info(
            f"Admin {actor_id} adjusted user {user_id} by {amount} ({transaction_type.value}), available {before} -> {before + amount}"
        )
        return entry

    def earn(
        self,
        user_id: int,
        amount: int,
        description: str,
        related_request_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> PointTransaction:
        """충전 요청 승인 등으로 available 적립"""
        self._require_positive(amount)
        balance = self.points_repo.lock_balance(user_id)
        before = balance.available_points

        updated = self.points_repo.apply_delta(
            user_id, available_delta=amount, earned_delta=amount
        )
        if updated != 1:
            raise InvariantViolationError(
                message="Balance row disappeared during update",
                details={"user_id": user_id},
            )

        entry = self.points_repo.add_transaction(
            user_id=user_id,
            transaction_type=TransactionType.EARN.value,
            amount=amount,
            balance_before=before,
            balance_after=before + amount,
            balance_bucket=BalanceBucket.AVAILABLE.value,
            description=description,
            related_request_id=related_request_id,
            processed_by=actor_id,
        )
        logger.info(
            f"Credited {amount} points to user {user_id} (request={related_request_id}, available {before} -> {before + amount})"
        )
        return entry

    # ------------------------------------------------------------------
    # 공개 연산 (자체 트랜잭션)
    # ------------------------------------------------------------------

    def get_balance(
        self, ctx: ActingContext, user_id: Optional[int] = None
    ) -> PointBalanceResponse:
        """잔액 조회 - 행이 없으면 0으로 생성. 다른 사용자 조회는 관리자만 가능"""
        target_id = user_id if user_id is not None else ctx.user_id
        if target_id != ctx.user_id and not ctx.is_admin:
            raise AuthorizationError(message="Cannot view another user's balance")

        with transaction(self.db):
            self._require_user(target_id)
            balance = self.points_repo.ensure_initialized(target_id)
            response = PointBalanceResponse.model_validate(balance)
            response.actual_spent = self.receipt_repo.sum_approved_amount(target_id)
        return response

    def list_transactions(
        self, ctx: ActingContext, filters: PointTransactionFilter
    ) -> PointTransactionListResponse:
        if not ctx.is_admin:
            if filters.user_id is not None and filters.user_id != ctx.user_id:
                raise AuthorizationError(
                    message="Cannot view another user's transactions"
                )
            filters = filters.model_copy(update={"user_id": ctx.user_id})

        with transaction(self.db):
            rows, total_count = self.points_repo.list_transactions(filters)
        return PointTransactionListResponse(
            transactions=rows,
            total_count=total_count,
            limit=filters.limit,
            offset=filters.offset,
        )

    def adjust_balance(
        self, admin_id: int, user_id: int, amount: int, description: str
    ) -> PointAdjustResponse:
        with transaction(self.db):
            self._require_user(user_id)
            entry = self.adjust(user_id, amount, description, actor_id=admin_id)
            response = PointAdjustResponse(
                transaction_id=entry.id, new_balance=entry.balance_after
            )
        return response

    def _require_user(self, user_id: int) -> None:
        if self.user_repo.get_model(user_id) is None:
            raise NotFoundError(message="User not found", details={"user_id": user_id})
