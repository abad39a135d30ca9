import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from placeup.config import Settings
from placeup.core.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    NotOwnerError,
    NotPendingError,
)
from placeup.core.state_machine import (
    DeletionTransition,
    LedgerEffect,
    POINT_TRANSITIONS,
    PointTransition,
    ReviewAction,
    ensure_deletion_transition,
    ensure_editable,
    ensure_point_transition,
    ensure_review_transition,
)
from placeup.database.session import transaction
from placeup.models.receipt import (
    PlaceReceipt,
    PointStatus,
    ReviewStatus,
    SubmissionStatus,
)
from placeup.repositories.receipt_repository import ReceiptRepository
from placeup.repositories.user_repository import UserRepository
from placeup.schemas.receipts import (
    ReviewItem,
    ReviewListResponse,
    ReviewResponse,
    SubmitReviewsResponse,
)
from placeup.schemas.user import ActingContext
from placeup.services.point_service import PointService
from placeup.services.pricing_service import PricingService
from placeup.services.url_checker import ReviewUrlChecker, StubUrlChecker
from placeup.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


class ReceiptService:
    """
    영수증 리뷰 작업 상태 머신

    모든 변경 연산은 하나의 transaction(db) 블록 안에서
    1) 리뷰 행 잠금 조회 2) 전이 테이블로 전이 가능 여부 확인
    3) 예상 point_status를 조건으로 건 UPDATE 4) 원장 이동
    순서로 실행된다. 조건부 UPDATE가 0행이면 다른 요청이 먼저 상태를 바꾼 것이므로
    원장은 건드리지 않고 실패한다.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings,
        url_checker: Optional[ReviewUrlChecker] = None,
    ):
        self.db = db
        self.settings = settings
        self.url_checker = url_checker or StubUrlChecker()
        self.receipt_repo = ReceiptRepository(db)
        self.user_repo = UserRepository(db)
        self.point_service = PointService(db)
        self.pricing_service = PricingService(db)

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _load(self, review_id: int, for_update: bool = True) -> Tuple[PlaceReceipt, int]:
        found = self.receipt_repo.get_with_owner(review_id, for_update=for_update)
        if found is None:
            raise NotFoundError(
                message="Review not found", details={"review_id": review_id}
            )
        return found

    @staticmethod
    def _ensure_owner(owner_id: int, user_id: int, review_id: int) -> None:
        if owner_id != user_id:
            raise NotOwnerError(
                message="Only the owner can modify this review",
                details={"review_id": review_id},
            )

    @staticmethod
    def _ensure_deletion(action: ReviewAction, receipt: PlaceReceipt) -> DeletionTransition:
        return ensure_deletion_transition(
            action,
            receipt.point_status,
            receipt.review_status,
            receipt.delete_requested_at is not None,
            receipt.id,
        )

    def _response(self, review_id: int) -> ReviewResponse:
        return ReviewResponse.model_validate(self.receipt_repo.reload(review_id))

    def _apply_ledger(
        self,
        transition: PointTransition,
        owner_id: int,
        amount: int,
        description: str,
        review_id: int,
        actor_id: Optional[int],
    ) -> None:
        # 0포인트 리뷰는 원장 이동 없음
        if amount <= 0:
            return
        if transition.ledger_effect == LedgerEffect.HOLD:
            self.point_service.debit_available_credit_pending(
                owner_id, amount, description, related_work_id=review_id, actor_id=actor_id
            )
        elif transition.ledger_effect == LedgerEffect.SETTLE:
            self.point_service.settle_pending_as_spent(
                owner_id, amount, description, related_work_id=review_id, actor_id=actor_id
            )
        else:
            self.point_service.credit_available_from_pending(
                owner_id, amount, description, related_work_id=review_id, actor_id=actor_id
            )

    def _transition(
        self,
        action: ReviewAction,
        receipt: PlaceReceipt,
        owner_id: int,
        description: str,
        actor_id: Optional[int],
        extra_values: Optional[dict] = None,
        amount: Optional[int] = None,
    ) -> PointTransition:
        """전이 확인 → 조건부 UPDATE → 원장 이동"""
        current = PointStatus(receipt.point_status)
        transition = ensure_point_transition(action, current, receipt.id)

        values = {PlaceReceipt.point_status: transition.target.value}
        if transition.review_status is not None:
            values[PlaceReceipt.review_status] = transition.review_status.value
        if extra_values:
            values.update(extra_values)

        updated = self.receipt_repo.transition_point_status(receipt.id, current, values)
        if updated != 1:
            details = {"review_id": receipt.id, "action": action.value}
            if current == PointStatus.PENDING:
                raise NotPendingError(
                    message="Review was modified concurrently", details=details
                )
            raise InvalidStateError(
                message="Review was modified concurrently", details=details
            )

        point_amount = amount if amount is not None else (receipt.point_amount or 0)
        self._apply_ledger(
            transition, owner_id, point_amount, description, receipt.id, actor_id
        )
        logger.info(
            f"Review {receipt.id} {action.value}: {current.value} -> {transition.target.value} (owner={owner_id}, amount={point_amount}, actor={actor_id})"
        )
        return transition

    # ------------------------------------------------------------------
    # 제출
    # ------------------------------------------------------------------

    def submit_reviews(
        self,
        user_id: int,
        place_id: int,
        items: List[ReviewItem],
        commit: bool = True,
        actor_id: Optional[int] = None,
    ) -> SubmitReviewsResponse:
        """
        리뷰 N건 생성

        commit=False 이면 draft로 저장만 하고 단가 조회/원장 이동을 하지 않는다.
        commit=True 이면 단가 * N 을 한 번에 보류하고 pending 상태로 생성한다.
        잔액 부족 등으로 실패하면 어떤 행도 남지 않는다.
        """
        if not items:
            raise InvalidInputError(message="At least one review is required")
        for index, item in enumerate(items):
            if not item.review_text or not item.review_text.strip():
                raise InvalidInputError(
                    message="Review text is required", details={"index": index}
                )

        with transaction(self.db):
            place = self.user_repo.get_place(place_id)
            if place is None:
                raise NotFoundError(
                    message="Place not found", details={"place_id": place_id}
                )
            if place.user_id != user_id:
                raise NotOwnerError(
                    message="Only the place owner can submit reviews",
                    details={"place_id": place_id},
                )

            now = utcnow()
            unit_price: Optional[int] = None
            total_points = 0

            if commit:
                transition = POINT_TRANSITIONS[ReviewAction.SUBMIT]
                unit_price = self.pricing_service.get_active_unit_price(
                    self.settings.REVIEW_CONTENT_TYPE
                )
                total_points = unit_price * len(items)
                if total_points > 0:
                    self.point_service.debit_available_credit_pending(
                        user_id,
                        total_points,
                        f"리뷰 {len(items)}개 제출 (승인 대기)",
                        actor_id=actor_id,
                    )

            created = []
            for item in items:
                if commit:
                    fields = dict(
                        status=SubmissionStatus.SUBMITTED.value,
                        point_amount=unit_price,
                        point_status=transition.target.value,
                        review_status=transition.review_status.value,
                        submitted_at=now,
                    )
                else:
                    fields = dict(
                        status=SubmissionStatus.DRAFT.value,
                        point_amount=None,
                        point_status=PointStatus.DRAFT.value,
                        review_status=None,
                        submitted_at=None,
                    )
                receipt = self.receipt_repo.create(
                    place_id=place_id,
                    review_text=item.review_text.strip(),
                    images=list(item.images),
                    auto_generate_image=item.auto_generate_image,
                    check_fail_count=0,
                    **fields,
                )
                created.append(ReviewResponse.model_validate(receipt))

            logger.info(
                f"User {user_id} {'submitted' if commit else 'saved draft of'} {len(items)} reviews for place {place_id} (charged={total_points})"
            )
            response = SubmitReviewsResponse(reviews=created, points_charged=total_points)
        return response

    def submit_draft(
        self, user_id: int, review_id: int, actor_id: Optional[int] = None
    ) -> ReviewResponse:
        """임시 저장된 리뷰 제출 - 이 시점의 단가를 스냅샷"""
        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            ensure_point_transition(ReviewAction.SUBMIT, receipt.point_status, review_id)

            unit_price = self.pricing_service.get_active_unit_price(
                self.settings.REVIEW_CONTENT_TYPE
            )
            self._transition(
                ReviewAction.SUBMIT,
                receipt,
                owner_id,
                f"리뷰 #{review_id} 제출 (승인 대기)",
                actor_id,
                extra_values={
                    PlaceReceipt.point_amount: unit_price,
                    PlaceReceipt.status: SubmissionStatus.SUBMITTED.value,
                    PlaceReceipt.submitted_at: utcnow(),
                },
                amount=unit_price,
            )
            response = self._response(review_id)
        return response

    def update_draft(
        self,
        user_id: int,
        review_id: int,
        review_text: Optional[str] = None,
        images: Optional[List[str]] = None,
        auto_generate_image: Optional[bool] = None,
    ) -> ReviewResponse:
        """임시 저장 리뷰의 본문/이미지 수정 - 상태와 point_amount는 건드리지 않음"""
        values = {}
        if review_text is not None:
            if not review_text.strip():
                raise InvalidInputError(message="Review text is required")
            values[PlaceReceipt.review_text] = review_text.strip()
        if images is not None:
            values[PlaceReceipt.images] = list(images)
        if auto_generate_image is not None:
            values[PlaceReceipt.auto_generate_image] = auto_generate_image
        if not values:
            raise InvalidInputError(message="Nothing to update")

        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            ensure_editable(receipt.point_status, review_id)

            # 그 사이 제출되었다면 0행
            updated = self.receipt_repo.transition_point_status(
                review_id, PointStatus.DRAFT, values
            )
            if updated != 1:
                raise InvalidStateError(
                    message="Review was modified concurrently",
                    details={"review_id": review_id},
                )
            logger.info(f"Draft review {review_id} updated by user {user_id}")
            response = self._response(review_id)
        return response

    # ------------------------------------------------------------------
    # 승인 / 거절 / 취소 / 재제출
    # ------------------------------------------------------------------

    def approve_review(self, admin_id: int, review_id: int) -> ReviewResponse:
        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._transition(
                ReviewAction.APPROVE,
                receipt,
                owner_id,
                f"리뷰 #{review_id} 승인 완료",
                admin_id,
                extra_values={
                    PlaceReceipt.approved_at: utcnow(),
                    PlaceReceipt.approved_by: admin_id,
                },
            )
            response = self._response(review_id)
        return response

    def reject_review(
        self, admin_id: int, review_id: int, reason: Optional[str] = None
    ) -> ReviewResponse:
        description = f"리뷰 #{review_id} 거절로 인한 환불"
        if reason:
            description += f" (사유: {reason})"

        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._transition(
                ReviewAction.REJECT,
                receipt,
                owner_id,
                description,
                admin_id,
                extra_values={
                    PlaceReceipt.rejected_at: utcnow(),
                    PlaceReceipt.rejected_by: admin_id,
                    PlaceReceipt.rejected_reason: reason,
                },
            )
            response = self._response(review_id)
        return response

    def cancel_review(
        self, user_id: int, review_id: int, actor_id: Optional[int] = None
    ) -> ReviewResponse:
        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            self._transition(
                ReviewAction.CANCEL,
                receipt,
                owner_id,
                f"리뷰 #{review_id} 사용자 취소로 인한 환불",
                actor_id,
            )
            response = self._response(review_id)
        return response

    def resubmit_review(
        self, user_id: int, review_id: int, actor_id: Optional[int] = None
    ) -> ReviewResponse:
        """취소/거절된 리뷰 재제출 - 최초 제출 시 스냅샷된 point_amount를 다시 보류"""
        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            self._transition(
                ReviewAction.RESUBMIT,
                receipt,
                owner_id,
                f"리뷰 #{review_id} 재제출 (승인 대기)",
                actor_id,
                extra_values={
                    PlaceReceipt.status: SubmissionStatus.SUBMITTED.value,
                    PlaceReceipt.submitted_at: utcnow(),
                },
            )
            response = self._response(review_id)
        return response

    # ------------------------------------------------------------------
    # 게시 URL
    # ------------------------------------------------------------------

    def register_review_url(self, user_id: int, review_id: int, url: str) -> ReviewResponse:
        url = (url or "").strip()
        if not url:
            raise InvalidInputError(message="Review URL is required")

        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            target = ensure_review_transition(
                ReviewAction.REGISTER_URL,
                receipt.point_status,
                receipt.review_status,
                review_id,
            )

            now = utcnow()
            values = {
                PlaceReceipt.review_url: url,
                PlaceReceipt.review_status: target.value,
                PlaceReceipt.last_checked_at: now,
                PlaceReceipt.last_check_status: "success",
            }
            # 최초 등록 시각은 재등록 시 유지
            if receipt.review_url_registered_at is None:
                values[PlaceReceipt.review_url_registered_at] = now
            self.receipt_repo.update_fields(review_id, values)

            logger.info(f"Review {review_id} URL registered by user {user_id}")
            response = self._response(review_id)
        return response

    def check_review_url(self, ctx: ActingContext, review_id: int) -> ReviewResponse:
        """
        게시 URL 확인

        외부 요청은 트랜잭션 밖에서 수행하고, 결과 반영 시 다시 잠금 조회해
        그 사이 URL이나 상태가 바뀌지 않았는지 확인한다.
        """
        with transaction(self.db):
            receipt, owner_id = self._load(review_id, for_update=False)
            if not ctx.is_admin:
                self._ensure_owner(owner_id, ctx.user_id, review_id)
            if not receipt.review_url:
                raise InvalidInputError(
                    message="Review URL is not registered",
                    details={"review_id": review_id},
                )
            ensure_review_transition(
                ReviewAction.CHECK_URL_OK,
                receipt.point_status,
                receipt.review_status,
                review_id,
            )
            url = receipt.review_url

        result = self.url_checker.check(url)

        with transaction(self.db):
            receipt, _ = self._load(review_id)
            if receipt.review_url != url:
                raise InvalidStateError(
                    message="Review URL changed during check",
                    details={"review_id": review_id},
                )
            action = ReviewAction.CHECK_URL_OK if result.ok else ReviewAction.CHECK_URL_FAILED
            target = ensure_review_transition(
                action, receipt.point_status, receipt.review_status, review_id
            )

            now = utcnow()
            values = {
                PlaceReceipt.review_status: target.value,
                PlaceReceipt.last_checked_at: now,
            }
            if result.ok:
                values[PlaceReceipt.last_check_status] = "success"
                values[PlaceReceipt.check_fail_count] = 0
            else:
                values[PlaceReceipt.last_check_status] = "failed"
                values[PlaceReceipt.check_fail_count] = PlaceReceipt.check_fail_count + 1
                values[PlaceReceipt.deleted_detected_at] = now
            self.receipt_repo.update_fields(review_id, values)

            if result.ok:
                logger.info(f"Review {review_id} URL check succeeded")
            else:
                logger.warning(
                    f"Review {review_id} URL check failed ({result.error}), marked deleted_by_system"
                )
            response = self._response(review_id)
        return response

    # ------------------------------------------------------------------
    # 삭제 요청
    # ------------------------------------------------------------------

    def request_deletion(self, user_id: int, review_id: int, reason: str) -> ReviewResponse:
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError(message="Deletion reason is required")

        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            self._ensure_owner(owner_id, user_id, review_id)
            self._ensure_deletion(ReviewAction.REQUEST_DELETION, receipt)

            # 새 요청은 이전 거부 기록을 덮어쓴다
            self.receipt_repo.update_fields(
                review_id,
                {
                    PlaceReceipt.delete_requested_at: utcnow(),
                    PlaceReceipt.delete_request_reason: reason,
                    PlaceReceipt.delete_rejected_at: None,
                    PlaceReceipt.delete_rejected_reason: None,
                    PlaceReceipt.delete_rejected_by: None,
                },
            )
            logger.info(f"Deletion requested for review {review_id} by user {user_id}")
            response = self._response(review_id)
        return response

    def approve_deletion(self, admin_id: int, review_id: int) -> ReviewResponse:
        with transaction(self.db):
            receipt, _ = self._load(review_id)
            transition = self._ensure_deletion(ReviewAction.APPROVE_DELETION, receipt)
            self.receipt_repo.update_fields(
                review_id,
                {
                    PlaceReceipt.review_status: transition.target.value,
                    PlaceReceipt.deleted_detected_at: utcnow(),
                },
            )
            logger.info(f"Deletion of review {review_id} approved by admin {admin_id}")
            response = self._response(review_id)
        return response

    def reject_deletion(self, admin_id: int, review_id: int, reason: str) -> ReviewResponse:
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError(message="Rejection reason is required")

        with transaction(self.db):
            receipt, _ = self._load(review_id)
            self._ensure_deletion(ReviewAction.REJECT_DELETION, receipt)

            self.receipt_repo.update_fields(
                review_id,
                {
                    PlaceReceipt.delete_requested_at: None,
                    PlaceReceipt.delete_request_reason: None,
                    PlaceReceipt.delete_rejected_at: utcnow(),
                    PlaceReceipt.delete_rejected_reason: reason,
                    PlaceReceipt.delete_rejected_by: admin_id,
                },
            )
            logger.info(f"Deletion of review {review_id} rejected by admin {admin_id}")
            response = self._response(review_id)
        return response

    def set_review_status(
        self,
        admin_id: int,
        review_id: int,
        review_status: ReviewStatus,
        review_url_registered_at: Optional[datetime] = None,
        deleted_detected_at: Optional[datetime] = None,
    ) -> ReviewResponse:
        """관리자 게시 상태 직접 변경 (포인트 이동 없음)"""
        with transaction(self.db):
            receipt, _ = self._load(review_id)
            if receipt.review_status is None:
                raise InvalidStateError(
                    message="Review has not been submitted",
                    details={"review_id": review_id},
                )

            values = {PlaceReceipt.review_status: ReviewStatus(review_status).value}
            if review_url_registered_at is not None:
                values[PlaceReceipt.review_url_registered_at] = review_url_registered_at
            if deleted_detected_at is not None:
                values[PlaceReceipt.deleted_detected_at] = deleted_detected_at
            self.receipt_repo.update_fields(review_id, values)

            logger.info(
                f"Admin {admin_id} set review {review_id} review_status {receipt.review_status} -> {ReviewStatus(review_status).value}"
            )
            response = self._response(review_id)
        return response

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_review(self, ctx: ActingContext, review_id: int) -> ReviewResponse:
        with transaction(self.db):
            receipt, owner_id = self._load(review_id, for_update=False)
            if not ctx.is_admin:
                self._ensure_owner(owner_id, ctx.user_id, review_id)
            response = ReviewResponse.model_validate(receipt)
        return response

    def list_place_reviews(
        self, ctx: ActingContext, place_id: int, limit: int = 50, offset: int = 0
    ) -> ReviewListResponse:
        with transaction(self.db):
            place = self.user_repo.get_place(place_id)
            if place is None:
                raise NotFoundError(
                    message="Place not found", details={"place_id": place_id}
                )
            if not ctx.is_admin and place.user_id != ctx.user_id:
                raise NotOwnerError(
                    message="Not the owner of this place", details={"place_id": place_id}
                )
            reviews, total_count = self.receipt_repo.list_by_place(place_id, limit, offset)
        return ReviewListResponse(reviews=reviews, total_count=total_count)

    def list_all_reviews(
        self,
        point_status: Optional[PointStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ReviewListResponse:
        with transaction(self.db):
            reviews, total_count = self.receipt_repo.list_all(point_status, limit, offset)
        return ReviewListResponse(reviews=reviews, total_count=total_count)

    def list_pending_reviews(self, limit: int = 50, offset: int = 0) -> ReviewListResponse:
        with transaction(self.db):
            reviews, total_count = self.receipt_repo.list_by_point_status(
                PointStatus.PENDING, limit, offset
            )
        return ReviewListResponse(reviews=reviews, total_count=total_count)

    def list_delete_requests(self, limit: int = 50, offset: int = 0) -> ReviewListResponse:
        with transaction(self.db):
            reviews, total_count = self.receipt_repo.list_delete_requests(limit, offset)
        return ReviewListResponse(reviews=reviews, total_count=total_count)

    # ------------------------------------------------------------------
    # 자동 환불
    # ------------------------------------------------------------------

    def refund_expired_review(self, review_id: int, auto_refund_days: int) -> bool:
        """
        유예 기간이 지난 pending 리뷰 한 건을 환불 (자체 트랜잭션)

        조회 이후 다른 요청이 먼저 상태를 바꿨다면 아무것도 하지 않고 False.
        """
        with transaction(self.db):
            receipt, owner_id = self._load(review_id)
            if receipt.point_status != PointStatus.PENDING.value:
                logger.info(
                    f"Review {review_id} is no longer pending ({receipt.point_status}), skipping auto refund"
                )
                return False
            self._transition(
                ReviewAction.AUTO_REFUND,
                receipt,
                owner_id,
                f"리뷰 #{review_id} 자동 환불 ({auto_refund_days}일 경과)",
                None,
            )
        return True
