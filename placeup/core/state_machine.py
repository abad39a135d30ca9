"""
리뷰 작업 상태 전이 테이블

포인트 축(point_status)과 게시 축(review_status)의 모든 전이를 한 곳에서 정의한다.
서비스의 각 진입점은 ensure_point_transition / ensure_review_transition /
ensure_deletion_transition 으로 허용 여부를 확인한 뒤, 예상 상태를 조건으로 건 UPDATE를 실행한다.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple, Union

from placeup.core.exceptions import InvalidStateError, NotPendingError
from placeup.models.receipt import PointStatus, ReviewStatus


class ReviewAction(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    RESUBMIT = "resubmit"
    AUTO_REFUND = "auto_refund"

    # 게시 축
    REGISTER_URL = "register_url"
    CHECK_URL_OK = "check_url_ok"
    CHECK_URL_FAILED = "check_url_failed"

    # 삭제 요청
    REQUEST_DELETION = "request_deletion"
    APPROVE_DELETION = "approve_deletion"
    REJECT_DELETION = "reject_deletion"


class LedgerEffect(str, Enum):
    HOLD = "hold"  # available -> pending
    SETTLE = "settle"  # pending -> spent
    RELEASE = "release"  # pending -> available


@dataclass(frozen=True)
class PointTransition:
    sources: FrozenSet[PointStatus]
    target: PointStatus
    ledger_effect: LedgerEffect
    # 전이 후 게시 축 값 (None이면 변경하지 않음)
    review_status: Optional[ReviewStatus] = None


POINT_TRANSITIONS: Dict[ReviewAction, PointTransition] = {
    ReviewAction.SUBMIT: PointTransition(
        frozenset({PointStatus.DRAFT}),
        PointStatus.PENDING,
        LedgerEffect.HOLD,
        ReviewStatus.AWAITING_POST,
    ),
    ReviewAction.APPROVE: PointTransition(
        frozenset({PointStatus.PENDING}),
        PointStatus.APPROVED,
        LedgerEffect.SETTLE,
        ReviewStatus.AWAITING_POST,
    ),
    ReviewAction.REJECT: PointTransition(
        frozenset({PointStatus.PENDING}), PointStatus.REJECTED, LedgerEffect.RELEASE
    ),
    ReviewAction.CANCEL: PointTransition(
        frozenset({PointStatus.PENDING}), PointStatus.CANCELLED, LedgerEffect.RELEASE
    ),
    ReviewAction.RESUBMIT: PointTransition(
        frozenset({PointStatus.CANCELLED, PointStatus.REJECTED}),
        PointStatus.PENDING,
        LedgerEffect.HOLD,
        ReviewStatus.AWAITING_POST,
    ),
    ReviewAction.AUTO_REFUND: PointTransition(
        frozenset({PointStatus.PENDING}), PointStatus.REFUNDED, LedgerEffect.RELEASE
    ),
}

# 게시 축 전이는 포인트 축이 approved인 경우에만 허용
REVIEW_TRANSITIONS: Dict[ReviewAction, Tuple[FrozenSet[ReviewStatus], ReviewStatus]] = {
    ReviewAction.REGISTER_URL: (
        frozenset(
            {
                ReviewStatus.AWAITING_POST,
                ReviewStatus.POSTED,
                ReviewStatus.DELETED_BY_SYSTEM,
            }
        ),
        ReviewStatus.POSTED,
    ),
    ReviewAction.CHECK_URL_OK: (
        frozenset({ReviewStatus.POSTED, ReviewStatus.DELETED_BY_SYSTEM}),
        ReviewStatus.POSTED,
    ),
    ReviewAction.CHECK_URL_FAILED: (
        frozenset({ReviewStatus.POSTED, ReviewStatus.DELETED_BY_SYSTEM}),
        ReviewStatus.DELETED_BY_SYSTEM,
    ),
}


@dataclass(frozen=True)
class DeletionTransition:
    sources: FrozenSet[ReviewStatus]
    # True: 미처리 삭제 요청이 있어야 함, False: 없어야 함
    requires_request: bool
    # None이면 review_status 유지
    target: Optional[ReviewStatus] = None


_DELETABLE = frozenset(
    {
        ReviewStatus.AWAITING_POST,
        ReviewStatus.POSTED,
        ReviewStatus.DELETED_BY_SYSTEM,
        ReviewStatus.EXPIRED,
    }
)

# 삭제 요청 수명주기: 요청 → 승인(deleted_by_request) 또는 거부(요청 해제)
DELETION_TRANSITIONS: Dict[ReviewAction, DeletionTransition] = {
    ReviewAction.REQUEST_DELETION: DeletionTransition(_DELETABLE, requires_request=False),
    ReviewAction.APPROVE_DELETION: DeletionTransition(
        _DELETABLE, requires_request=True, target=ReviewStatus.DELETED_BY_REQUEST
    ),
    ReviewAction.REJECT_DELETION: DeletionTransition(_DELETABLE, requires_request=True),
}


def _as_point_status(value: Union[str, PointStatus]) -> PointStatus:
    return value if isinstance(value, PointStatus) else PointStatus(value)


def ensure_point_transition(
    action: ReviewAction, current: Union[str, PointStatus], review_id: Optional[int] = None
) -> PointTransition:
    """포인트 축 전이가 허용되는지 확인하고 전이 정의를 반환"""
    transition = POINT_TRANSITIONS[action]
    status = _as_point_status(current)
    if status in transition.sources:
        return transition

    details = {
        "review_id": review_id,
        "action": action.value,
        "point_status": status.value,
    }
    # pending에서만 가능한 전이는 NotPending으로 구분
    if transition.sources == frozenset({PointStatus.PENDING}):
        raise NotPendingError(
            message=f"Review is not pending (current: {status.value})", details=details
        )
    raise InvalidStateError(
        message=f"Cannot {action.value} review in '{status.value}' state",
        details=details,
    )


def ensure_review_transition(
    action: ReviewAction,
    point_status: Union[str, PointStatus],
    review_status: Optional[Union[str, ReviewStatus]],
    review_id: Optional[int] = None,
) -> ReviewStatus:
    """게시 축 전이가 허용되는지 확인하고 목표 상태를 반환"""
    sources, target = REVIEW_TRANSITIONS[action]
    current = ReviewStatus(review_status) if review_status is not None else None
    details = {
        "review_id": review_id,
        "action": action.value,
        "point_status": _as_point_status(point_status).value,
        "review_status": current.value if current else None,
    }
    if _as_point_status(point_status) != PointStatus.APPROVED:
        raise InvalidStateError(
            message="Review must be approved first", details=details
        )
    if current is None or current not in sources:
        raise InvalidStateError(
            message=f"Cannot {action.value} review with review_status '{details['review_status']}'",
            details=details,
        )
    return target


def ensure_deletion_transition(
    action: ReviewAction,
    point_status: Union[str, PointStatus],
    review_status: Optional[Union[str, ReviewStatus]],
    request_outstanding: bool,
    review_id: Optional[int] = None,
) -> DeletionTransition:
    """삭제 요청/승인/거부 가능 여부 확인"""
    transition = DELETION_TRANSITIONS[action]
    current = ReviewStatus(review_status) if review_status is not None else None
    details = {
        "review_id": review_id,
        "action": action.value,
        "point_status": _as_point_status(point_status).value,
        "review_status": current.value if current else None,
    }
    if _as_point_status(point_status) != PointStatus.APPROVED:
        raise InvalidStateError(
            message="Only approved reviews can be deleted", details=details
        )
    if current == ReviewStatus.DELETED_BY_REQUEST:
        raise InvalidStateError(message="Review is already deleted", details=details)
    if current not in transition.sources:
        raise InvalidStateError(
            message=f"Cannot {action.value} review with review_status '{details['review_status']}'",
            details=details,
        )
    if transition.requires_request and not request_outstanding:
        raise InvalidStateError(message="Deletion was not requested", details=details)
    if not transition.requires_request and request_outstanding:
        raise InvalidStateError(
            message="Deletion has already been requested", details=details
        )
    return transition


# 본문/이미지 수정은 임시 저장 상태에서만 허용 (상태 전이 없음)
EDITABLE_POINT_STATUSES: FrozenSet[PointStatus] = frozenset({PointStatus.DRAFT})


def ensure_editable(
    point_status: Union[str, PointStatus], review_id: Optional[int] = None
) -> None:
    status = _as_point_status(point_status)
    if status not in EDITABLE_POINT_STATUSES:
        raise InvalidStateError(
            message=f"Only draft reviews can be edited (current: {status.value})",
            details={"review_id": review_id, "point_status": status.value},
        )
