import logging
from typing import Optional

from sqlalchemy.orm import Session

from placeup.config import Settings
from placeup.core.exceptions import (
    AuthorizationError,
    InvalidAmountError,
    InvalidInputError,
    NotFoundError,
)
from placeup.database.session import transaction
from placeup.models.points import PointRequestStatus
from placeup.models.user import UserRole
from placeup.repositories.point_request_repository import PointRequestRepository
from placeup.schemas.point_requests import (
    PointRequestListResponse,
    PointRequestResponse,
)
from placeup.schemas.user import ActingContext
from placeup.services.point_service import PointService
from placeup.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


class PointRequestService:
    """총판 포인트 충전 요청 - 관리자 승인 시 같은 트랜잭션에서 earn 지급"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.request_repo = PointRequestRepository(db)
        self.point_service = PointService(db)

    def create_request(
        self, ctx: ActingContext, requested_amount: int, purpose: str
    ) -> PointRequestResponse:
        if not UserRole.can_request_points(ctx.effective.role):
            raise AuthorizationError(message="Not allowed to request points")
        if requested_amount is None or requested_amount <= 0:
            raise InvalidAmountError(
                message="Requested amount must be greater than zero",
                details={"requested_amount": requested_amount},
            )
        purpose = (purpose or "").strip()
        min_length = self.settings.POINT_REQUEST_MIN_PURPOSE_LENGTH
        if len(purpose) < min_length:
            raise InvalidInputError(
                message=f"Purpose must be at least {min_length} characters",
                details={"min_length": min_length},
            )

        with transaction(self.db):
            request = self.request_repo.create(
                requester_id=ctx.user_id,
                requested_amount=requested_amount,
                purpose=purpose,
                status=PointRequestStatus.PENDING.value,
            )
            response = PointRequestResponse.model_validate(request)

        logger.info(
            f"Point request {response.id} created by user {ctx.user_id} for {requested_amount} points"
        )
        return response

    def review_request(
        self,
        admin_id: int,
        request_id: int,
        status: str,
        review_notes: Optional[str] = None,
    ) -> PointRequestResponse:
        try:
            new_status = PointRequestStatus(status)
        except ValueError:
            raise InvalidInputError(
                message="Status must be 'approved' or 'rejected'",
                details={"status": status},
            )
        if new_status == PointRequestStatus.PENDING:
            raise InvalidInputError(
                message="Status must be 'approved' or 'rejected'",
                details={"status": status},
            )

        with transaction(self.db):
            request = self.request_repo.get_model(request_id, for_update=True)
            updated = self.request_repo.mark_reviewed(
                request_id,
                new_status,
                reviewed_by=admin_id,
                reviewed_at=utcnow(),
                review_notes=review_notes or None,
            )
            if request is None or updated != 1:
                raise NotFoundError(
                    message="No pending point request found",
                    details={"request_id": request_id},
                )

            if new_status == PointRequestStatus.APPROVED:
                self.point_service.earn(
                    request.requester_id,
                    request.requested_amount,
                    f"관리자 승인 - {request.purpose}",
                    related_request_id=request_id,
                    actor_id=admin_id,
                )

            response = PointRequestResponse.model_validate(
                self.request_repo.get_model(request_id, for_update=True)
            )

        logger.info(f"Point request {request_id} {new_status.value} by admin {admin_id}")
        return response

    def get_request(self, ctx: ActingContext, request_id: int) -> PointRequestResponse:
        with transaction(self.db):
            request = self.request_repo.get_model(request_id)
            if request is None:
                raise NotFoundError(
                    message="Point request not found", details={"request_id": request_id}
                )
            if not ctx.is_admin and request.requester_id != ctx.user_id:
                raise AuthorizationError(message="Cannot view another user's request")
            response = PointRequestResponse.model_validate(request)
        return response

    def list_requests(
        self,
        ctx: ActingContext,
        status: Optional[PointRequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PointRequestListResponse:
        # 관리자가 아니면 본인 요청만
        requester_id = None if ctx.is_admin else ctx.user_id
        with transaction(self.db):
            requests, total_count = self.request_repo.list_requests(
                requester_id=requester_id, status=status, limit=limit, offset=offset
            )
        return PointRequestListResponse(requests=requests, total_count=total_count)
