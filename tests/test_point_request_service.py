import pytest

from placeup.core.exceptions import (
    AuthorizationError,
    InvalidAmountError,
    InvalidInputError,
    NotFoundError,
)
from placeup.models.points import PointRequestStatus, TransactionType
from placeup.models.user import UserRole

PURPOSE = "신규 광고주 유치용 포인트 충전"


@pytest.fixture
def distributor_id(seed) -> int:
    return seed.user(UserRole.DISTRIBUTOR)


class TestCreateRequest:
    def test_distributor_can_request(self, seed, point_request_service, distributor_id):
        request = point_request_service.create_request(seed.ctx(distributor_id), 1000, PURPOSE)

        assert request.requester_id == distributor_id
        assert request.requested_amount == 1000
        assert request.status == PointRequestStatus.PENDING

    def test_advertiser_cannot_request(self, seed, point_request_service, owner_id):
        with pytest.raises(AuthorizationError):
            point_request_service.create_request(seed.ctx(owner_id), 1000, PURPOSE)

    def test_developer_acting_as_advertiser_uses_effective_role(
        self, seed, point_request_service, owner_id
    ):
        developer_id = seed.user(UserRole.DEVELOPER)

        with pytest.raises(AuthorizationError):
            point_request_service.create_request(
                seed.ctx(developer_id, on_behalf_of=owner_id), 1000, PURPOSE
            )

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount(self, seed, point_request_service, distributor_id, amount):
        with pytest.raises(InvalidAmountError):
            point_request_service.create_request(seed.ctx(distributor_id), amount, PURPOSE)

    def test_short_purpose(self, seed, point_request_service, distributor_id):
        with pytest.raises(InvalidInputError):
            point_request_service.create_request(seed.ctx(distributor_id), 1000, "  충전  ")


class TestReviewRequest:
    def test_approve_credits_requester(
        self, seed, point_request_service, distributor_id, admin_id
    ):
        # Given
        created = point_request_service.create_request(seed.ctx(distributor_id), 1000, PURPOSE)

        # When
        reviewed = point_request_service.review_request(
            admin_id, created.id, "approved", "확인 완료"
        )

        # Then
        assert reviewed.status == PointRequestStatus.APPROVED
        assert reviewed.reviewed_by == admin_id
        assert reviewed.reviewed_at is not None
        assert reviewed.review_notes == "확인 완료"

        balance = seed.balance(distributor_id)
        assert balance.available_points == 1000
        assert balance.total_earned == 1000

        entry = seed.transactions(distributor_id)[-1]
        assert entry.transaction_type == TransactionType.EARN
        assert entry.related_request_id == created.id
        assert entry.processed_by == admin_id
        assert entry.description == f"관리자 승인 - {PURPOSE}"

    def test_reject_moves_no_points(self, seed, point_request_service, distributor_id, admin_id):
        created = point_request_service.create_request(seed.ctx(distributor_id), 1000, PURPOSE)

        reviewed = point_request_service.review_request(admin_id, created.id, "rejected")

        assert reviewed.status == PointRequestStatus.REJECTED
        assert seed.transactions(distributor_id) == []

    def test_second_review_not_found(self, seed, point_request_service, distributor_id, admin_id):
        created = point_request_service.create_request(seed.ctx(distributor_id), 1000, PURPOSE)
        point_request_service.review_request(admin_id, created.id, "approved")

        with pytest.raises(NotFoundError):
            point_request_service.review_request(admin_id, created.id, "approved")

        assert seed.balance(distributor_id).available_points == 1000

    def test_unknown_request(self, point_request_service, admin_id):
        with pytest.raises(NotFoundError):
            point_request_service.review_request(admin_id, 9999, "approved")

    @pytest.mark.parametrize("status", ["pending", "done"])
    def test_invalid_status(self, seed, point_request_service, distributor_id, admin_id, status):
        created = point_request_service.create_request(seed.ctx(distributor_id), 1000, PURPOSE)

        with pytest.raises(InvalidInputError):
            point_request_service.review_request(admin_id, created.id, status)


class TestQueries:
    def test_list_is_scoped_for_non_admin(
        self, seed, point_request_service, distributor_id, admin_id
    ):
        other_id = seed.user(UserRole.DISTRIBUTOR)
        point_request_service.create_request(seed.ctx(distributor_id), 100, PURPOSE)
        point_request_service.create_request(seed.ctx(other_id), 200, PURPOSE)

        own = point_request_service.list_requests(seed.ctx(distributor_id))
        everything = point_request_service.list_requests(seed.ctx(admin_id))

        assert own.total_count == 1
        assert own.requests[0].requester_id == distributor_id
        assert everything.total_count == 2

    def test_list_by_status(self, seed, point_request_service, distributor_id, admin_id):
        first = point_request_service.create_request(seed.ctx(distributor_id), 100, PURPOSE)
        point_request_service.create_request(seed.ctx(distributor_id), 200, PURPOSE)
        point_request_service.review_request(admin_id, first.id, "rejected")

        pending = point_request_service.list_requests(
            seed.ctx(admin_id), status=PointRequestStatus.PENDING
        )

        assert pending.total_count == 1
        assert pending.requests[0].requested_amount == 200

    def test_get_other_users_request(self, seed, point_request_service, distributor_id):
        created = point_request_service.create_request(seed.ctx(distributor_id), 100, PURPOSE)

        with pytest.raises(AuthorizationError):
            point_request_service.get_request(seed.ctx(seed.user(UserRole.DISTRIBUTOR)), created.id)
