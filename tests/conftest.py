from typing import List

import pytest

from placeup.config import Settings
from placeup.database.connection import create_db_engine, create_session_factory
from placeup.database.session import transaction
from placeup.models import points, receipt, settings as settings_models, user  # noqa: F401
from placeup.models.base import Base
from placeup.models.points import PointBalance, PointTransaction
from placeup.models.receipt import PlaceReceipt
from placeup.models.settings import ContentPricing, SystemSetting
from placeup.models.user import Place, User, UserRole
from placeup.repositories.points_repository import PointsRepository
from placeup.schemas.points import PointBalanceResponse, PointTransactionResponse
from placeup.schemas.receipts import ReviewResponse
from placeup.schemas.user import ActingContext, Principal
from placeup.services.auto_refund_service import AutoRefundService
from placeup.services.point_request_service import PointRequestService
from placeup.services.point_service import PointService
from placeup.services.receipt_service import ReceiptService

REVIEW_TYPE = "receipt_review"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """테스트 전용 설정 - 파일 기반 SQLite (스레드 간 공유 가능)"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'placeup_test.db'}",
        SECRET_KEY="test-secret-key",
        AUTH_TOKEN="scheduler-token",
        URL_CHECK_MODE="stub",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


class Seeder:
    """테스트 데이터 생성 + 검증용 조회 헬퍼 (모델 대신 ID/스키마를 반환)"""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def user(self, role: UserRole = UserRole.ADVERTISER, status: str = "active") -> int:
        self._seq += 1
        with transaction(self.db):
            row = User(
                username=f"user{self._seq}",
                name=f"테스트사용자{self._seq}",
                role=UserRole(role).value,
                status=status,
            )
            self.db.add(row)
            self.db.flush()
            user_id = row.id
        return user_id

    def place(self, user_id: int) -> int:
        with transaction(self.db):
            row = Place(user_id=user_id, business_name="테스트 카페")
            self.db.add(row)
            self.db.flush()
            place_id = row.id
        return place_id

    def pricing(self, price: int, content_type: str = REVIEW_TYPE, is_active: bool = True) -> int:
        with transaction(self.db):
            row = ContentPricing(content_type=content_type, price=price, is_active=is_active)
            self.db.add(row)
            self.db.flush()
            pricing_id = row.id
        return pricing_id

    def deactivate_pricing(self, pricing_id: int) -> None:
        with transaction(self.db):
            self.db.query(ContentPricing).filter(ContentPricing.id == pricing_id).update(
                {ContentPricing.is_active: False}, synchronize_session=False
            )

    def setting(self, key: str, value: str) -> None:
        with transaction(self.db):
            self.db.add(SystemSetting(setting_key=key, setting_value=value))

    def fund(self, user_id: int, amount: int) -> None:
        """관리자 조정으로 available 충전"""
        with transaction(self.db):
            PointService(self.db).adjust(user_id, amount, "테스트 충전", actor_id=user_id)

    def set_review_fields(self, review_id: int, **values) -> None:
        with transaction(self.db):
            self.db.query(PlaceReceipt).filter(PlaceReceipt.id == review_id).update(
                {getattr(PlaceReceipt, k): v for k, v in values.items()},
                synchronize_session=False,
            )

    def set_balance_fields(self, user_id: int, **values) -> None:
        with transaction(self.db):
            self.db.query(PointBalance).filter(PointBalance.user_id == user_id).update(
                {getattr(PointBalance, k): v for k, v in values.items()},
                synchronize_session=False,
            )

    def balance(self, user_id: int) -> PointBalanceResponse:
        with transaction(self.db):
            row = PointsRepository(self.db).get_balance(user_id)
            assert row is not None
            response = PointBalanceResponse.model_validate(row)
        return response

    def transactions(self, user_id: int) -> List[PointTransactionResponse]:
        with transaction(self.db):
            rows = (
                self.db.query(PointTransaction)
                .filter(PointTransaction.user_id == user_id)
                .order_by(PointTransaction.id)
                .all()
            )
            response = [PointTransactionResponse.model_validate(r) for r in rows]
        return response

    def review(self, review_id: int) -> ReviewResponse:
        with transaction(self.db):
            row = self.db.query(PlaceReceipt).filter(PlaceReceipt.id == review_id).one()
            response = ReviewResponse.model_validate(row)
        return response

    def ctx(self, user_id: int, on_behalf_of: int = None) -> ActingContext:
        with transaction(self.db):
            principal = Principal.model_validate(self.db.get(User, user_id))
            target = (
                Principal.model_validate(self.db.get(User, on_behalf_of))
                if on_behalf_of is not None
                else None
            )
        return ActingContext(principal=principal, on_behalf_of=target)


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def point_service(db) -> PointService:
    return PointService(db)


@pytest.fixture
def receipt_service(db, settings) -> ReceiptService:
    return ReceiptService(db, settings)


@pytest.fixture
def auto_refund_service(db, settings, receipt_service) -> AutoRefundService:
    return AutoRefundService(db, settings, receipt_service=receipt_service)


@pytest.fixture
def point_request_service(db, settings) -> PointRequestService:
    return PointRequestService(db, settings)


@pytest.fixture
def admin_id(seed) -> int:
    return seed.user(UserRole.ADMIN)


@pytest.fixture
def owner_id(seed) -> int:
    return seed.user(UserRole.ADVERTISER)


@pytest.fixture
def place_id(seed, owner_id) -> int:
    return seed.place(owner_id)
