from dependency_injector import containers, providers

from placeup.config import Settings
from placeup.database.connection import create_db_engine, create_session_factory
from placeup.database.session import open_session
from placeup.services.auto_refund_service import AutoRefundService
from placeup.services.point_request_service import PointRequestService
from placeup.services.point_service import PointService
from placeup.services.receipt_service import ReceiptService
from placeup.services.url_checker import create_url_checker


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database engine and sessions."""

    config = providers.DependenciesContainer()

    engine = providers.Singleton(create_db_engine, settings=config.config)
    session_factory = providers.Singleton(create_session_factory, engine=engine)
    # 워커 스레드마다 세션 하나 - 각 공개 연산이 transaction()으로 커밋/롤백
    db_session = providers.ThreadLocalSingleton(
        open_session, session_factory=session_factory
    )


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    url_checker = providers.Singleton(create_url_checker, settings=config.config)

    point_service = providers.Factory(PointService, db=repositories.db_session)
    receipt_service = providers.Factory(
        ReceiptService,
        db=repositories.db_session,
        settings=config.config,
        url_checker=url_checker,
    )
    auto_refund_service = providers.Factory(
        AutoRefundService,
        db=repositories.db_session,
        settings=config.config,
        receipt_service=receipt_service,
    )
    point_request_service = providers.Factory(
        PointRequestService, db=repositories.db_session, settings=config.config
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "placeup.core.auth_middleware",
            "placeup.routers.receipt_router",
            "placeup.routers.point_router",
            "placeup.routers.point_request_router",
            "placeup.routers.batch_router",
            "placeup.routers.health_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule, config=config)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
