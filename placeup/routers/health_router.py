import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from placeup.config import Settings
from placeup.containers import Container
from placeup.database.session import transaction
from placeup.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
def health_check(
    db: Session = Depends(Provide[Container.repositories.db_session]),
    settings: Settings = Depends(Provide[Container.config.config]),
) -> HealthCheckResponse:
    """Health check endpoint."""

    try:
        with transaction(db):
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        return HealthCheckResponse(
            status="unhealthy",
            database="error",
            environment=settings.ENVIRONMENT,
            error=str(e),
        )
    return HealthCheckResponse(environment=settings.ENVIRONMENT)
