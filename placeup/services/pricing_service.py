import logging

from sqlalchemy.orm import Session

from placeup.core.exceptions import PricingNotConfiguredError
from placeup.repositories.pricing_repository import PricingRepository

logger = logging.getLogger(__name__)


class PricingService:
    """컨텐츠 유형별 현재 단가 조회 (읽기 전용)"""

    def __init__(self, db: Session):
        self.db = db
        self.pricing_repo = PricingRepository(db)

    def get_active_unit_price(self, content_type: str) -> int:
        pricing = self.pricing_repo.get_active_pricing(content_type)
        if pricing is None:
            logger.error(f"No active pricing configured for content type '{content_type}'")
            raise PricingNotConfiguredError(
                message=f"Pricing is not configured for '{content_type}'",
                details={"content_type": content_type},
            )
        return int(pricing.price)
