from typing import Optional

from sqlalchemy import and_, desc
from sqlalchemy.orm import Session

from placeup.models.settings import ContentPricing, SystemSetting


class PricingRepository:
    """단가표 / 시스템 설정 읽기 전용 리포지토리"""

    def __init__(self, db: Session):
        self.db = db

    def get_active_pricing(self, content_type: str) -> Optional[ContentPricing]:
        # 활성 행이 여러 개면 가장 최근에 등록된 행을 사용
        return (
            self.db.query(ContentPricing)
            .filter(
                and_(
                    ContentPricing.content_type == content_type,
                    ContentPricing.is_active.is_(True),
                )
            )
            .order_by(desc(ContentPricing.id))
            .first()
        )

    def get_setting_value(self, setting_key: str) -> Optional[str]:
        row = (
            self.db.query(SystemSetting.setting_value)
            .filter(SystemSetting.setting_key == setting_key)
            .first()
        )
        return row[0] if row else None
