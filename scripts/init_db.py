"""
테이블 생성 + 기본 단가/시스템 설정 시드

이미 존재하는 설정 행은 덮어쓰지 않는다.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from placeup.config import Settings
from placeup.database.connection import create_db_engine, create_session_factory
from placeup.models.base import Base
from placeup.models import points, receipt, user  # noqa: F401  테이블 등록
from placeup.models.settings import ContentPricing, SystemSetting

DEFAULT_REVIEW_PRICE = 3000
DEFAULT_AUTO_REFUND_DAYS = "7"


def init_db():
    """데이터베이스 초기화"""
    load_dotenv("placeup/.env")
    settings = Settings()
    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)

    Base.metadata.create_all(bind=engine)

    db = session_factory()
    try:
        content_type = settings.REVIEW_CONTENT_TYPE
        pricing = (
            db.query(ContentPricing)
            .filter(
                ContentPricing.content_type == content_type,
                ContentPricing.is_active.is_(True),
            )
            .first()
        )
        if pricing is None:
            db.add(
                ContentPricing(
                    content_type=content_type,
                    price=DEFAULT_REVIEW_PRICE,
                    description="영수증 리뷰 1건 단가",
                    is_active=True,
                )
            )
            print(f"✅ 단가 생성: {content_type} = {DEFAULT_REVIEW_PRICE}")

        key = settings.AUTO_REFUND_SETTING_KEY
        setting = db.query(SystemSetting).filter(SystemSetting.setting_key == key).first()
        if setting is None:
            db.add(
                SystemSetting(
                    setting_key=key,
                    setting_value=DEFAULT_AUTO_REFUND_DAYS,
                    description="승인 대기 리뷰 자동 환불 기준 일수",
                )
            )
            print(f"✅ 시스템 설정 생성: {key} = {DEFAULT_AUTO_REFUND_DAYS}")

        db.commit()
        print("Database initialized successfully")

    except Exception as e:
        db.rollback()
        print(f"❌ Database initialization failed: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
