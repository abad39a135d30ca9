"""
자동 환불 배치

system_settings.auto_refund_days 보다 오래 pending 상태로 남은 리뷰를
취소와 같은 환불 경로(pending -> available)로 되돌리고 refunded로 종료한다.
리뷰마다 별도 트랜잭션으로 처리하므로 한 건의 실패가 나머지를 막지 않는다.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from placeup.config import Settings
from placeup.core.exceptions import ConfigMissingError
from placeup.database.session import transaction
from placeup.repositories.pricing_repository import PricingRepository
from placeup.repositories.receipt_repository import ReceiptRepository
from placeup.schemas.batch import AutoRefundResult
from placeup.services.receipt_service import ReceiptService
from placeup.utils.timezone_utils import to_kst, utcnow

logger = logging.getLogger(__name__)


class AutoRefundService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        receipt_service: Optional[ReceiptService] = None,
    ):
        self.db = db
        self.settings = settings
        self.receipt_service = receipt_service or ReceiptService(db, settings)
        self.receipt_repo = ReceiptRepository(db)
        self.pricing_repo = PricingRepository(db)

    def get_auto_refund_days(self) -> int:
        key = self.settings.AUTO_REFUND_SETTING_KEY
        raw = self.pricing_repo.get_setting_value(key)
        if raw is None:
            raise ConfigMissingError(
                message=f"System setting '{key}' is not configured",
                details={"setting_key": key},
            )
        try:
            days = int(str(raw).strip())
        except ValueError:
            raise ConfigMissingError(
                message=f"System setting '{key}' must be an integer",
                details={"setting_key": key, "setting_value": raw},
            )
        if days < 0:
            raise ConfigMissingError(
                message=f"System setting '{key}' must not be negative",
                details={"setting_key": key, "setting_value": raw},
            )
        return days

    def run(self, now: Optional[datetime] = None) -> AutoRefundResult:
        now = now or utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        with transaction(self.db):
            days = self.get_auto_refund_days()
            cutoff = now - timedelta(days=days)
            review_ids = self.receipt_repo.find_expired_pending_ids(cutoff)

        result = AutoRefundResult(auto_refund_days=days, processed=len(review_ids))
        if not review_ids:
            logger.info(f"[AutoRefund] No pending reviews submitted before {to_kst(cutoff).isoformat()}")
            return result

        logger.info(
            f"[AutoRefund] Refunding {len(review_ids)} reviews submitted before {to_kst(cutoff).isoformat()} ({days} days)"
        )
        for review_id in review_ids:
            try:
                refunded = self.receipt_service.refund_expired_review(review_id, days)
            except Exception:
                # 개별 실패는 기록하고 다음 리뷰 계속 처리 (같은 실행 안에서 재시도 없음)
                logger.exception(f"[AutoRefund] Failed to refund review {review_id}")
                result.failed += 1
                result.failed_ids.append(review_id)
                continue

            if refunded:
                result.refunded += 1
            else:
                result.skipped += 1

        logger.info(
            f"[AutoRefund] Done: processed={result.processed}, refunded={result.refunded}, failed={result.failed}, skipped={result.skipped}"
        )
        return result
