"""
자동 환불 배치 (cron / 스케줄러용)

    python scripts/run_auto_refund.py

auto_refund_days 설정이 없거나 잘못되면 종료 코드 1.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

from dotenv import load_dotenv

from placeup.containers import Container
from placeup.core.exceptions import ConfigMissingError
from placeup.logging_config import setup_logging

logger = logging.getLogger("placeup")


def main() -> int:
    load_dotenv("placeup/.env")
    container = Container()
    settings = container.config.config()
    setup_logging(settings.LOG_LEVEL)

    service = container.services.auto_refund_service()
    try:
        result = service.run()
    except ConfigMissingError as e:
        logger.error(f"[AutoRefund] Aborted: {e}")
        return 1

    print(
        f"processed={result.processed} refunded={result.refunded} "
        f"failed={result.failed} skipped={result.skipped}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
