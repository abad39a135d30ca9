"""
로깅 설정

모든 로그 라인에 요청 ID를 붙여, 원장 이동/상태 전이 로그를 그 원인이 된
HTTP 요청(또는 배치 실행)과 연결할 수 있게 한다.
"""

import logging
import logging.config
import sys
from contextvars import ContextVar

# 요청 밖(배치 스크립트 등)에서는 "-"
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging(log_level: str = "INFO"):
    log_level = log_level.upper()

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {"()": RequestContextFilter},
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "filters": ["request_context"],
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": log_level,
            },
            "placeup": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            # 요청 로그는 LoggingMiddleware가 남긴다
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(LOGGING_CONFIG)
