"""
타임존 유틸리티

DB에는 UTC로 저장하고, 표시용으로만 한국 시간(KST)으로 변환합니다.
"""

from datetime import datetime, timezone, timedelta

# 한국 표준시 (KST = UTC+9)
KST = timezone(timedelta(hours=9))


def utcnow() -> datetime:
    """현재 UTC 시간 (timezone-aware)"""
    return datetime.now(timezone.utc)


def to_kst(dt: datetime) -> datetime:
    """UTC 또는 다른 타임존의 datetime을 KST로 변환합니다."""
    if dt.tzinfo is None:
        # naive datetime은 UTC로 가정
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(KST)

