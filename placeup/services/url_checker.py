"""
리뷰 게시 URL 확인기

게시된 리뷰가 아직 살아있는지 확인하는 외부 협력자. 기본값은 항상 성공을
보고하는 StubUrlChecker이며, URL_CHECK_MODE=http 이면 실제로 요청을 보낸다.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from placeup.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UrlCheckResult:
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class ReviewUrlChecker:
    def check(self, url: str) -> UrlCheckResult:
        raise NotImplementedError


class StubUrlChecker(ReviewUrlChecker):
    def check(self, url: str) -> UrlCheckResult:
        return UrlCheckResult(ok=True)


class HttpUrlChecker(ReviewUrlChecker):
    """2xx/3xx 응답이면 게시 중, 그 외 응답이나 연결 오류는 삭제된 것으로 판단"""

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))
        self._transport = transport

    def check(self, url: str) -> UrlCheckResult:
        try:
            with httpx.Client(
                timeout=self._timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = client.get(url)
        except httpx.TimeoutException:
            logger.warning(f"Review URL check timed out: {url}")
            return UrlCheckResult(ok=False, error="timeout")
        except httpx.HTTPError as e:
            logger.warning(f"Review URL check failed: {url} ({e})")
            return UrlCheckResult(ok=False, error=str(e))

        if response.status_code < 400:
            return UrlCheckResult(ok=True, status_code=response.status_code)
        return UrlCheckResult(
            ok=False,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
        )


def create_url_checker(settings: Settings) -> ReviewUrlChecker:
    if settings.URL_CHECK_MODE == "http":
        return HttpUrlChecker(timeout_seconds=settings.URL_CHECK_TIMEOUT_SEC)
    return StubUrlChecker()
