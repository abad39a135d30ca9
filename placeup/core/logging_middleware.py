import logging
import time
import uuid

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from placeup.logging_config import request_id_var

logger = logging.getLogger("placeup.request")

REQUEST_ID_HEADER = "X-Request-Id"

# 헬스체크는 주기적으로 호출되므로 로그 제외
IGNORED_LOG_PATHS = {"/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    요청 ID 부여 + 요청/응답 로그

    X-Request-Id 헤더가 있으면 그대로 쓰고 없으면 새로 만든다. 요청 처리 중
    남는 모든 로그(원장, 상태 전이)에 같은 ID가 찍히고, 응답 헤더로 돌려준다.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        should_log = request.url.path not in IGNORED_LOG_PATHS

        target = f"{request.method} {request.url.path}"
        acting_as = request.headers.get("X-Acting-As")
        if should_log:
            suffix = f" (acting as user {acting_as})" if acting_as else ""
            logger.info(f"-> {target}{suffix}")

        start = time.monotonic()
        try:
            response = await call_next(request)
        except HTTPException as http_exc:
            level = logging.ERROR if http_exc.status_code >= 500 else logging.WARNING
            logger.log(level, f"<- {target} raised {http_exc.status_code}")
            raise
        except Exception:
            logger.exception(f"<- {target} failed")
            raise
        finally:
            request_id_var.reset(token)

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        if should_log:
            duration_ms = (time.monotonic() - start) * 1000
            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO
            logger.log(
                level,
                f"<- {target} {response.status_code} in {duration_ms:.1f}ms (request_id={request_id})",
            )
        return response
