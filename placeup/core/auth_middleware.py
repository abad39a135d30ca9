import hmac
import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from placeup.config import Settings
from placeup.containers import Container
from placeup.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidInputError,
    NotFoundError,
)
from placeup.core.security import decode_access_token
from placeup.database.session import transaction
from placeup.models.user import UserRole
from placeup.repositories.user_repository import UserRepository
from placeup.schemas.user import ActingContext, Principal

logger = logging.getLogger("placeup")

ACTING_AS_HEADER = "X-Acting-As"

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def _load_principal(repo: UserRepository, user_id: int) -> Optional[Principal]:
    user = repo.get_model(user_id)
    return Principal.model_validate(user) if user else None


@inject
def get_acting_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(Provide[Container.repositories.db_session]),
    settings: Settings = Depends(Provide[Container.config.config]),
) -> ActingContext:
    """
    필수 사용자 인증 + 대리 실행 컨텍스트

    토큰의 사용자를 users 테이블에서 다시 읽어 활성 여부를 확인한다.
    개발자는 X-Acting-As 헤더로 다른 사용자를 대신해 요청할 수 있다.
    """
    if not credentials:
        raise AuthenticationError(message="Authentication required")

    payload = decode_access_token(credentials.credentials, settings)
    try:
        user_id = int(payload["id"])
    except (TypeError, ValueError):
        raise AuthenticationError(message="Invalid user id claim")

    acting_as = request.headers.get(ACTING_AS_HEADER)
    repo = UserRepository(db)
    with transaction(db):
        principal = _load_principal(repo, user_id)
        if principal is None or not principal.is_active:
            raise AuthenticationError(message="User not found or inactive")

        if not acting_as:
            return ActingContext(principal=principal)

        if principal.role != UserRole.DEVELOPER:
            raise AuthorizationError(message="Only developers can act as another user")
        try:
            target_id = int(acting_as)
        except ValueError:
            raise InvalidInputError(message=f"Invalid {ACTING_AS_HEADER} header")

        target = _load_principal(repo, target_id)
        if target is None:
            raise NotFoundError(
                message="Target user not found", details={"user_id": target_id}
            )
        if not target.is_active:
            raise AuthorizationError(
                message="Cannot act as an inactive user",
                details={"user_id": target_id},
            )

    logger.info(f"Developer {principal.id} acting as user {target.id}")
    return ActingContext(principal=principal, on_behalf_of=target)


def require_admin(
    ctx: ActingContext = Depends(get_acting_context),
) -> ActingContext:
    """관리자 권한이 필요한 엔드포인트용 의존성 (개발자 포함)"""
    if not ctx.is_admin:
        raise AuthorizationError(message="Admin access required")
    return ctx


@inject
def require_admin_or_scheduler(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(Provide[Container.repositories.db_session]),
    settings: Settings = Depends(Provide[Container.config.config]),
) -> Optional[ActingContext]:
    """배치 엔드포인트용 - 스케줄러의 AUTH_TOKEN 또는 관리자 토큰 허용"""
    if (
        credentials
        and settings.AUTH_TOKEN
        and hmac.compare_digest(
            credentials.credentials.encode(), settings.AUTH_TOKEN.encode()
        )
    ):
        return None
    ctx = get_acting_context(
        request=request, credentials=credentials, db=db, settings=settings
    )
    return require_admin(ctx)
