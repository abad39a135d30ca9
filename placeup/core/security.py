from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from placeup.config import Settings
from placeup.core.exceptions import AuthenticationError

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24


def create_access_token(
    data: dict, settings: Settings, expires_delta: Optional[timedelta] = None
) -> str:
    """토큰 발급은 인증 서버 영역 - 스크립트/테스트에서 토큰을 만들 때 사용"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """JWT를 검증하고 payload를 반환 (id, role 클레임 필수)"""
    if not settings.SECRET_KEY:
        raise AuthenticationError(message="Token verification is not configured")
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError(message="Invalid or expired token")

    if "id" not in payload:
        raise AuthenticationError(message="Token is missing the user id claim")
    return payload
