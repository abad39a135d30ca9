from datetime import timedelta

import pytest
from jose import jwt

from placeup.config import Settings
from placeup.core.exceptions import AuthenticationError
from placeup.core.security import create_access_token, decode_access_token
from placeup.models.user import UserRole
from placeup.schemas.user import ActingContext, Principal


@pytest.fixture
def jwt_settings() -> Settings:
    return Settings(_env_file=None, SECRET_KEY="unit-test-secret")


def test_round_trip(jwt_settings):
    token = create_access_token({"id": 42, "role": "admin"}, jwt_settings)

    payload = decode_access_token(token, jwt_settings)

    assert payload["id"] == 42
    assert payload["role"] == "admin"


def test_expired_token(jwt_settings):
    token = create_access_token({"id": 42}, jwt_settings, expires_delta=timedelta(seconds=-1))

    with pytest.raises(AuthenticationError):
        decode_access_token(token, jwt_settings)


def test_wrong_signature(jwt_settings):
    token = jwt.encode({"id": 42}, "another-secret", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        decode_access_token(token, jwt_settings)


def test_missing_id_claim(jwt_settings):
    token = create_access_token({"sub": "someone"}, jwt_settings)

    with pytest.raises(AuthenticationError):
        decode_access_token(token, jwt_settings)


def test_unconfigured_secret():
    with pytest.raises(AuthenticationError):
        decode_access_token("anything", Settings(_env_file=None, SECRET_KEY=""))


def _principal(user_id: int, role: UserRole) -> Principal:
    return Principal(id=user_id, username=f"u{user_id}", name="테스트", role=role)


def test_acting_context_splits_actor_and_effective_user():
    developer = _principal(1, UserRole.DEVELOPER)
    advertiser = _principal(2, UserRole.ADVERTISER)

    ctx = ActingContext(principal=developer, on_behalf_of=advertiser)

    assert ctx.is_impersonating
    assert ctx.user_id == 2
    assert ctx.actor_id == 1
    # 권한은 대리 대상 기준
    assert ctx.is_admin is False


def test_acting_context_without_impersonation():
    admin = _principal(3, UserRole.ADMIN)

    ctx = ActingContext(principal=admin)

    assert not ctx.is_impersonating
    assert ctx.user_id == ctx.actor_id == 3
    assert ctx.is_admin
