"""
Unit tests for auth providers and the current-user dependency.
"""

import pytest

from marketplace.api.deps import get_current_user
from marketplace.core.config import Settings
from marketplace.core.context import ExecutionContext
from marketplace.core.exceptions import AuthenticationError
from marketplace.core.security import create_access_token
from marketplace.infrastructure.auth.local_auth import LocalAuthProvider
from marketplace.infrastructure.local.mock_auth import DEFAULT_DEV_EMAIL, MockAuthProvider, parse_dev_token
from marketplace.models.enums import ExecutionMode

LIVE = ExecutionContext(mode=ExecutionMode.LIVE)
DEV = ExecutionContext(mode=ExecutionMode.DEV)


def _local_settings(**overrides) -> Settings:
    values = {"AUTH_PROVIDER": "local", "LOCAL_JWT_SECRET": "test-secret", "LOCAL_JWT_ISSUER": "marketplace-local"}
    values.update(overrides)
    return Settings(**values)


def test_parse_dev_token_with_email():
    user = parse_dev_token("dev-user-42||alice@example.com")

    assert user.id == "dev-user-42"
    assert user.email == "alice@example.com"


def test_parse_dev_token_default_email():
    user = parse_dev_token("dev-user-42")

    assert user.id == "dev-user-42"
    assert user.email == DEFAULT_DEV_EMAIL


@pytest.mark.parametrize("token", ["user-42", "dev-user-", "Bearer dev-user-1"])
def test_parse_dev_token_rejects_other_tokens(token):
    assert parse_dev_token(token) is None


@pytest.mark.asyncio
async def test_mock_auth_uses_token_as_user_id():
    user = await MockAuthProvider().verify_token("client-1")

    assert user.id == "client-1"
    assert user.email == "client-1@example.com"


@pytest.mark.asyncio
async def test_local_auth_round_trip():
    settings = _local_settings()
    token = create_access_token("client-1", settings, email="c@example.com", name="Client")

    user = await LocalAuthProvider(settings).verify_token(token)

    assert user.id == "client-1"
    assert user.email == "c@example.com"
    assert user.display_name == "Client"


@pytest.mark.asyncio
async def test_local_auth_rejects_wrong_secret():
    token = create_access_token("client-1", _local_settings(LOCAL_JWT_SECRET="other"))

    with pytest.raises(AuthenticationError):
        await LocalAuthProvider(_local_settings()).verify_token(token)


@pytest.mark.asyncio
async def test_local_auth_rejects_expired_token():
    settings = _local_settings()
    token = create_access_token("client-1", settings, expires_minutes=-5)

    with pytest.raises(AuthenticationError):
        await LocalAuthProvider(settings).verify_token(token)


def test_local_auth_requires_secret():
    with pytest.raises(ValueError):
        LocalAuthProvider(_local_settings(LOCAL_JWT_SECRET=""))


@pytest.mark.asyncio
async def test_current_user_from_bearer():
    user = await get_current_user(
        authorization="Bearer client-1", x_dev_token=None, auth_provider=MockAuthProvider(), context=LIVE
    )

    assert user.id == "client-1"


@pytest.mark.asyncio
async def test_current_user_requires_header():
    with pytest.raises(AuthenticationError):
        await get_current_user(authorization=None, x_dev_token=None, auth_provider=MockAuthProvider(), context=LIVE)


@pytest.mark.asyncio
async def test_current_user_rejects_malformed_header():
    with pytest.raises(AuthenticationError):
        await get_current_user(
            authorization="Token client-1", x_dev_token=None, auth_provider=MockAuthProvider(), context=LIVE
        )


@pytest.mark.asyncio
async def test_dev_token_header_in_dev_mode():
    user = await get_current_user(
        authorization=None,
        x_dev_token="dev-user-7||dev7@example.com",
        auth_provider=MockAuthProvider(),
        context=DEV,
    )

    assert user.id == "dev-user-7"
    assert user.email == "dev7@example.com"


@pytest.mark.asyncio
async def test_dev_bearer_token_in_dev_mode_skips_provider():
    settings = _local_settings()

    user = await get_current_user(
        authorization="Bearer dev-user-7",
        x_dev_token=None,
        auth_provider=LocalAuthProvider(settings),
        context=DEV,
    )

    assert user.id == "dev-user-7"


@pytest.mark.asyncio
async def test_dev_tokens_rejected_in_live_mode():
    with pytest.raises(AuthenticationError):
        await get_current_user(
            authorization="Bearer dev-user-7", x_dev_token=None, auth_provider=MockAuthProvider(), context=LIVE
        )
    with pytest.raises(AuthenticationError):
        await get_current_user(
            authorization=None, x_dev_token="dev-user-7", auth_provider=MockAuthProvider(), context=LIVE
        )
