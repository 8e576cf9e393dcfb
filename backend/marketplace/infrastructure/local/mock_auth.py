"""
Mock authentication provider and dev-token parsing for local development.
"""

from typing import Optional

from marketplace.core.exceptions import AuthenticationError
from marketplace.interfaces.auth_provider import IAuthProvider, User

DEV_TOKEN_PREFIX = "dev-user-"
DEFAULT_DEV_EMAIL = "dev@example.com"


class MockAuthProvider(IAuthProvider):
    """Mock auth provider that treats the bearer token as the user id."""

    def __init__(self, enabled: bool = True):
        """
        Initialize mock auth provider.

        Args:
            enabled: Whether a bearer token is required at all
        """
        self._enabled = enabled

    async def verify_token(self, token: str) -> User:
        """
        Verify token - in mock mode, token is treated as user_id.

        Args:
            token: User ID (or an email address)

        Returns:
            Mock user
        """
        token = token.strip()
        if not token:
            raise AuthenticationError("Empty token")
        if "@" in token:
            return User(id=token, email=token, display_name=token)
        return User(id=token, email=f"{token}@example.com", display_name=token)

    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        return self._enabled


def parse_dev_token(token: str) -> Optional[User]:
    """
    Parse a dev-mode token.

    Format is ``dev-user-{suffix}`` optionally followed by ``||{email}``.
    The part before ``||`` is the user id.

    Returns:
        The dev user, or None when the token is not a dev token
    """
    if not token.startswith(DEV_TOKEN_PREFIX):
        return None
    user_id, _, email = token.partition("||")
    if user_id == DEV_TOKEN_PREFIX:
        return None
    return User(id=user_id, email=email or DEFAULT_DEV_EMAIL, display_name="Dev Mode User")
