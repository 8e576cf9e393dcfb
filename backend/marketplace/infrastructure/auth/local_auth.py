"""
Local JWT authentication provider.
"""

from __future__ import annotations

from jose import JWTError, jwt

from marketplace.core.config import Settings
from marketplace.core.exceptions import AuthenticationError
from marketplace.interfaces.auth_provider import IAuthProvider, User


class LocalAuthProvider(IAuthProvider):
    """Local auth provider with HMAC JWT validation.

    Tokens are issued by the account service with the same shared secret.
    """

    def __init__(self, settings: Settings):
        if not settings.LOCAL_JWT_SECRET:
            raise ValueError("LOCAL_JWT_SECRET must be set for local auth")
        self._settings = settings

    def _decode_token(self, token: str) -> dict[str, object]:
        options = {"verify_iss": bool(self._settings.LOCAL_JWT_ISSUER)}
        return jwt.decode(
            token,
            self._settings.LOCAL_JWT_SECRET,
            algorithms=["HS256"],
            issuer=self._settings.LOCAL_JWT_ISSUER or None,
            options=options,
        )

    async def verify_token(self, token: str) -> User:
        try:
            claims = self._decode_token(token)
        except JWTError as exc:
            raise AuthenticationError("Invalid or expired token") from exc
        subject = claims.get("sub")
        if not subject:
            raise AuthenticationError("Missing subject")
        return User(
            id=str(subject),
            email=claims.get("email"),
            display_name=claims.get("name"),
        )

    def is_enabled(self) -> bool:
        return True
