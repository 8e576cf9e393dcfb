"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class MarketplaceError(Exception):
    """Base exception for the marketplace backend."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(MarketplaceError):
    """Resource not found."""

    pass


class ValidationError(MarketplaceError):
    """Validation error."""

    pass


class AuthenticationError(MarketplaceError):
    """Authentication failed."""

    pass


class ForbiddenError(MarketplaceError):
    """Forbidden operation (authorization denied)."""

    pass


class QuotaExceededError(ForbiddenError):
    """Subscription usage limit reached."""

    def __init__(self, message: str, tier: str, limit: int, used: int):
        super().__init__(message, details={"tier": tier, "limit": limit, "used": used})
        self.tier = tier
        self.limit = limit
        self.used = used


class ConflictError(MarketplaceError):
    """Requested transition is not allowed from the current state."""

    pass


class ConcurrentModificationError(ConflictError):
    """Record changed between read and write."""

    def __init__(self, key: str, expected_version: Optional[int], actual_version: Optional[int]):
        super().__init__(
            f"Record {key} was modified concurrently",
            details={"expected_version": expected_version, "actual_version": actual_version},
        )
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version


class UpstreamError(MarketplaceError):
    """Record store or payment collaborator failure."""

    pass
