"""Subscription and usage models consumed by the usage gate."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from marketplace.models.enums import SubscriptionTier


class Subscription(BaseModel):
    """A user's subscription record."""

    user_id: str
    tier: SubscriptionTier = SubscriptionTier.FREE
    active: bool = True
    expires_at: Optional[datetime] = None


class UsageSnapshot(BaseModel):
    """Milestone creation usage for the current month."""

    user_id: str
    tier: SubscriptionTier
    period: str
    used: int
    # None means unlimited
    limit: Optional[int] = None

    @property
    def can_create(self) -> bool:
        return self.limit is None or self.used < self.limit
