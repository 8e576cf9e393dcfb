"""
Subscription usage gate backed by the record store.

Counts milestones created per user per calendar month and compares the count
with the quota of the user's subscription tier.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Mapping, Optional

from marketplace.core.exceptions import ConcurrentModificationError, QuotaExceededError, UpstreamError
from marketplace.core.logger import setup_logger
from marketplace.infrastructure.local.keys import subscription_key, usage_key
from marketplace.interfaces.record_store import IRecordStore
from marketplace.interfaces.usage_gate import IUsageGate
from marketplace.models.enums import SubscriptionTier
from marketplace.models.subscription import Subscription, UsageSnapshot
from marketplace.utils.datetime_utils import ensure_utc, month_key, now_utc

logger = setup_logger(__name__)

MAX_INCREMENT_ATTEMPTS = 5


class SubscriptionUsageGate(IUsageGate):
    """Monthly milestone quota per subscription tier."""

    def __init__(
        self,
        store: IRecordStore,
        limits: Mapping[SubscriptionTier, Optional[int]],
        clock: Callable[[], datetime] = now_utc,
    ):
        self._store = store
        self._limits = dict(limits)
        self._clock = clock

    async def _current_tier(self, user_id: str) -> SubscriptionTier:
        value = await self._store.get(subscription_key(user_id))
        if not value:
            return SubscriptionTier.FREE
        subscription = Subscription.model_validate(value)
        if not subscription.active:
            return SubscriptionTier.FREE
        if subscription.expires_at and ensure_utc(subscription.expires_at) <= self._clock():
            return SubscriptionTier.FREE
        return subscription.tier

    async def get_usage(self, user_id: str) -> UsageSnapshot:
        tier = await self._current_tier(user_id)
        period = month_key(self._clock())
        counter = await self._store.get(usage_key(user_id, period)) or {}
        return UsageSnapshot(
            user_id=user_id,
            tier=tier,
            period=period,
            used=int(counter.get("count", 0)),
            limit=self._limits.get(tier, self._limits.get(SubscriptionTier.FREE)),
        )

    async def ensure_can_create_milestone(self, user_id: str) -> UsageSnapshot:
        usage = await self.get_usage(user_id)
        if not usage.can_create:
            logger.info(f"User {user_id} reached the {usage.tier.value} milestone limit ({usage.limit})")
            raise QuotaExceededError(
                f"Monthly milestone limit reached for the {usage.tier.value} plan",
                tier=usage.tier.value,
                limit=usage.limit,
                used=usage.used,
            )
        return usage

    async def record_milestone_created(self, user_id: str) -> None:
        key = usage_key(user_id, month_key(self._clock()))
        for _ in range(MAX_INCREMENT_ATTEMPTS):
            record = await self._store.get_versioned(key)
            count = int(record.value.get("count", 0)) if record else 0
            try:
                await self._store.compare_and_set(
                    key,
                    {"count": count + 1},
                    record.version if record else None,
                )
                return
            except ConcurrentModificationError:
                continue
        raise UpstreamError(f"Could not record milestone usage for {user_id}")
