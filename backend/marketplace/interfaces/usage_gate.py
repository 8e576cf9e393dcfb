"""
Usage gate interface.

Subscription-tier quota check consulted before a user creates a milestone.
"""

from abc import ABC, abstractmethod

from marketplace.models.subscription import UsageSnapshot


class IUsageGate(ABC):
    """Interface for monthly usage quotas."""

    @abstractmethod
    async def get_usage(self, user_id: str) -> UsageSnapshot:
        """Current month's milestone usage and limit for a user."""
        pass

    @abstractmethod
    async def ensure_can_create_milestone(self, user_id: str) -> UsageSnapshot:
        """
        Check the quota.

        Raises:
            QuotaExceededError: If the monthly limit is reached
        """
        pass

    @abstractmethod
    async def record_milestone_created(self, user_id: str) -> None:
        """Count one created milestone against the current month."""
        pass
