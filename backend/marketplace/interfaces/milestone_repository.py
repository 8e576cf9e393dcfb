"""
Milestone repository interface.

Defines the contract for milestone data operations.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from marketplace.models.milestone import Milestone


class IMilestoneRepository(ABC):
    """Interface for milestone repository operations."""

    @abstractmethod
    async def create(self, milestone: Milestone) -> Milestone:
        """Persist a new milestone. Returns it with its stored version."""
        pass

    @abstractmethod
    async def get(self, milestone_id: UUID) -> Milestone | None:
        """Get a milestone by ID."""
        pass

    @abstractmethod
    async def list_by_proposal(self, proposal_id: UUID) -> list[Milestone]:
        """List milestones for a proposal, ordered by their order field."""
        pass

    @abstractmethod
    async def save(self, milestone: Milestone, expected_version: int) -> Milestone:
        """
        Write a modified milestone if nobody changed it since it was read.

        Raises:
            ConcurrentModificationError: On version mismatch
        """
        pass

    @abstractmethod
    async def delete(self, milestone: Milestone) -> bool:
        """Delete a milestone at the version it was read. Returns True if deleted."""
        pass
