"""Interfaces for proposal and milestone plan repositories."""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from marketplace.models.proposal import MilestonePlan, Proposal


class IProposalRepository(ABC):
    """Read access to proposals owned by the proposal service."""

    @abstractmethod
    async def get(self, proposal_id: UUID) -> Optional[Proposal]:
        """Get a proposal by ID.

        Args:
            proposal_id: The proposal ID

        Returns:
            The proposal if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, proposal: Proposal) -> Proposal:
        """Register a proposal (seeding and tests).

        Args:
            proposal: The proposal to store

        Returns:
            The stored proposal
        """
        pass


class IMilestonePlanRepository(ABC):
    """Storage for the per-proposal milestone plan status."""

    @abstractmethod
    async def get(self, proposal_id: UUID) -> MilestonePlan:
        """Get the plan for a proposal.

        A plan that was never stored comes back as ``not_submitted``
        with version 0.
        """
        pass

    @abstractmethod
    async def save(self, plan: MilestonePlan, expected_version: int) -> MilestonePlan:
        """Write the plan if it was not changed since it was read.

        Args:
            plan: Plan to store
            expected_version: Version the caller read (0 for a new plan)

        Returns:
            The stored plan with its new version

        Raises:
            ConcurrentModificationError: On version mismatch
        """
        pass
