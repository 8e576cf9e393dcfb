"""Record-store proposal and milestone plan repositories."""

from typing import Optional
from uuid import UUID

from marketplace.infrastructure.local.keys import milestone_plan_key, proposal_key
from marketplace.interfaces.proposal_repository import IMilestonePlanRepository, IProposalRepository
from marketplace.interfaces.record_store import IRecordStore
from marketplace.models.proposal import MilestonePlan, Proposal


class KeyValueProposalRepository(IProposalRepository):
    """Proposals stored as ``proposal:{id}`` documents."""

    def __init__(self, store: IRecordStore):
        self._store = store

    async def get(self, proposal_id: UUID) -> Optional[Proposal]:
        """Get a proposal by ID."""
        value = await self._store.get(proposal_key(proposal_id))
        return Proposal.model_validate(value) if value else None

    async def create(self, proposal: Proposal) -> Proposal:
        """Store a proposal, replacing any previous copy."""
        await self._store.set(proposal_key(proposal.id), proposal.model_dump(mode="json"))
        return proposal


class KeyValueMilestonePlanRepository(IMilestonePlanRepository):
    """Plans stored as ``milestone_plan:{proposal_id}`` documents."""

    def __init__(self, store: IRecordStore):
        self._store = store

    async def get(self, proposal_id: UUID) -> MilestonePlan:
        """Get the plan, defaulting to an unsaved not_submitted plan."""
        record = await self._store.get_versioned(milestone_plan_key(proposal_id))
        if not record:
            return MilestonePlan(proposal_id=proposal_id)
        return MilestonePlan.model_validate({**record.value, "version": record.version})

    async def save(self, plan: MilestonePlan, expected_version: int) -> MilestonePlan:
        """Compare-and-set the plan document."""
        version = await self._store.compare_and_set(
            milestone_plan_key(plan.proposal_id),
            plan.model_dump(mode="json", exclude={"version"}),
            expected_version or None,
        )
        return plan.model_copy(update={"version": version})
