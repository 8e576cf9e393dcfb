"""
Record-store implementation of Milestone repository.
"""

from __future__ import annotations

from uuid import UUID

from marketplace.infrastructure.local.keys import milestone_key, milestone_prefix, milestone_ref_key
from marketplace.interfaces.milestone_repository import IMilestoneRepository
from marketplace.interfaces.record_store import IRecordStore, VersionedRecord
from marketplace.models.milestone import Milestone


class KeyValueMilestoneRepository(IMilestoneRepository):
    """Milestones stored as ``milestone:{proposal_id}:{milestone_id}`` documents.

    A ``milestone_ref:{milestone_id}`` entry maps an id back to its proposal so
    single milestones can be loaded without knowing the proposal.
    """

    def __init__(self, store: IRecordStore):
        self._store = store

    def _record_to_model(self, record: VersionedRecord) -> Milestone:
        return Milestone.model_validate({**record.value, "version": record.version})

    def _to_document(self, milestone: Milestone) -> dict:
        return milestone.model_dump(mode="json", exclude={"version"})

    async def create(self, milestone: Milestone) -> Milestone:
        ref_key = milestone_ref_key(milestone.id)
        await self._store.compare_and_set(ref_key, {"proposal_id": str(milestone.proposal_id)}, None)
        try:
            version = await self._store.compare_and_set(
                milestone_key(milestone.proposal_id, milestone.id),
                self._to_document(milestone),
                None,
            )
        except Exception:
            await self._store.delete(ref_key)
            raise
        return milestone.model_copy(update={"version": version})

    async def get(self, milestone_id: UUID) -> Milestone | None:
        ref = await self._store.get(milestone_ref_key(milestone_id))
        if not ref:
            return None
        record = await self._store.get_versioned(milestone_key(UUID(ref["proposal_id"]), milestone_id))
        return self._record_to_model(record) if record else None

    async def list_by_proposal(self, proposal_id: UUID) -> list[Milestone]:
        records = await self._store.list_by_prefix(milestone_prefix(proposal_id))
        milestones = [self._record_to_model(record) for record in records]
        milestones.sort(key=lambda m: (m.order, m.created_at))
        return milestones

    async def save(self, milestone: Milestone, expected_version: int) -> Milestone:
        version = await self._store.compare_and_set(
            milestone_key(milestone.proposal_id, milestone.id),
            self._to_document(milestone),
            expected_version,
        )
        return milestone.model_copy(update={"version": version})

    async def delete(self, milestone: Milestone) -> bool:
        key = milestone_key(milestone.proposal_id, milestone.id)
        deleted = await self._store.delete(key, expected_version=milestone.version)
        if deleted:
            await self._store.delete(milestone_ref_key(milestone.id))
        return deleted
