"""Proposal and milestone plan models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from marketplace.models.enums import MilestonePlanStatus, ProposalStatus
from marketplace.models.milestone import Milestone
from marketplace.utils.datetime_utils import now_utc


class Proposal(BaseModel):
    """A freelancer's accepted (or pending) bid on a client's project.

    Proposals are owned by the proposal service. The milestone workflow only
    reads them: participants, default currency and the agreed budget.
    """
    id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    client_id: str
    freelancer_id: str
    currency: str = "TWD"
    proposed_budget: Optional[Decimal] = None
    status: ProposalStatus = ProposalStatus.ACCEPTED
    created_at: datetime = Field(default_factory=now_utc)


class MilestonePlan(BaseModel):
    """Review state of the full milestone breakdown of one proposal."""
    proposal_id: UUID
    status: MilestonePlanStatus = MilestonePlanStatus.NOT_SUBMITTED
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    feedback: Optional[str] = None
    revision_count: int = 0
    total_amount: Decimal = Decimal("0")
    milestone_count: int = 0
    escrow_reference: Optional[str] = None
    # 0 means the plan has never been stored
    version: int = 0

    @property
    def locks_freelancer_edits(self) -> bool:
        return self.status in (MilestonePlanStatus.SUBMITTED, MilestonePlanStatus.APPROVED)


class MilestonePlanView(MilestonePlan):
    """Plan together with its ordered milestones."""
    milestones: list[Milestone] = Field(default_factory=list)


class PlanRevisionRequest(BaseModel):
    """Client feedback sending the plan back to the freelancer."""
    feedback: str = ""
    expected_version: Optional[int] = None


class PlanDecision(BaseModel):
    """Body for plan submit/approve."""
    expected_version: Optional[int] = None
