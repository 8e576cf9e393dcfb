"""
Milestone plan API endpoints.

The freelancer submits the plan, the client approves it or requests a revision.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter

from marketplace.api.deps import CurrentUser, PlanSvc
from marketplace.models.proposal import MilestonePlanView, PlanDecision, PlanRevisionRequest

router = APIRouter(prefix="/milestones/plan", tags=["milestone_plans"])


@router.get("/{proposal_id}", response_model=MilestonePlanView)
async def get_milestone_plan(
    proposal_id: UUID,
    user: CurrentUser,
    service: PlanSvc,
) -> MilestonePlanView:
    """Get the plan status with its milestones."""
    return await service.get_plan(user.id, proposal_id)


@router.post("/{proposal_id}/submit", response_model=MilestonePlanView)
async def submit_milestone_plan(
    proposal_id: UUID,
    user: CurrentUser,
    service: PlanSvc,
    body: Optional[PlanDecision] = None,
) -> MilestonePlanView:
    """Submit (or resubmit) the plan for client review."""
    return await service.submit_plan(user.id, proposal_id, body)


@router.post("/{proposal_id}/approve", response_model=MilestonePlanView)
async def approve_milestone_plan(
    proposal_id: UUID,
    user: CurrentUser,
    service: PlanSvc,
    body: Optional[PlanDecision] = None,
) -> MilestonePlanView:
    """Approve the submitted plan and reserve its escrow."""
    return await service.approve_plan(user.id, proposal_id, body)


@router.post("/{proposal_id}/request-revision", response_model=MilestonePlanView)
async def request_milestone_plan_revision(
    proposal_id: UUID,
    revision: PlanRevisionRequest,
    user: CurrentUser,
    service: PlanSvc,
) -> MilestonePlanView:
    """Send the plan back to the freelancer with feedback."""
    return await service.request_revision(user.id, proposal_id, revision)
