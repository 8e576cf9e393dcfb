"""
Milestone API endpoints.

Provides CRUD, lifecycle transitions and progress stats for milestones.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from marketplace.api.deps import CurrentUser, MilestoneSvc
from marketplace.models.milestone import (
    Milestone,
    MilestoneCreate,
    MilestoneReview,
    MilestoneStats,
    MilestoneSubmission,
    MilestoneTransition,
    MilestoneUpdate,
)

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.post("", response_model=Milestone, status_code=status.HTTP_201_CREATED)
async def create_milestone(
    milestone: MilestoneCreate,
    user: CurrentUser,
    service: MilestoneSvc,
) -> Milestone:
    """Create a new milestone."""
    return await service.create(user.id, milestone)


@router.get("/proposal/{proposal_id}", response_model=list[Milestone])
async def list_milestones_by_proposal(
    proposal_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
) -> list[Milestone]:
    """List milestones for a proposal in plan order."""
    return await service.list_for_proposal(user.id, proposal_id)


@router.get("/proposal/{proposal_id}/stats", response_model=MilestoneStats)
async def get_milestone_stats(
    proposal_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
) -> MilestoneStats:
    """Counts per status and the amount-weighted progress."""
    return await service.get_stats(user.id, proposal_id)


@router.get("/{milestone_id}", response_model=Milestone)
async def get_milestone(
    milestone_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
) -> Milestone:
    """Get a milestone by ID."""
    return await service.get(user.id, milestone_id)


@router.put("/{milestone_id}", response_model=Milestone)
async def update_milestone(
    milestone_id: UUID,
    milestone: MilestoneUpdate,
    user: CurrentUser,
    service: MilestoneSvc,
) -> Milestone:
    """Update a pending milestone."""
    return await service.update(user.id, milestone_id, milestone)


@router.delete("/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(
    milestone_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
    expected_version: Optional[int] = Query(None, description="Version the caller last read"),
):
    """Delete a pending milestone."""
    await service.delete(user.id, milestone_id, expected_version)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{milestone_id}/start", response_model=Milestone)
async def start_milestone(
    milestone_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
    body: Optional[MilestoneTransition] = None,
) -> Milestone:
    """Freelancer starts work on a milestone."""
    return await service.start(user.id, milestone_id, body)


@router.post("/{milestone_id}/submit", response_model=Milestone)
async def submit_milestone(
    milestone_id: UUID,
    submission: MilestoneSubmission,
    user: CurrentUser,
    service: MilestoneSvc,
) -> Milestone:
    """Freelancer submits the work for review."""
    return await service.submit(user.id, milestone_id, submission)


@router.post("/{milestone_id}/approve", response_model=Milestone)
async def approve_milestone(
    milestone_id: UUID,
    user: CurrentUser,
    service: MilestoneSvc,
    review: Optional[MilestoneReview] = None,
) -> Milestone:
    """Client approves the submission and releases the payment."""
    return await service.approve(user.id, milestone_id, review)


@router.post("/{milestone_id}/reject", response_model=Milestone)
async def reject_milestone(
    milestone_id: UUID,
    review: MilestoneReview,
    user: CurrentUser,
    service: MilestoneSvc,
) -> Milestone:
    """Client rejects the submission with feedback."""
    return await service.reject(user.id, milestone_id, review)
