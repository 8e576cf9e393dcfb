"""
Milestone plan service.

The plan is the whole ordered milestone breakdown of one proposal. The
freelancer submits it, the client approves it or sends it back:

    not_submitted -> submitted -> approved
                              -> revision_requested -> submitted

Approval reserves the plan total in escrow before the status is committed.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from marketplace.core.context import ExecutionContext
from marketplace.core.exceptions import ConflictError, ValidationError
from marketplace.core.logger import setup_logger
from marketplace.interfaces.milestone_repository import IMilestoneRepository
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.interfaces.proposal_repository import IMilestonePlanRepository, IProposalRepository
from marketplace.models.enums import MilestonePlanStatus
from marketplace.models.milestone import Milestone
from marketplace.models.payment import EscrowRequest
from marketplace.models.proposal import (
    MilestonePlan,
    MilestonePlanView,
    PlanDecision,
    PlanRevisionRequest,
)
from marketplace.services.milestone_permissions import MilestoneAction, get_proposal_access

logger = setup_logger(__name__)

# Milestone total may differ from the proposed budget by rounding only
BUDGET_TOLERANCE = Decimal("0.01")

SUBMITTABLE = (MilestonePlanStatus.NOT_SUBMITTED, MilestonePlanStatus.REVISION_REQUESTED)


def _total(milestones: list[Milestone]) -> Decimal:
    return sum((m.amount for m in milestones), Decimal("0"))


def _check_plan_version(plan: MilestonePlan, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != plan.version:
        raise ConflictError(
            f"Milestone plan for proposal {plan.proposal_id} was modified since it was read",
            details={"expected_version": expected_version, "actual_version": plan.version},
        )


class MilestonePlanService:
    """Plan review workflow between freelancer and client."""

    def __init__(
        self,
        milestone_repo: IMilestoneRepository,
        proposal_repo: IProposalRepository,
        plan_repo: IMilestonePlanRepository,
        payment_gateway: IPaymentGateway,
        context: Optional[ExecutionContext] = None,
    ):
        self.milestone_repo = milestone_repo
        self.proposal_repo = proposal_repo
        self.plan_repo = plan_repo
        self.payment_gateway = payment_gateway
        self.context = context or ExecutionContext()

    def _view(self, plan: MilestonePlan, milestones: list[Milestone]) -> MilestonePlanView:
        data = plan.model_dump()
        data.update(
            milestones=milestones,
            milestone_count=len(milestones),
            total_amount=_total(milestones),
        )
        return MilestonePlanView.model_validate(data)

    async def get_plan(self, user_id: str, proposal_id: UUID) -> MilestonePlanView:
        """Plan status with the ordered milestones and their current total."""
        await get_proposal_access(user_id, proposal_id, self.proposal_repo, MilestoneAction.PLAN_READ)
        plan = await self.plan_repo.get(proposal_id)
        milestones = await self.milestone_repo.list_by_proposal(proposal_id)
        return self._view(plan, milestones)

    async def submit_plan(
        self, user_id: str, proposal_id: UUID, data: Optional[PlanDecision] = None
    ) -> MilestonePlanView:
        """
        Freelancer submits (or resubmits) the plan for client review.

        Raises:
            ValidationError: The proposal has no milestones
            ConflictError: Plan already submitted or approved
        """
        data = data or PlanDecision()
        await get_proposal_access(user_id, proposal_id, self.proposal_repo, MilestoneAction.PLAN_SUBMIT)
        plan = await self.plan_repo.get(proposal_id)
        _check_plan_version(plan, data.expected_version)
        if plan.status not in SUBMITTABLE:
            raise ConflictError(f"Milestone plan is already {plan.status.value}")

        milestones = await self.milestone_repo.list_by_proposal(proposal_id)
        if not milestones:
            raise ValidationError("Add at least one milestone before submitting the plan")

        # Re-version the milestones before the plan locks; edits that read them earlier fail
        milestones = [await self.milestone_repo.save(m, m.version) for m in milestones]

        resubmission = plan.status == MilestonePlanStatus.REVISION_REQUESTED
        updated = plan.model_copy(
            update={
                "status": MilestonePlanStatus.SUBMITTED,
                "submitted_at": self.context.now(),
                "submitted_by": user_id,
                "revision_count": plan.revision_count + 1 if resubmission else plan.revision_count,
                "total_amount": _total(milestones),
                "milestone_count": len(milestones),
            }
        )
        saved = await self.plan_repo.save(updated, plan.version)
        logger.info(
            f"Milestone plan for proposal {proposal_id} {'resubmitted' if resubmission else 'submitted'} "
            f"by {user_id} ({len(milestones)} milestones, {saved.total_amount})"
        )
        return self._view(saved, milestones)

    async def approve_plan(
        self, user_id: str, proposal_id: UUID, data: Optional[PlanDecision] = None
    ) -> MilestonePlanView:
        """
        Client approves the submitted plan and funds its escrow.

        Raises:
            ConflictError: Plan is not submitted
            ValidationError: Milestone total differs from the proposed budget
            UpstreamError: Escrow reservation failed; the plan stays submitted
        """
        data = data or PlanDecision()
        proposal, _ = await get_proposal_access(
            user_id, proposal_id, self.proposal_repo, MilestoneAction.PLAN_APPROVE
        )
        plan = await self.plan_repo.get(proposal_id)
        _check_plan_version(plan, data.expected_version)
        if plan.status != MilestonePlanStatus.SUBMITTED:
            raise ConflictError(f"Only a submitted plan can be approved (plan is {plan.status.value})")

        milestones = await self.milestone_repo.list_by_proposal(proposal_id)
        total = _total(milestones)
        if proposal.proposed_budget is not None and abs(total - proposal.proposed_budget) > BUDGET_TOLERANCE:
            raise ValidationError(
                f"Milestone total {total} does not match the proposed budget {proposal.proposed_budget}",
                details={"total_amount": str(total), "proposed_budget": str(proposal.proposed_budget)},
            )

        receipt = await self.payment_gateway.reserve_escrow(
            EscrowRequest(
                proposal_id=proposal.id,
                project_id=proposal.project_id,
                client_id=proposal.client_id,
                freelancer_id=proposal.freelancer_id,
                amount=total,
                currency=proposal.currency.strip().upper(),
                milestone_count=len(milestones),
            )
        )

        updated = plan.model_copy(
            update={
                "status": MilestonePlanStatus.APPROVED,
                "reviewed_at": self.context.now(),
                "reviewed_by": user_id,
                "feedback": None,
                "total_amount": total,
                "milestone_count": len(milestones),
                "escrow_reference": receipt.reference,
            }
        )
        saved = await self.plan_repo.save(updated, plan.version)
        logger.info(f"Milestone plan for proposal {proposal_id} approved by {user_id} (escrow {receipt.reference})")
        return self._view(saved, milestones)

    async def request_revision(
        self, user_id: str, proposal_id: UUID, data: PlanRevisionRequest
    ) -> MilestonePlanView:
        """Client sends the submitted plan back with feedback, unlocking edits."""
        await get_proposal_access(
            user_id, proposal_id, self.proposal_repo, MilestoneAction.PLAN_REQUEST_REVISION
        )
        plan = await self.plan_repo.get(proposal_id)
        _check_plan_version(plan, data.expected_version)
        if plan.status != MilestonePlanStatus.SUBMITTED:
            raise ConflictError(
                f"Revisions can only be requested on a submitted plan (plan is {plan.status.value})"
            )
        feedback = data.feedback.strip()
        if not feedback:
            raise ValidationError("Revision feedback is required")

        updated = plan.model_copy(
            update={
                "status": MilestonePlanStatus.REVISION_REQUESTED,
                "reviewed_at": self.context.now(),
                "reviewed_by": user_id,
                "feedback": feedback,
            }
        )
        saved = await self.plan_repo.save(updated, plan.version)
        milestones = await self.milestone_repo.list_by_proposal(proposal_id)
        logger.info(f"Revision requested on milestone plan for proposal {proposal_id} by {user_id}")
        return self._view(saved, milestones)
