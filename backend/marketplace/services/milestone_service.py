"""
Milestone service.

Owns milestone CRUD and the per-milestone lifecycle:

    pending -> in_progress -> submitted -> approved
                                        -> rejected -> in_progress

Every operation authorizes the caller, validates the current state and then
writes with compare-and-set against the version it read, so two racing
requests cannot both apply a transition.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID, uuid4

from marketplace.core.context import ExecutionContext
from marketplace.core.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from marketplace.core.logger import setup_logger
from marketplace.interfaces.milestone_repository import IMilestoneRepository
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.interfaces.proposal_repository import IMilestonePlanRepository, IProposalRepository
from marketplace.interfaces.usage_gate import IUsageGate
from marketplace.models.enums import MilestoneStatus, PaymentStatus
from marketplace.models.milestone import (
    Milestone,
    MilestoneCreate,
    MilestoneReview,
    MilestoneStats,
    MilestoneSubmission,
    MilestoneTransition,
    MilestoneUpdate,
)
from marketplace.models.payment import PaymentReleaseRequest
from marketplace.models.proposal import MilestonePlan
from marketplace.services.milestone_permissions import (
    MilestoneAction,
    ensure_milestone_action,
    get_proposal_access,
)
from marketplace.utils.datetime_utils import days_until, ensure_utc

logger = setup_logger(__name__)

# Allowed source states for each transition
TRANSITIONS: dict[MilestoneAction, tuple[MilestoneStatus, ...]] = {
    MilestoneAction.MILESTONE_START: (MilestoneStatus.PENDING, MilestoneStatus.REJECTED),
    MilestoneAction.MILESTONE_SUBMIT: (MilestoneStatus.IN_PROGRESS,),
    MilestoneAction.MILESTONE_APPROVE: (MilestoneStatus.SUBMITTED,),
    MilestoneAction.MILESTONE_REJECT: (MilestoneStatus.SUBMITTED,),
}


def normalize_currency(value: str) -> str:
    currency = (value or "").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError(f"Invalid currency code: {value!r}")
    return currency


def validate_amount(amount: Decimal) -> Decimal:
    try:
        amount = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Amount must be a number") from exc
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    return amount


def validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    return title


def check_expected_version(milestone: Milestone, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != milestone.version:
        raise ConflictError(
            f"Milestone {milestone.id} was modified since it was read",
            details={"expected_version": expected_version, "actual_version": milestone.version},
        )


def build_stats(proposal_id: UUID, currency: str, milestones: list[Milestone]) -> MilestoneStats:
    """Counts per status plus the amount-weighted completion percentage."""
    stats = MilestoneStats(proposal_id=proposal_id, currency=currency, total=len(milestones))
    total_amount = Decimal("0")
    completed_amount = Decimal("0")
    for milestone in milestones:
        setattr(stats, milestone.status.value, getattr(stats, milestone.status.value) + 1)
        total_amount += milestone.amount
        if milestone.status == MilestoneStatus.APPROVED:
            completed_amount += milestone.amount

    stats.total_amount = total_amount
    stats.completed_amount = completed_amount
    if total_amount > 0:
        stats.progress_percentage = round(float(completed_amount / total_amount * 100), 2)
    return stats


class MilestoneService:
    """Milestone entity manager behind the role-scoped action gateway."""

    def __init__(
        self,
        milestone_repo: IMilestoneRepository,
        proposal_repo: IProposalRepository,
        plan_repo: IMilestonePlanRepository,
        usage_gate: IUsageGate,
        payment_gateway: IPaymentGateway,
        context: Optional[ExecutionContext] = None,
    ):
        self.milestone_repo = milestone_repo
        self.proposal_repo = proposal_repo
        self.plan_repo = plan_repo
        self.usage_gate = usage_gate
        self.payment_gateway = payment_gateway
        self.context = context or ExecutionContext()

    # =========================================================================
    # Reads
    # =========================================================================

    async def _load(self, milestone_id: UUID, user_id: str, action: MilestoneAction) -> Milestone:
        milestone = await self.milestone_repo.get(milestone_id)
        if not milestone:
            raise NotFoundError(f"Milestone {milestone_id} not found")
        ensure_milestone_action(user_id, milestone, action)
        return milestone

    async def get(self, user_id: str, milestone_id: UUID) -> Milestone:
        return await self._load(milestone_id, user_id, MilestoneAction.MILESTONE_READ)

    async def list_for_proposal(self, user_id: str, proposal_id: UUID) -> list[Milestone]:
        await get_proposal_access(user_id, proposal_id, self.proposal_repo, MilestoneAction.MILESTONE_READ)
        return await self.milestone_repo.list_by_proposal(proposal_id)

    async def get_stats(self, user_id: str, proposal_id: UUID) -> MilestoneStats:
        proposal, _ = await get_proposal_access(
            user_id, proposal_id, self.proposal_repo, MilestoneAction.MILESTONE_READ
        )
        milestones = await self.milestone_repo.list_by_proposal(proposal_id)
        return build_stats(proposal_id, proposal.currency, milestones)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(self, user_id: str, data: MilestoneCreate) -> Milestone:
        """
        Create a pending milestone under a proposal.

        The client may add milestones at any time. The freelancer may only
        add them while the plan is still editable. If the plan is submitted
        meanwhile or usage cannot be recorded, the new milestone is removed
        again and the error is raised.

        Raises:
            NotFoundError: Unknown proposal
            ForbiddenError: Caller is not a participant
            QuotaExceededError: Monthly milestone limit reached
            ValidationError: Empty title, non-positive amount, missing due date
                or a currency other than the proposal's
            ConflictError: Freelancer creating while the plan is locked
        """
        proposal, access = await get_proposal_access(
            user_id, data.proposal_id, self.proposal_repo, MilestoneAction.MILESTONE_CREATE
        )

        title = validate_title(data.title)
        amount = validate_amount(data.amount)
        if data.due_date is None:
            raise ValidationError("Due date is required")
        currency = normalize_currency(data.currency or proposal.currency)
        if currency != normalize_currency(proposal.currency):
            raise ValidationError(
                f"Currency {currency} does not match the proposal currency {proposal.currency}"
            )

        if not self.context.is_dev:
            await self.usage_gate.ensure_can_create_milestone(user_id)

        plan = await self.plan_repo.get(proposal.id)
        if not access.is_client and plan.locks_freelancer_edits:
            raise ConflictError(
                f"Milestone plan is {plan.status.value}; only the client can add milestones"
            )

        existing = await self.milestone_repo.list_by_proposal(proposal.id)
        now = self.context.now()
        due_date = ensure_utc(data.due_date)
        milestone = Milestone(
            id=uuid4(),
            proposal_id=proposal.id,
            project_id=proposal.project_id,
            client_id=proposal.client_id,
            freelancer_id=proposal.freelancer_id,
            created_by=user_id,
            title=title,
            description=data.description.strip(),
            amount=amount,
            currency=currency,
            order=max((m.order for m in existing), default=0) + 1,
            due_date=due_date,
            deadline_days=days_until(due_date, now),
            created_at=now,
            updated_at=now,
        )
        created = await self.milestone_repo.create(milestone)
        try:
            if not access.is_client:
                await self._fence_plan(plan)
            if not self.context.is_dev:
                await self.usage_gate.record_milestone_created(user_id)
        except Exception:
            await self.milestone_repo.delete(created)
            raise

        logger.info(
            f"Milestone {created.id} created by {user_id} for proposal {proposal.id} "
            f"({created.amount} {created.currency})"
        )
        return created

    async def _fence_plan(self, plan: MilestonePlan) -> MilestonePlan:
        """
        Rewrite the plan at the version its lock check was made against.

        Submitting the plan bumps its version, so a milestone write that checked
        an editable plan fails here once the plan has been submitted.
        """
        return await self.plan_repo.save(plan, plan.version)

    async def _ensure_editable(self, milestone: Milestone) -> MilestonePlan:
        if milestone.status != MilestoneStatus.PENDING:
            raise ConflictError(
                f"Milestone is {milestone.status.value}; only pending milestones can be changed"
            )
        plan = await self.plan_repo.get(milestone.proposal_id)
        if plan.locks_freelancer_edits:
            raise ConflictError(f"Milestone plan is {plan.status.value}; milestones are locked")
        return plan

    async def update(self, user_id: str, milestone_id: UUID, data: MilestoneUpdate) -> Milestone:
        """
        Edit a pending milestone while its plan is editable.

        Currency is fixed at creation; passing a different one is rejected.
        """
        milestone = await self._load(milestone_id, user_id, MilestoneAction.MILESTONE_UPDATE)
        check_expected_version(milestone, data.expected_version)
        plan = await self._ensure_editable(milestone)

        changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})
        update: dict = {}
        if "title" in changes:
            update["title"] = validate_title(changes["title"])
        if changes.get("description") is not None:
            update["description"] = changes["description"].strip()
        if "amount" in changes:
            update["amount"] = validate_amount(changes["amount"])
        if changes.get("currency") is not None:
            if normalize_currency(changes["currency"]) != milestone.currency:
                raise ValidationError("Currency cannot be changed after creation")
        if "due_date" in changes:
            if changes["due_date"] is None:
                raise ValidationError("Due date is required")
            due_date = ensure_utc(changes["due_date"])
            update["due_date"] = due_date
            update["deadline_days"] = days_until(due_date, milestone.created_at)

        update["updated_at"] = self.context.now()
        await self._fence_plan(plan)
        saved = await self.milestone_repo.save(milestone.model_copy(update=update), milestone.version)
        logger.info(f"Milestone {milestone_id} updated by {user_id}")
        return saved

    async def delete(self, user_id: str, milestone_id: UUID, expected_version: Optional[int] = None) -> None:
        milestone = await self._load(milestone_id, user_id, MilestoneAction.MILESTONE_DELETE)
        check_expected_version(milestone, expected_version)
        plan = await self._ensure_editable(milestone)
        await self._fence_plan(plan)

        if not await self.milestone_repo.delete(milestone):
            raise ConflictError(f"Milestone {milestone_id} was modified since it was read")
        logger.info(f"Milestone {milestone_id} deleted by {user_id}")

    # =========================================================================
    # Transitions
    # =========================================================================

    def _ensure_transition(self, milestone: Milestone, action: MilestoneAction) -> None:
        allowed = TRANSITIONS[action]
        if milestone.status not in allowed:
            expected = " or ".join(status.value for status in allowed)
            raise ConflictError(
                f"Cannot {action.value.split('.')[-1]} a {milestone.status.value} milestone "
                f"(must be {expected})",
                details={"status": milestone.status.value},
            )

    async def _transition(
        self,
        user_id: str,
        milestone_id: UUID,
        action: MilestoneAction,
        expected_version: Optional[int],
    ) -> Milestone:
        milestone = await self._load(milestone_id, user_id, action)
        check_expected_version(milestone, expected_version)
        self._ensure_transition(milestone, action)
        return milestone

    async def _commit(self, milestone: Milestone, read_version: int, update: dict, user_id: str) -> Milestone:
        previous = milestone.status
        saved = await self.milestone_repo.save(milestone.model_copy(update=update), read_version)
        logger.info(
            f"Milestone {saved.id}: {previous.value} -> {saved.status.value} by {user_id}"
        )
        return saved

    async def start(self, user_id: str, milestone_id: UUID, data: Optional[MilestoneTransition] = None) -> Milestone:
        """Freelancer starts work. A rejected milestone can be restarted for rework."""
        data = data or MilestoneTransition()
        milestone = await self._transition(user_id, milestone_id, MilestoneAction.MILESTONE_START, data.expected_version)
        now = self.context.now()
        return await self._commit(
            milestone,
            milestone.version,
            {"status": MilestoneStatus.IN_PROGRESS, "started_at": now, "updated_at": now},
            user_id,
        )

    async def submit(self, user_id: str, milestone_id: UUID, data: MilestoneSubmission) -> Milestone:
        """Freelancer submits the work for review. Notes are required."""
        milestone = await self._transition(user_id, milestone_id, MilestoneAction.MILESTONE_SUBMIT, data.expected_version)
        notes = data.notes.strip()
        if not notes:
            raise ValidationError("Submission notes are required")

        now = self.context.now()
        return await self._commit(
            milestone,
            milestone.version,
            {
                "status": MilestoneStatus.SUBMITTED,
                "submitted_at": now,
                "submission_notes": notes,
                "deliverable_urls": [url.strip() for url in data.deliverable_urls if url.strip()],
                "updated_at": now,
            },
            user_id,
        )

    async def approve(self, user_id: str, milestone_id: UUID, data: Optional[MilestoneReview] = None) -> Milestone:
        """
        Client approves the submission and the milestone amount is released.

        The payment is released before the status is written. Releases are
        idempotent per milestone, so an approval retried after a failed write
        returns the original receipt instead of paying twice.

        Raises:
            UpstreamError: Payment release failed; the milestone stays submitted
        """
        data = data or MilestoneReview()
        milestone = await self._transition(user_id, milestone_id, MilestoneAction.MILESTONE_APPROVE, data.expected_version)

        request = PaymentReleaseRequest(
            milestone_id=milestone.id,
            proposal_id=milestone.proposal_id,
            client_id=milestone.client_id,
            freelancer_id=milestone.freelancer_id,
            amount=milestone.amount,
            currency=milestone.currency,
            description=milestone.title,
        )
        try:
            receipt = await self.payment_gateway.release(request)
        except UpstreamError:
            logger.warning(f"Payment release failed for milestone {milestone_id}; approval not applied")
            raise

        now = self.context.now()
        feedback = (data.feedback or "").strip() or None
        return await self._commit(
            milestone,
            milestone.version,
            {
                "status": MilestoneStatus.APPROVED,
                "approved_at": now,
                "approval_feedback": feedback,
                "payment_status": PaymentStatus.RELEASED,
                "payment_reference": receipt.reference,
                "payment_released_at": receipt.released_at,
                "updated_at": now,
            },
            user_id,
        )

    async def reject(self, user_id: str, milestone_id: UUID, data: MilestoneReview) -> Milestone:
        """Client rejects the submission with feedback for the freelancer."""
        milestone = await self._transition(user_id, milestone_id, MilestoneAction.MILESTONE_REJECT, data.expected_version)
        feedback = (data.feedback or "").strip()
        if not feedback:
            raise ValidationError("Rejection feedback is required")

        now = self.context.now()
        return await self._commit(
            milestone,
            milestone.version,
            {
                "status": MilestoneStatus.REJECTED,
                "rejected_at": now,
                "rejection_feedback": feedback,
                "updated_at": now,
            },
            user_id,
        )
