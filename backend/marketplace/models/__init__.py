"""Pydantic models (schemas) for the application."""

from marketplace.models.enums import (
    ExecutionMode,
    MilestonePlanStatus,
    MilestoneStatus,
    ParticipantRole,
    PaymentStatus,
    ProposalStatus,
    SubscriptionTier,
)
from marketplace.models.milestone import (
    Milestone,
    MilestoneCreate,
    MilestoneReview,
    MilestoneStats,
    MilestoneSubmission,
    MilestoneTransition,
    MilestoneUpdate,
)
from marketplace.models.payment import (
    EscrowReceipt,
    EscrowRequest,
    PaymentReceipt,
    PaymentReleaseRequest,
)
from marketplace.models.proposal import (
    MilestonePlan,
    MilestonePlanView,
    PlanDecision,
    PlanRevisionRequest,
    Proposal,
)
from marketplace.models.subscription import Subscription, UsageSnapshot

__all__ = [
    # Enums
    "ExecutionMode",
    "MilestonePlanStatus",
    "MilestoneStatus",
    "ParticipantRole",
    "PaymentStatus",
    "ProposalStatus",
    "SubscriptionTier",
    # Milestone
    "Milestone",
    "MilestoneCreate",
    "MilestoneReview",
    "MilestoneStats",
    "MilestoneSubmission",
    "MilestoneTransition",
    "MilestoneUpdate",
    # Payment
    "EscrowReceipt",
    "EscrowRequest",
    "PaymentReceipt",
    "PaymentReleaseRequest",
    # Proposal / plan
    "MilestonePlan",
    "MilestonePlanView",
    "PlanDecision",
    "PlanRevisionRequest",
    "Proposal",
    # Subscription
    "Subscription",
    "UsageSnapshot",
]
