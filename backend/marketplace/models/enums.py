"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/role values.
"""

from enum import Enum


class MilestoneStatus(str, Enum):
    """
    Milestone lifecycle status.

    pending -> in_progress -> submitted -> approved | rejected
    rejected -> in_progress when the freelancer restarts the work
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class MilestonePlanStatus(str, Enum):
    """Review status of a proposal's whole milestone plan."""

    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"


class ParticipantRole(str, Enum):
    """Side of the proposal a user is acting for."""

    CLIENT = "client"
    FREELANCER = "freelancer"


class PaymentStatus(str, Enum):
    """Payment state of a single milestone."""

    UNPAID = "unpaid"
    RELEASED = "released"


class ProposalStatus(str, Enum):
    """Proposal status as reported by the proposal service."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class SubscriptionTier(str, Enum):
    """Subscription plan."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ExecutionMode(str, Enum):
    """Execution mode of the running process."""

    LIVE = "live"
    DEV = "dev"  # dev-user-* tokens accepted, usage gate skipped
