"""Record store key layout."""

from uuid import UUID


def proposal_key(proposal_id: UUID) -> str:
    return f"proposal:{proposal_id}"


def milestone_prefix(proposal_id: UUID) -> str:
    return f"milestone:{proposal_id}:"


def milestone_key(proposal_id: UUID, milestone_id: UUID) -> str:
    return f"{milestone_prefix(proposal_id)}{milestone_id}"


def milestone_ref_key(milestone_id: UUID) -> str:
    """Index from a milestone id to its proposal."""
    return f"milestone_ref:{milestone_id}"


def milestone_plan_key(proposal_id: UUID) -> str:
    return f"milestone_plan:{proposal_id}"


def subscription_key(user_id: str) -> str:
    return f"subscription:{user_id}"


def usage_key(user_id: str, period: str) -> str:
    return f"usage:milestones:{user_id}:{period}"


def escrow_key(proposal_id: UUID) -> str:
    return f"escrow:{proposal_id}"


def payment_release_key(milestone_id: UUID) -> str:
    return f"payment_release:{milestone_id}"
