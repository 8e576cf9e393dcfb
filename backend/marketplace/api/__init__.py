"""API routers."""

from marketplace.api import milestone_plans, milestones

__all__ = [
    "milestones",
    "milestone_plans",
]
