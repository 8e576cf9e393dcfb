from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from marketplace.core.exceptions import ForbiddenError, NotFoundError
from marketplace.interfaces.proposal_repository import IProposalRepository
from marketplace.models.enums import ParticipantRole
from marketplace.models.milestone import Milestone
from marketplace.models.proposal import Proposal


class MilestoneAction(str, Enum):
    MILESTONE_READ = "milestone.read"
    MILESTONE_CREATE = "milestone.create"
    MILESTONE_UPDATE = "milestone.update"
    MILESTONE_DELETE = "milestone.delete"
    MILESTONE_START = "milestone.start"
    MILESTONE_SUBMIT = "milestone.submit"
    MILESTONE_APPROVE = "milestone.approve"
    MILESTONE_REJECT = "milestone.reject"
    PLAN_READ = "plan.read"
    PLAN_SUBMIT = "plan.submit"
    PLAN_APPROVE = "plan.approve"
    PLAN_REQUEST_REVISION = "plan.request_revision"


BOTH_PARTIES = {ParticipantRole.CLIENT, ParticipantRole.FREELANCER}
CLIENT_ONLY = {ParticipantRole.CLIENT}
FREELANCER_ONLY = {ParticipantRole.FREELANCER}

MILESTONE_ROLE_MATRIX: dict[MilestoneAction, set[ParticipantRole]] = {
    MilestoneAction.MILESTONE_READ: BOTH_PARTIES,
    MilestoneAction.MILESTONE_CREATE: BOTH_PARTIES,
    MilestoneAction.MILESTONE_UPDATE: BOTH_PARTIES,
    MilestoneAction.MILESTONE_DELETE: BOTH_PARTIES,
    MilestoneAction.MILESTONE_START: FREELANCER_ONLY,
    MilestoneAction.MILESTONE_SUBMIT: FREELANCER_ONLY,
    MilestoneAction.MILESTONE_APPROVE: CLIENT_ONLY,
    MilestoneAction.MILESTONE_REJECT: CLIENT_ONLY,
    MilestoneAction.PLAN_READ: BOTH_PARTIES,
    MilestoneAction.PLAN_SUBMIT: FREELANCER_ONLY,
    MilestoneAction.PLAN_APPROVE: CLIENT_ONLY,
    MilestoneAction.PLAN_REQUEST_REVISION: CLIENT_ONLY,
}

ACTION_LABELS: dict[ParticipantRole, str] = {
    ParticipantRole.CLIENT: "the client",
    ParticipantRole.FREELANCER: "the freelancer",
}


@dataclass(frozen=True)
class ParticipantAccess:
    user_id: str
    roles: frozenset[ParticipantRole]

    @property
    def is_client(self) -> bool:
        return ParticipantRole.CLIENT in self.roles

    @property
    def is_freelancer(self) -> bool:
        return ParticipantRole.FREELANCER in self.roles


def roles_for_action(action: MilestoneAction) -> set[ParticipantRole]:
    return set(MILESTONE_ROLE_MATRIX.get(action, set()))


def role_allows(action: MilestoneAction, roles: frozenset[ParticipantRole]) -> bool:
    return bool(roles & roles_for_action(action))


def resolve_access(user_id: str, client_id: str, freelancer_id: str) -> ParticipantAccess:
    roles = set()
    if user_id == client_id:
        roles.add(ParticipantRole.CLIENT)
    if user_id == freelancer_id:
        roles.add(ParticipantRole.FREELANCER)
    if not roles:
        raise ForbiddenError("User is not a participant of this proposal")
    return ParticipantAccess(user_id=user_id, roles=frozenset(roles))


def ensure_action(access: ParticipantAccess, action: MilestoneAction) -> ParticipantAccess:
    if not role_allows(action, access.roles):
        allowed = roles_for_action(action)
        if len(allowed) == 1:
            (role,) = allowed
            raise ForbiddenError(f"Only {ACTION_LABELS[role]} can perform {action.value}")
        raise ForbiddenError(f"Not allowed to perform {action.value}")
    return access


def ensure_milestone_action(user_id: str, milestone: Milestone, action: MilestoneAction) -> ParticipantAccess:
    """Authorize against the participants recorded on the milestone itself."""
    access = resolve_access(user_id, milestone.client_id, milestone.freelancer_id)
    return ensure_action(access, action)


async def get_proposal_access(
    user_id: str,
    proposal_id: UUID,
    proposal_repo: IProposalRepository,
    action: MilestoneAction,
) -> tuple[Proposal, ParticipantAccess]:
    proposal = await proposal_repo.get(proposal_id)
    if not proposal:
        raise NotFoundError(f"Proposal {proposal_id} not found")
    access = resolve_access(user_id, proposal.client_id, proposal.freelancer_id)
    return proposal, ensure_action(access, action)
