"""
Shared fixtures: in-memory record store, frozen clock and a seeded proposal.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace.core.context import ExecutionContext
from marketplace.infrastructure.local.ledger_payment_gateway import LedgerPaymentGateway
from marketplace.infrastructure.local.memory_record_store import InMemoryRecordStore
from marketplace.infrastructure.local.milestone_repository import KeyValueMilestoneRepository
from marketplace.infrastructure.local.proposal_repository import (
    KeyValueMilestonePlanRepository,
    KeyValueProposalRepository,
)
from marketplace.infrastructure.local.subscription_usage_gate import SubscriptionUsageGate
from marketplace.models.enums import ExecutionMode, SubscriptionTier
from marketplace.models.milestone import MilestoneCreate
from marketplace.models.proposal import Proposal
from marketplace.services.milestone_plan_service import MilestonePlanService
from marketplace.services.milestone_service import MilestoneService
from marketplace.utils.datetime_utils import UTC


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture
def context(clock):
    return ExecutionContext(mode=ExecutionMode.LIVE, clock=clock)


@pytest.fixture
def client_id():
    return "client-1"


@pytest.fixture
def freelancer_id():
    return "freelancer-1"


@pytest.fixture
def outsider_id():
    return "outsider-1"


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def milestone_repo(store):
    return KeyValueMilestoneRepository(store)


@pytest.fixture
def proposal_repo(store):
    return KeyValueProposalRepository(store)


@pytest.fixture
def plan_repo(store):
    return KeyValueMilestonePlanRepository(store)


@pytest.fixture
def payment_gateway(store, clock):
    return LedgerPaymentGateway(store, clock=clock)


@pytest.fixture
def usage_gate(store, clock):
    return SubscriptionUsageGate(
        store,
        limits={
            SubscriptionTier.FREE: 10,
            SubscriptionTier.PRO: 100,
            SubscriptionTier.ENTERPRISE: None,
        },
        clock=clock,
    )


@pytest.fixture
async def proposal(proposal_repo, client_id, freelancer_id):
    return await proposal_repo.create(
        Proposal(
            id=uuid4(),
            project_id=uuid4(),
            client_id=client_id,
            freelancer_id=freelancer_id,
            currency="TWD",
        )
    )


@pytest.fixture
def milestone_service(milestone_repo, proposal_repo, plan_repo, usage_gate, payment_gateway, context):
    return MilestoneService(
        milestone_repo=milestone_repo,
        proposal_repo=proposal_repo,
        plan_repo=plan_repo,
        usage_gate=usage_gate,
        payment_gateway=payment_gateway,
        context=context,
    )


@pytest.fixture
def plan_service(milestone_repo, proposal_repo, plan_repo, payment_gateway, context):
    return MilestonePlanService(
        milestone_repo=milestone_repo,
        proposal_repo=proposal_repo,
        plan_repo=plan_repo,
        payment_gateway=payment_gateway,
        context=context,
    )


@pytest.fixture
def make_milestone(proposal, clock):
    """Build a MilestoneCreate for the seeded proposal."""

    def factory(**overrides) -> MilestoneCreate:
        data = {
            "proposal_id": proposal.id,
            "title": "Design mockups",
            "description": "Landing page and dashboard",
            "amount": Decimal("10000"),
            "due_date": clock() + timedelta(days=14),
        }
        data.update(overrides)
        return MilestoneCreate(**data)

    return factory
