"""
Create mock proposals and subscriptions for local development.

Run from the backend directory after configuring the record store:

    python create_mock_proposals.py
"""
import asyncio
import sys
from decimal import Decimal
from uuid import UUID

sys.path.insert(0, ".")

from marketplace.api.deps import get_proposal_repository, get_record_store
from marketplace.core.config import get_settings
from marketplace.infrastructure.local.keys import subscription_key
from marketplace.models.enums import SubscriptionTier
from marketplace.models.proposal import Proposal
from marketplace.models.subscription import Subscription

CLIENT_ID = "dev-user-client"
FREELANCER_ID = "dev-user-freelancer"


async def create_mock_proposals():
    """Create mock proposals."""
    settings = get_settings()
    if settings.RECORD_STORE == "sqlite":
        from marketplace.infrastructure.local.database import init_db

        await init_db()

    store = get_record_store()
    repo = get_proposal_repository()

    print("Creating subscriptions...")
    await store.set(
        subscription_key(CLIENT_ID),
        Subscription(user_id=CLIENT_ID, tier=SubscriptionTier.PRO).model_dump(mode="json"),
    )
    await store.set(
        subscription_key(FREELANCER_ID),
        Subscription(user_id=FREELANCER_ID, tier=SubscriptionTier.FREE).model_dump(mode="json"),
    )

    print("Creating mock proposals...")

    # Proposal 1: website redesign with an agreed budget
    proposal1 = Proposal(
        id=UUID("00000000-0000-4000-8000-000000000001"),
        project_id=UUID("00000000-0000-4000-8000-0000000000a1"),
        client_id=CLIENT_ID,
        freelancer_id=FREELANCER_ID,
        currency="TWD",
        proposed_budget=Decimal("25000"),
    )
    created1 = await repo.create(proposal1)
    print(f"✓ Created: {created1.id} ({created1.proposed_budget} {created1.currency})")

    # Proposal 2: open budget in USD
    proposal2 = Proposal(
        id=UUID("00000000-0000-4000-8000-000000000002"),
        project_id=UUID("00000000-0000-4000-8000-0000000000a2"),
        client_id=CLIENT_ID,
        freelancer_id=FREELANCER_ID,
        currency="USD",
    )
    created2 = await repo.create(proposal2)
    print(f"✓ Created: {created2.id} (open budget, {created2.currency})")

    print("\n✅ All mock proposals created successfully!")
    print(f"   Client token:     {CLIENT_ID}")
    print(f"   Freelancer token: {FREELANCER_ID}")
    if not settings.is_dev_mode:
        print("   (dev-user-* tokens require EXECUTION_MODE=dev)")


if __name__ == "__main__":
    asyncio.run(create_mock_proposals())
