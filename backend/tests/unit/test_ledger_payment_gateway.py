"""
Unit tests for the record-store ledger payment gateway.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace.core.exceptions import UpstreamError
from marketplace.infrastructure.local.ledger_payment_gateway import LedgerPaymentGateway
from marketplace.infrastructure.local.memory_record_store import InMemoryRecordStore
from marketplace.models.payment import EscrowRequest, PaymentReleaseRequest


class FlakyReleaseStore(InMemoryRecordStore):
    """Store whose next payment_release write fails once."""

    def __init__(self):
        super().__init__()
        self.failures = 1

    async def compare_and_set(self, key, value, expected_version):
        if key.startswith("payment_release:") and self.failures:
            self.failures -= 1
            raise UpstreamError("Record store write failed")
        return await super().compare_and_set(key, value, expected_version)


def _escrow_request(proposal_id, amount="25000", currency="TWD") -> EscrowRequest:
    return EscrowRequest(
        proposal_id=proposal_id,
        project_id=uuid4(),
        client_id="client",
        freelancer_id="freelancer",
        amount=Decimal(amount),
        currency=currency,
        milestone_count=2,
    )


def _release_request(proposal_id, amount="10000", currency="TWD", milestone_id=None) -> PaymentReleaseRequest:
    return PaymentReleaseRequest(
        milestone_id=milestone_id or uuid4(),
        proposal_id=proposal_id,
        client_id="client",
        freelancer_id="freelancer",
        amount=Decimal(amount),
        currency=currency,
    )


@pytest.mark.asyncio
async def test_reserve_escrow_is_idempotent(payment_gateway):
    proposal_id = uuid4()

    first = await payment_gateway.reserve_escrow(_escrow_request(proposal_id))
    second = await payment_gateway.reserve_escrow(_escrow_request(proposal_id))

    assert first.reference.startswith("esc_")
    assert second.reference == first.reference
    assert second.amount == Decimal("25000")


@pytest.mark.asyncio
async def test_release_without_escrow_is_direct_payment(payment_gateway, clock):
    receipt = await payment_gateway.release(_release_request(uuid4()))

    assert receipt.reference.startswith("pay_")
    assert receipt.escrow_reference is None
    assert receipt.released_at == clock()
    assert receipt.replayed is False


@pytest.mark.asyncio
async def test_release_is_idempotent_per_milestone(payment_gateway, store):
    proposal_id = uuid4()
    milestone_id = uuid4()
    await payment_gateway.reserve_escrow(_escrow_request(proposal_id))

    first = await payment_gateway.release(_release_request(proposal_id, milestone_id=milestone_id))
    second = await payment_gateway.release(_release_request(proposal_id, milestone_id=milestone_id))

    assert second.reference == first.reference
    assert second.replayed is True
    escrow = await store.get(f"escrow:{proposal_id}")
    assert Decimal(escrow["released_amount"]) == Decimal("10000")


@pytest.mark.asyncio
async def test_release_completes_escrow(payment_gateway, store):
    proposal_id = uuid4()
    await payment_gateway.reserve_escrow(_escrow_request(proposal_id))

    await payment_gateway.release(_release_request(proposal_id, amount="10000"))
    receipt = await payment_gateway.release(_release_request(proposal_id, amount="15000"))

    escrow = await store.get(f"escrow:{proposal_id}")
    assert receipt.escrow_reference == escrow["reference"]
    assert escrow["status"] == "completed"
    assert "completed_at" in escrow


@pytest.mark.asyncio
async def test_release_beyond_escrow_fails(payment_gateway, store):
    proposal_id = uuid4()
    milestone_id = uuid4()
    await payment_gateway.reserve_escrow(_escrow_request(proposal_id, amount="5000"))

    with pytest.raises(UpstreamError):
        await payment_gateway.release(_release_request(proposal_id, amount="10000", milestone_id=milestone_id))

    assert await store.get(f"payment_release:{milestone_id}") is None


@pytest.mark.asyncio
async def test_release_currency_mismatch_fails(payment_gateway):
    proposal_id = uuid4()
    await payment_gateway.reserve_escrow(_escrow_request(proposal_id, currency="TWD"))

    with pytest.raises(UpstreamError):
        await payment_gateway.release(_release_request(proposal_id, currency="USD"))


@pytest.mark.asyncio
async def test_retry_after_failed_receipt_write_does_not_debit_twice(clock):
    store = FlakyReleaseStore()
    gateway = LedgerPaymentGateway(store, clock=clock)
    proposal_id = uuid4()
    milestone_id = uuid4()
    await gateway.reserve_escrow(_escrow_request(proposal_id, amount="10000"))

    with pytest.raises(UpstreamError):
        await gateway.release(_release_request(proposal_id, milestone_id=milestone_id))

    receipt = await gateway.release(_release_request(proposal_id, milestone_id=milestone_id))

    escrow = await store.get(f"escrow:{proposal_id}")
    assert receipt.replayed is True
    assert receipt.reference == escrow["releases"][str(milestone_id)]["reference"]
    assert Decimal(escrow["released_amount"]) == Decimal("10000")
    assert (await store.get(f"payment_release:{milestone_id}"))["reference"] == receipt.reference
