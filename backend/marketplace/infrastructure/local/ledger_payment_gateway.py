"""
Ledger payment gateway.

Keeps escrow and payout bookkeeping in the record store instead of calling an
external processor. Used for local development and as the default provider.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from marketplace.core.exceptions import ConcurrentModificationError, UpstreamError
from marketplace.core.logger import setup_logger
from marketplace.infrastructure.local.keys import escrow_key, payment_release_key
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.interfaces.record_store import IRecordStore
from marketplace.models.payment import (
    EscrowReceipt,
    EscrowRequest,
    PaymentReceipt,
    PaymentReleaseRequest,
)
from marketplace.utils.datetime_utils import now_utc

logger = setup_logger(__name__)

# Escrow is considered fully released within this tolerance
RELEASE_TOLERANCE = Decimal("0.01")


class LedgerPaymentGateway(IPaymentGateway):
    """Record-store ledger implementing escrow reservation and idempotent releases."""

    def __init__(self, store: IRecordStore, clock: Callable[[], datetime] = now_utc):
        self._store = store
        self._clock = clock

    async def reserve_escrow(self, request: EscrowRequest) -> EscrowReceipt:
        key = escrow_key(request.proposal_id)
        existing = await self._store.get(key)
        if existing:
            logger.info(f"Escrow for proposal {request.proposal_id} already reserved")
            return self._escrow_receipt(existing)

        now = self._clock()
        escrow = {
            "reference": f"esc_{uuid4().hex}",
            "proposal_id": str(request.proposal_id),
            "project_id": str(request.project_id),
            "client_id": request.client_id,
            "freelancer_id": request.freelancer_id,
            "amount": str(request.amount),
            "released_amount": "0",
            "currency": request.currency,
            "milestone_count": request.milestone_count,
            "status": "locked",
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        try:
            await self._store.compare_and_set(key, escrow, None)
        except ConcurrentModificationError:
            # Another approval won the race; its reservation stands
            return self._escrow_receipt(await self._store.get(key))

        logger.info(
            f"Escrow {escrow['reference']} locked {request.amount} {request.currency} "
            f"for proposal {request.proposal_id}"
        )
        return self._escrow_receipt(escrow)

    async def release(self, request: PaymentReleaseRequest) -> PaymentReceipt:
        release_key = payment_release_key(request.milestone_id)
        previous = await self._store.get(release_key)
        if previous:
            logger.info(f"Payment for milestone {request.milestone_id} already released")
            return PaymentReceipt.model_validate({**previous, "replayed": True})

        receipt = PaymentReceipt(
            reference=f"pay_{uuid4().hex}",
            milestone_id=request.milestone_id,
            amount=request.amount,
            currency=request.currency,
            released_at=self._clock(),
        )
        receipt = await self._draw_from_escrow(request, receipt)

        try:
            await self._store.compare_and_set(
                release_key, receipt.model_dump(mode="json", exclude={"replayed"}), None
            )
        except ConcurrentModificationError:
            previous = await self._store.get(release_key)
            return PaymentReceipt.model_validate({**previous, "replayed": True})

        logger.info(
            f"Released {request.amount} {request.currency} to freelancer "
            f"{request.freelancer_id} for milestone {request.milestone_id}"
        )
        return receipt

    async def _draw_from_escrow(self, request: PaymentReleaseRequest, receipt: PaymentReceipt) -> PaymentReceipt:
        """
        Deduct the release from the proposal's escrow, if one was reserved.

        The receipt is stored in the escrow document in the same write as the
        debit, so a milestone is never debited twice even when the release
        record could not be written afterwards.
        """
        key = escrow_key(request.proposal_id)
        record = await self._store.get_versioned(key)
        if not record:
            # Direct payment: milestones paid without an approved plan
            return receipt

        escrow = record.value
        releases = escrow.get("releases", {})
        paid_id = str(request.milestone_id)
        if paid_id in releases:
            logger.info(f"Escrow {escrow['reference']} already paid milestone {request.milestone_id}")
            return PaymentReceipt.model_validate({**releases[paid_id], "replayed": True})

        if escrow["currency"] != request.currency:
            raise UpstreamError(
                f"Escrow currency {escrow['currency']} does not match payment currency {request.currency}"
            )
        amount = Decimal(escrow["amount"])
        released = Decimal(escrow["released_amount"])
        remaining = amount - released
        if remaining + RELEASE_TOLERANCE < request.amount:
            raise UpstreamError(
                f"Insufficient escrow funds. Available: {remaining}, required: {request.amount}",
                details={"available": str(remaining), "required": str(request.amount)},
            )

        receipt = receipt.model_copy(update={"escrow_reference": escrow["reference"]})
        released += request.amount
        escrow = {
            **escrow,
            "released_amount": str(released),
            "releases": {**releases, paid_id: receipt.model_dump(mode="json", exclude={"replayed"})},
            "updated_at": self._clock().isoformat(),
        }
        if abs(amount - released) < RELEASE_TOLERANCE:
            escrow["status"] = "completed"
            escrow["completed_at"] = escrow["updated_at"]
        await self._store.compare_and_set(key, escrow, record.version)
        return receipt

    def _escrow_receipt(self, escrow: dict) -> EscrowReceipt:
        return EscrowReceipt(
            reference=escrow["reference"],
            proposal_id=escrow["proposal_id"],
            amount=Decimal(escrow["amount"]),
            currency=escrow["currency"],
            reserved_at=escrow["created_at"],
        )
