"""Payment gateway request and receipt models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EscrowRequest(BaseModel):
    """Funds the client commits when a milestone plan is approved."""

    proposal_id: UUID
    project_id: UUID
    client_id: str
    freelancer_id: str
    amount: Decimal
    currency: str
    milestone_count: int = 0

    @property
    def idempotency_key(self) -> str:
        return f"escrow-{self.proposal_id}"


class EscrowReceipt(BaseModel):
    """Acknowledgement of an escrow reservation."""

    reference: str
    proposal_id: UUID
    amount: Decimal
    currency: str
    reserved_at: datetime


class PaymentReleaseRequest(BaseModel):
    """Release of one milestone's amount to the freelancer."""

    milestone_id: UUID
    proposal_id: UUID
    client_id: str
    freelancer_id: str
    amount: Decimal
    currency: str
    description: Optional[str] = None

    @property
    def idempotency_key(self) -> str:
        return f"milestone-{self.milestone_id}"


class PaymentReceipt(BaseModel):
    """Acknowledgement of a released payment."""

    reference: str
    milestone_id: UUID
    amount: Decimal
    currency: str
    released_at: datetime
    escrow_reference: Optional[str] = None
    # True when the gateway had already processed this idempotency key
    replayed: bool = Field(False)
