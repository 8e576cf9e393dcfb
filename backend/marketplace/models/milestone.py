"""
Milestone model definitions.

A milestone is one payable deliverable within a proposal.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from marketplace.models.enums import MilestoneStatus, PaymentStatus


class MilestoneCreate(BaseModel):
    """
    Schema for creating a milestone.

    Business rules (non-empty title, positive amount, required due date) are
    enforced by the milestone service so that they surface as validation
    errors rather than schema errors.
    """

    proposal_id: UUID = Field(..., description="Proposal ID")
    title: str = Field("", max_length=200, description="Milestone title")
    description: str = Field("", max_length=5000, description="Milestone description")
    amount: Decimal = Field(..., description="Payable amount")
    due_date: Optional[datetime] = Field(None, description="Target due date")
    currency: Optional[str] = Field(None, description="Defaults to the proposal currency")


class MilestoneUpdate(BaseModel):
    """Schema for updating a pending milestone."""

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    amount: Optional[Decimal] = None
    due_date: Optional[datetime] = None
    currency: Optional[str] = None
    expected_version: Optional[int] = Field(None, description="Version the caller last read")


class MilestoneSubmission(BaseModel):
    """Freelancer work submission."""

    notes: str = Field("", max_length=5000)
    deliverable_urls: list[str] = Field(default_factory=list)
    expected_version: Optional[int] = None


class MilestoneReview(BaseModel):
    """Client approval or rejection."""

    feedback: Optional[str] = Field(None, max_length=5000)
    expected_version: Optional[int] = None


class MilestoneTransition(BaseModel):
    """Body for transitions that carry no payload (start)."""

    expected_version: Optional[int] = None


class Milestone(BaseModel):
    """Complete milestone model."""

    id: UUID
    proposal_id: UUID
    project_id: UUID
    client_id: str
    freelancer_id: str
    created_by: str

    title: str
    description: str = ""
    amount: Decimal
    currency: str
    order: int = Field(1, ge=1)
    status: MilestoneStatus = MilestoneStatus.PENDING

    due_date: Optional[datetime] = None
    deadline_days: Optional[int] = None

    submission_notes: Optional[str] = None
    deliverable_urls: list[str] = Field(default_factory=list)
    approval_feedback: Optional[str] = None
    rejection_feedback: Optional[str] = None

    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_reference: Optional[str] = None
    payment_released_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    # Store version the record was read at; not persisted in the document
    version: int = 0


class MilestoneStats(BaseModel):
    """Progress summary for a proposal's milestones."""

    proposal_id: UUID
    currency: str
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    submitted: int = 0
    approved: int = 0
    rejected: int = 0
    total_amount: Decimal = Decimal("0")
    completed_amount: Decimal = Decimal("0")
    progress_percentage: float = 0.0
