"""Abstract interfaces for infrastructure abstraction."""

from marketplace.interfaces.auth_provider import IAuthProvider, User
from marketplace.interfaces.milestone_repository import IMilestoneRepository
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.interfaces.proposal_repository import (
    IMilestonePlanRepository,
    IProposalRepository,
)
from marketplace.interfaces.record_store import IRecordStore, VersionedRecord
from marketplace.interfaces.usage_gate import IUsageGate

__all__ = [
    "IAuthProvider",
    "IMilestonePlanRepository",
    "IMilestoneRepository",
    "IPaymentGateway",
    "IProposalRepository",
    "IRecordStore",
    "IUsageGate",
    "User",
    "VersionedRecord",
]
