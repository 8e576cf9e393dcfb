"""
Payment gateway interface.

Escrow is reserved when a client approves a milestone plan. Each approved
milestone is released from it afterwards. Implementations must treat
``idempotency_key`` as the identity of an operation, so that a retried call
returns the original receipt instead of paying twice.
"""

from abc import ABC, abstractmethod

from marketplace.models.payment import (
    EscrowReceipt,
    EscrowRequest,
    PaymentReceipt,
    PaymentReleaseRequest,
)


class IPaymentGateway(ABC):
    """Interface for escrow and payout operations."""

    @abstractmethod
    async def reserve_escrow(self, request: EscrowRequest) -> EscrowReceipt:
        """
        Lock the plan total from the client's funds.

        Raises:
            UpstreamError: If the reservation is declined or the gateway fails
        """
        pass

    @abstractmethod
    async def release(self, request: PaymentReleaseRequest) -> PaymentReceipt:
        """
        Pay one milestone out to the freelancer.

        Raises:
            UpstreamError: If the release is declined or the gateway fails
        """
        pass
