"""
HTTP payment gateway.

Talks to an external payment service that owns wallets, escrow and payouts.
Every call carries an ``Idempotency-Key`` header so retries are safe.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from marketplace.core.exceptions import UpstreamError
from marketplace.core.logger import setup_logger
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.models.payment import (
    EscrowReceipt,
    EscrowRequest,
    PaymentReceipt,
    PaymentReleaseRequest,
)

logger = setup_logger(__name__)


class HttpPaymentGateway(IPaymentGateway):
    """Payment gateway reached over HTTPS with bearer-key auth."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("PAYMENT_API_BASE must be set for the http payment provider")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any], idempotency_key: str) -> dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Payment gateway unreachable for {path}: {exc}")
            raise UpstreamError(f"Payment gateway unreachable: {exc}") from exc

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(f"Payment gateway rejected {path} ({response.status_code}): {detail}")
            raise UpstreamError(
                f"Payment gateway rejected request: {detail}",
                details={"status_code": response.status_code, "error": detail},
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("Payment gateway returned an invalid response") from exc

    async def reserve_escrow(self, request: EscrowRequest) -> EscrowReceipt:
        data = await self._post(
            "/escrows",
            request.model_dump(mode="json"),
            request.idempotency_key,
        )
        try:
            return EscrowReceipt(
                reference=data["reference"],
                proposal_id=request.proposal_id,
                amount=request.amount,
                currency=request.currency,
                reserved_at=data["reserved_at"],
            )
        except (KeyError, TypeError, AttributeError, PydanticValidationError) as exc:
            raise _incomplete_response("/escrows", data) from exc

    async def release(self, request: PaymentReleaseRequest) -> PaymentReceipt:
        data = await self._post(
            "/payouts",
            request.model_dump(mode="json"),
            request.idempotency_key,
        )
        try:
            return PaymentReceipt(
                reference=data["reference"],
                milestone_id=request.milestone_id,
                amount=request.amount,
                currency=request.currency,
                released_at=data["released_at"],
                escrow_reference=data.get("escrow_reference"),
                replayed=bool(data.get("replayed", False)),
            )
        except (KeyError, TypeError, AttributeError, PydanticValidationError) as exc:
            raise _incomplete_response("/payouts", data) from exc


def _incomplete_response(path: str, data: Any) -> UpstreamError:
    logger.error(f"Payment gateway returned an incomplete response for {path}: {data!r}")
    return UpstreamError(
        "Payment gateway returned an incomplete response",
        details={"path": path},
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)
