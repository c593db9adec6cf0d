"""Checkout HTTP client.

Talks to the checkout backend for the two post-payment reads: payment
status for a payment session and the order created for that session by
the payment webhook.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

from packstore.infrastructure.config import settings

logger = structlog.get_logger()


class CheckoutApiError(Exception):
    """Error from a checkout backend call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ============================================================================
# Response Types
# ============================================================================


@dataclass
class PaymentStatus:
    """Payment status for a payment session."""

    paid: bool
    status: str
    session_id: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PaymentStatus":
        """Create from API response data."""
        return cls(
            paid=bool(data.get("paid", False)),
            status=str(data.get("paymentStatus") or data.get("status") or "unknown"),
            session_id=str(data.get("sessionId") or data.get("session_id") or ""),
        )


@dataclass
class OrderRecord:
    """Read-only view of a materialized order."""

    id: str
    status: str
    total: str | None
    session_id: str
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api_response(cls, data: dict[str, Any], session_id: str = "") -> "OrderRecord":
        """Create from API response data."""
        total = data.get("total")
        return cls(
            id=str(data.get("id") or data.get("order_number") or ""),
            status=str(data.get("status") or "unknown"),
            total=str(total) if total is not None else None,
            session_id=str(data.get("stripe_session_id") or data.get("session_id") or session_id),
            raw=data,
        )


class OrderLookupOutcome(str, Enum):
    """How an order lookup ended."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    UNREACHABLE = "unreachable"


@dataclass
class OrderLookupResult:
    """Result of looking up the order for a payment session.

    NOT_FOUND means the webhook has not written the order yet; FAILED
    carries any other non-2xx status.
    """

    outcome: OrderLookupOutcome
    order: OrderRecord | None = None
    status_code: int | None = None
    error: str | None = None

    @property
    def is_retryable(self) -> bool:
        return self.outcome in (OrderLookupOutcome.NOT_FOUND, OrderLookupOutcome.UNREACHABLE)


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, or None if the body is not one."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


# ============================================================================
# Checkout API Client
# ============================================================================


class CheckoutApiClient:
    """HTTP client for the checkout backend."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize checkout client.

        Args:
            base_url: Checkout backend base URL.
            timeout: Request timeout in seconds.
            request_id: Optional request ID for correlation.
        """
        self.base_url = base_url or settings.checkout_api_url
        self.timeout = timeout if timeout is not None else settings.checkout_api_timeout
        self.request_id = request_id
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {}
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def verify_payment_status(self, session_token: str) -> PaymentStatus:
        """Confirm payment status with the payment processor.

        Args:
            session_token: Payment session token from the redirect.

        Returns:
            Payment status.

        Raises:
            CheckoutApiError: On non-2xx response, transport failure or a
                body that is not a JSON object.
        """
        try:
            client = await self._get_client()
            response = await client.get(f"/api/verify-payment/{session_token}")
        except httpx.RequestError as e:
            logger.error(
                "Payment verification request failed",
                session_token=session_token,
                error=str(e),
            )
            raise CheckoutApiError(f"Request failed: {e}") from e

        if not response.is_success:
            raise CheckoutApiError(
                f"Failed to verify payment: {response.status_code}",
                response.status_code,
            )

        data = _json_object(response)
        if data is None:
            logger.error(
                "Payment verification returned an unreadable body",
                session_token=session_token,
                status_code=response.status_code,
            )
            raise CheckoutApiError(
                "Failed to verify payment: unreadable response",
                response.status_code,
            )

        status = PaymentStatus.from_api_response(data)
        logger.info(
            "Payment status verified",
            session_token=session_token,
            paid=status.paid,
            payment_status=status.status,
        )
        return status

    async def get_order_by_session_token(self, session_token: str) -> OrderLookupResult:
        """Look up the order created for a payment session.

        Never raises; every outcome is reported in the result. A 2xx
        whose body is not a JSON object is reported as FAILED.

        Args:
            session_token: Payment session token.

        Returns:
            Lookup result.
        """
        try:
            client = await self._get_client()
            response = await client.get(f"/api/orders/by-session/{session_token}")
        except httpx.RequestError as e:
            logger.warning(
                "Order lookup request failed",
                session_token=session_token,
                error=str(e),
            )
            return OrderLookupResult(outcome=OrderLookupOutcome.UNREACHABLE, error=str(e))

        if response.status_code == 404:
            return OrderLookupResult(outcome=OrderLookupOutcome.NOT_FOUND, status_code=404)

        if not response.is_success:
            return OrderLookupResult(
                outcome=OrderLookupOutcome.FAILED,
                status_code=response.status_code,
                error=f"Failed to fetch order: {response.status_code} - {response.text}",
            )

        data = _json_object(response)
        if data is None:
            logger.warning(
                "Order lookup returned an unreadable body",
                session_token=session_token,
                status_code=response.status_code,
            )
            return OrderLookupResult(
                outcome=OrderLookupOutcome.FAILED,
                status_code=response.status_code,
                error=f"Failed to fetch order: unreadable response ({response.status_code})",
            )

        order = OrderRecord.from_api_response(data, session_id=session_token)
        return OrderLookupResult(
            outcome=OrderLookupOutcome.FOUND,
            order=order,
            status_code=response.status_code,
        )


# Global client instance
_checkout_client: CheckoutApiClient | None = None


def get_checkout_client() -> CheckoutApiClient:
    """Get checkout client singleton."""
    global _checkout_client
    if _checkout_client is None:
        _checkout_client = CheckoutApiClient()
    return _checkout_client


async def close_checkout_client() -> None:
    """Close and drop the checkout client singleton."""
    global _checkout_client
    if _checkout_client is not None:
        await _checkout_client.close()
    _checkout_client = None
