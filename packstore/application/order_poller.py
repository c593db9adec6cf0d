"""Order materialization poller.

After the payment redirect the order record is written asynchronously
by the payment webhook, so it may not exist yet when the customer lands
on the success page. The poller reconciles the two:

1. VERIFYING_PAYMENT - one call to confirm payment with the processor
2. POLLING_FOR_ORDER - bounded order lookups by payment session token
3. FOUND / NOT_FOUND_TIMEOUT / ERROR - terminal

A 404 from the order lookup means "not written yet" and is retried, as
is a transport failure. Any other non-2xx is fatal. A hard ceiling
bounds the whole run, verification included. On FOUND the local cart
is cleared exactly once.

Cancelling a poll (the success view went away) stops the run; no state
is written after cancellation.
"""

import asyncio
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from packstore.domain.state_machines import PollerState, validate_poller_transition
from packstore.infrastructure.checkout_client import (
    CheckoutApiError,
    OrderLookupOutcome,
    OrderLookupResult,
    OrderRecord,
    PaymentStatus,
)

logger = structlog.get_logger()

MAX_ATTEMPTS = 10
RETRY_DELAY_SECONDS = 1.5
TIMEOUT_SECONDS = 30.0
DEFAULT_SUPPORT_EMAIL = "support@packstore.example"
RETAINED_FINISHED_POLLS = 500


class PaymentVerifier(Protocol):
    async def verify_payment_status(self, session_token: str) -> PaymentStatus:
        ...


class OrderLookup(Protocol):
    async def get_order_by_session_token(self, session_token: str) -> OrderLookupResult:
        ...


OrderFoundCallback = Callable[[OrderRecord], Awaitable[None]]


@dataclass(frozen=True)
class PollerSnapshot:
    """Point-in-time view of a poller for progress UIs."""

    session_id: str
    state: PollerState
    attempt: int
    max_attempts: int
    order: OrderRecord | None
    error: str | None
    payment_status: str | None
    cancelled: bool

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "order": self.order.raw if self.order else None,
            "error": self.error,
            "payment_status": self.payment_status,
            "cancelled": self.cancelled,
            "is_terminal": self.is_terminal,
        }


class PollHandle:
    """Cancellable handle on a running poll."""

    def __init__(self, poller: "OrderMaterializationPoller", task: asyncio.Task) -> None:
        self._poller = poller
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Stop the poll. Safe to call more than once."""
        self._poller.cancel()

    def add_done_callback(self, callback: Callable[[], None]) -> None:
        """Run a callback once the poll finishes or is cancelled."""
        self._task.add_done_callback(lambda _task: callback())

    async def wait(self) -> PollerSnapshot:
        """Wait for the poll to finish or be cancelled."""
        await asyncio.wait({self._task})
        return self._poller.snapshot()


# ============================================================================
# Poller
# ============================================================================


class OrderMaterializationPoller:
    """State machine that waits for a paid order to be materialized."""

    def __init__(
        self,
        session_token: str | None,
        verifier: PaymentVerifier,
        lookup: OrderLookup,
        on_order_found: OrderFoundCallback | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        timeout: float = TIMEOUT_SECONDS,
        support_email: str = DEFAULT_SUPPORT_EMAIL,
    ) -> None:
        """Initialize the poller.

        Args:
            session_token: Payment session token from the redirect.
            verifier: Payment status collaborator.
            lookup: Order lookup collaborator.
            on_order_found: Cart clearing callback, run once on FOUND.
            max_attempts: Maximum order lookups.
            retry_delay: Seconds between lookups.
            timeout: Ceiling for the whole run in seconds.
            support_email: Contact shown in failure messages.
        """
        self.session_token = session_token or ""
        self._verifier = verifier
        self._lookup = lookup
        self._on_order_found = on_order_found
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.support_email = support_email

        self.state = PollerState.VERIFYING_PAYMENT
        self.attempt = 0
        self.order: OrderRecord | None = None
        self.error: str | None = None
        self.payment_status: str | None = None

        self._cancelled = False
        self._cart_cleared = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_active(self) -> bool:
        """Running and not cancelled."""
        return self._task is not None and not self._task.done() and not self._cancelled

    def snapshot(self) -> PollerSnapshot:
        return PollerSnapshot(
            session_id=self.session_token,
            state=self.state,
            attempt=self.attempt,
            max_attempts=self.max_attempts,
            order=self.order,
            error=self.error,
            payment_status=self.payment_status,
            cancelled=self._cancelled,
        )

    def start(self) -> PollHandle:
        """Run the poll in a background task.

        Returns:
            Handle for waiting on or cancelling the poll.
        """
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return PollHandle(self, self._task)

    def cancel(self) -> None:
        """Stop polling and freeze the current state."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(
            "Order poll cancelled",
            session_token=self.session_token,
            state=self.state.value,
            attempt=self.attempt,
        )

    async def run(self) -> PollerSnapshot:
        """Drive the state machine to a terminal state.

        Returns:
            Final snapshot.
        """
        if not self.session_token:
            self._transition(PollerState.ERROR, error="No session ID provided")
            return self.snapshot()

        try:
            await asyncio.wait_for(self._drive(), timeout=self.timeout)
        except asyncio.TimeoutError:
            if not self.state.is_terminal():
                self._transition(
                    PollerState.NOT_FOUND_TIMEOUT,
                    error=(
                        "Payment verification timed out. Please contact "
                        f"{self.support_email} if your payment was processed."
                    ),
                )
        except Exception as e:
            logger.exception(
                "Order poll failed unexpectedly",
                session_token=self.session_token,
                state=self.state.value,
                attempt=self.attempt,
                error=str(e),
            )
            if not self.state.is_terminal():
                self._transition(
                    PollerState.ERROR,
                    error=(
                        "Unable to confirm your order. Please contact "
                        f"{self.support_email} if your payment was processed."
                    ),
                )
        return self.snapshot()

    async def _drive(self) -> None:
        try:
            payment = await self._verifier.verify_payment_status(self.session_token)
        except CheckoutApiError as e:
            self._transition(PollerState.ERROR, error=e.message)
            return

        self._set(payment_status=payment.status)
        if not payment.paid:
            self._transition(
                PollerState.ERROR,
                error=f"Payment not completed. Status: {payment.status}",
            )
            return

        self._transition(PollerState.POLLING_FOR_ORDER)

        for attempt in range(1, self.max_attempts + 1):
            self._set(attempt=attempt)
            result = await self._lookup.get_order_by_session_token(self.session_token)

            if result.outcome == OrderLookupOutcome.FOUND:
                self._set(order=result.order)
                self._transition(PollerState.FOUND)
                await self._clear_cart_once()
                return

            if not result.is_retryable:
                self._transition(PollerState.ERROR, error=result.error)
                return

            logger.info(
                "Order not yet available",
                session_token=self.session_token,
                attempt=attempt,
                max_attempts=self.max_attempts,
                outcome=result.outcome.value,
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay)

        self._transition(
            PollerState.NOT_FOUND_TIMEOUT,
            error=(
                "Order not found after multiple attempts. Please check your email "
                f"for confirmation or contact {self.support_email}."
            ),
        )

    async def _clear_cart_once(self) -> None:
        if self._cart_cleared or self._on_order_found is None or self.order is None:
            return
        self._cart_cleared = True
        try:
            await self._on_order_found(self.order)
        except Exception as e:
            logger.error(
                "Failed to clear cart after order found",
                session_token=self.session_token,
                order_id=self.order.id,
                error=str(e),
            )

    def _set(self, **fields: Any) -> None:
        if self._cancelled:
            return
        for name, value in fields.items():
            setattr(self, name, value)

    def _transition(self, target: PollerState, error: str | None = None) -> None:
        if self._cancelled:
            return
        validate_poller_transition(self.session_token, self.state, target)
        previous = self.state
        self.state = target
        if error is not None:
            self.error = error

        log = logger.warning if target in (PollerState.ERROR, PollerState.NOT_FOUND_TIMEOUT) else logger.info
        log(
            "Order poller state changed",
            session_token=self.session_token,
            from_state=previous.value,
            to_state=target.value,
            attempt=self.attempt,
            error=error,
        )


# ============================================================================
# Registry
# ============================================================================


PollerFactory = Callable[[str], OrderMaterializationPoller]


class PollerRegistry:
    """Pollers keyed by payment session token.

    Running pollers are held until their task ends. Finished and
    cancelled pollers then move to a bounded map of recent results so
    the success view can still read the outcome; the oldest result is
    dropped first.
    """

    def __init__(self, max_finished: int = RETAINED_FINISHED_POLLS) -> None:
        self.max_finished = max_finished
        self._running: dict[str, OrderMaterializationPoller] = {}
        self._finished: OrderedDict[str, OrderMaterializationPoller] = OrderedDict()

    def start(self, session_token: str, factory: PollerFactory) -> OrderMaterializationPoller:
        """Start a poller, or return the one already running for the token."""
        existing = self._running.get(session_token)
        if existing is not None and existing.is_active:
            return existing
        self._finished.pop(session_token, None)

        poller = factory(session_token)
        self._running[session_token] = poller
        handle = poller.start()
        handle.add_done_callback(lambda: self._retire(session_token, poller))
        return poller

    def _retire(self, session_token: str, poller: OrderMaterializationPoller) -> None:
        if self._running.get(session_token) is not poller:
            return
        del self._running[session_token]
        self._finished[session_token] = poller
        while len(self._finished) > self.max_finished:
            dropped, _ = self._finished.popitem(last=False)
            logger.debug("Dropped finished order poll", session_token=dropped)

    def get(self, session_token: str) -> OrderMaterializationPoller | None:
        poller = self._running.get(session_token)
        if poller is None:
            poller = self._finished.get(session_token)
        return poller

    def cancel(self, session_token: str) -> bool:
        """Cancel the poller for a token.

        Returns:
            True if a poller is known for the token.
        """
        poller = self.get(session_token)
        if poller is None:
            return False
        poller.cancel()
        return True

    def cancel_all(self) -> None:
        for poller in list(self._running.values()):
            poller.cancel()

    @property
    def running_count(self) -> int:
        return len(self._running)

    def __len__(self) -> int:
        return len(self._running) + len(self._finished)


# Global registry instance
_poller_registry: PollerRegistry | None = None


def get_poller_registry() -> PollerRegistry:
    """Get the poller registry singleton."""
    global _poller_registry
    if _poller_registry is None:
        _poller_registry = PollerRegistry()
    return _poller_registry


def reset_poller_registry() -> None:
    """Cancel every poller and drop the registry (for testing)."""
    global _poller_registry
    if _poller_registry is not None:
        _poller_registry.cancel_all()
    _poller_registry = None
