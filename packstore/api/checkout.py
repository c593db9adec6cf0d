"""Order materialization endpoints.

Backs the post-payment success view:
- POST /checkout/success/poll - start polling for the order
- GET /checkout/success/{session_id} - progress for the view
- DELETE /checkout/success/{session_id} - view torn down, stop polling
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from packstore.api.dependencies import get_optional_actor_key
from packstore.api.schemas import ErrorResponse, PollStatusResponse, StartPollRequest
from packstore.application.cart_service import CartSessionRegistry, get_cart_registry
from packstore.application.order_poller import (
    OrderMaterializationPoller,
    PollerFactory,
    PollerRegistry,
    PollerSnapshot,
    get_poller_registry,
)
from packstore.domain.value_objects import ActorKey
from packstore.infrastructure.checkout_client import (
    CheckoutApiClient,
    OrderRecord,
    get_checkout_client,
)
from packstore.infrastructure.config import settings

logger = structlog.get_logger()

router = APIRouter(prefix="/checkout/success", tags=["Checkout"])


# ============================================================================
# Dependencies
# ============================================================================


def get_poller_factory(
    actor: Annotated[ActorKey | None, Depends(get_optional_actor_key)],
    cart_registry: Annotated[CartSessionRegistry, Depends(get_cart_registry)],
    client: Annotated[CheckoutApiClient, Depends(get_checkout_client)],
) -> PollerFactory:
    """Build pollers wired to the checkout client and the caller's cart."""

    async def clear_cart(order: OrderRecord) -> None:
        if actor is None:
            return
        service = await cart_registry.get(str(actor))
        await service.clear_cart()
        cart_registry.discard(str(actor))
        logger.info("Cart cleared after order found", actor_key=str(actor), order_id=order.id)

    def factory(session_token: str) -> OrderMaterializationPoller:
        return OrderMaterializationPoller(
            session_token,
            verifier=client,
            lookup=client,
            on_order_found=clear_cart,
            max_attempts=settings.order_poll_max_attempts,
            retry_delay=settings.order_poll_retry_delay_seconds,
            timeout=settings.order_poll_timeout_seconds,
            support_email=settings.support_email,
        )

    return factory


# ============================================================================
# Converters
# ============================================================================


def snapshot_to_response(snapshot: PollerSnapshot) -> PollStatusResponse:
    """Convert a poller snapshot to response schema."""
    data = snapshot.to_dict()
    return PollStatusResponse(**data)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/poll",
    response_model=PollStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start polling for the order",
)
async def start_poll(
    request: StartPollRequest,
    registry: Annotated[PollerRegistry, Depends(get_poller_registry)],
    factory: Annotated[PollerFactory, Depends(get_poller_factory)],
) -> PollStatusResponse:
    """Start the order materialization poller for a payment session.

    A missing session id ends in ERROR straight away. Starting again for
    a session that is still polling returns the running poller. With
    wait=true the response is sent once the poller is terminal.
    """
    if not request.session_id:
        poller = factory("")
        snapshot = await poller.run()
        return snapshot_to_response(snapshot)

    poller = registry.start(request.session_id, factory)
    if request.wait:
        snapshot = await poller.start().wait()
    else:
        snapshot = poller.snapshot()
    return snapshot_to_response(snapshot)


@router.get(
    "/{session_id}",
    response_model=PollStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get polling progress",
)
async def get_poll_status(
    session_id: str,
    registry: Annotated[PollerRegistry, Depends(get_poller_registry)],
) -> PollStatusResponse:
    """Current state and attempt count for the progress UI."""
    poller = registry.get(session_id)
    if poller is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error_code": "POLL_NOT_FOUND",
                "message": f"No order poll for session {session_id}",
            },
        )
    return snapshot_to_response(poller.snapshot())


@router.delete(
    "/{session_id}",
    response_model=PollStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cancel polling",
)
async def cancel_poll(
    session_id: str,
    registry: Annotated[PollerRegistry, Depends(get_poller_registry)],
) -> PollStatusResponse:
    """Stop polling because the success view went away."""
    poller = registry.get(session_id)
    if poller is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error_code": "POLL_NOT_FOUND",
                "message": f"No order poll for session {session_id}",
            },
        )
    registry.cancel(session_id)
    return snapshot_to_response(poller.snapshot())
