"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from packstore.application.cart_service import (
    CartService,
    CartSessionRegistry,
    get_cart_registry,
)
from packstore.application.order_poller import (
    OrderMaterializationPoller,
    PollerRegistry,
    PollHandle,
    get_poller_registry,
)

__all__ = [
    "CartService",
    "CartSessionRegistry",
    "get_cart_registry",
    "OrderMaterializationPoller",
    "PollerRegistry",
    "PollHandle",
    "get_poller_registry",
]
