"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from packstore.api.cart import router as cart_router
from packstore.api.checkout import router as checkout_router
from packstore.api.health import router as health_router
from packstore.api.pricing import router as pricing_router
from packstore.api.shipping import router as shipping_router

__all__ = [
    "cart_router",
    "checkout_router",
    "health_router",
    "pricing_router",
    "shipping_router",
]
