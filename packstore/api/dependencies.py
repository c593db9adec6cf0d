"""Shared FastAPI dependencies.

Actor identity is established by the authentication layer in front of
this service and arrives as headers: X-User-ID for a signed-in customer
or X-Guest-Session for an anonymous visitor.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from packstore.application.cart_service import (
    CartService,
    CartSessionRegistry,
    get_cart_registry,
)
from packstore.domain.catalog import Product, ProductVariant
from packstore.domain.exceptions import ProductNotFoundError, VariantNotFoundError
from packstore.domain.value_objects import ActorKey
from packstore.infrastructure.catalog_store import InMemoryCatalog


def get_optional_actor_key(
    x_user_id: Annotated[str | None, Header()] = None,
    x_guest_session: Annotated[str | None, Header()] = None,
) -> ActorKey | None:
    """Actor key from headers, preferring the signed-in customer."""
    if x_user_id and x_user_id.strip():
        return ActorKey.for_user(x_user_id.strip())
    if x_guest_session and x_guest_session.strip():
        return ActorKey.for_guest(x_guest_session.strip())
    return None


def get_actor_key(
    actor: Annotated[ActorKey | None, Depends(get_optional_actor_key)],
) -> ActorKey:
    """Actor key from headers.

    Raises:
        HTTPException: If neither identity header is present.
    """
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error_code": "ACTOR_REQUIRED",
                "message": "Provide X-User-ID or X-Guest-Session",
            },
        )
    return actor


async def get_cart_service(
    actor: Annotated[ActorKey, Depends(get_actor_key)],
    registry: Annotated[CartSessionRegistry, Depends(get_cart_registry)],
) -> CartService:
    """Initialized cart service for the calling actor."""
    return await registry.get(str(actor))


def resolve_product(
    catalog: InMemoryCatalog,
    product_id: str,
    variant_id: str | None = None,
) -> tuple[Product, ProductVariant | None]:
    """Look up a product and optional variant.

    Raises:
        ProductNotFoundError: If the product does not resolve.
        VariantNotFoundError: If the variant does not belong to the product.
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    variant = None
    if variant_id:
        variant = product.get_variant(variant_id)
        if variant is None:
            raise VariantNotFoundError(product.id, variant_id)
    return product, variant
