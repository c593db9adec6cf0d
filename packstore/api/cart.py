"""Cart API endpoints.

Provides endpoints for the calling actor's cart:
- GET /cart - current lines
- POST /cart/items - add units (merges with an existing line)
- PATCH /cart/items/{id} - set quantity (<= 0 removes)
- DELETE /cart/items/{id} - remove a line
- DELETE /cart - clear the cart
- PUT /cart/shipping - select shipping method
- GET /cart/summary, GET /cart/summary/with-vat - totals
- POST /cart/merge-guest - fold a guest cart in after login
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from packstore.api.dependencies import get_actor_key, get_cart_service, resolve_product
from packstore.api.schemas import (
    AddCartItemRequest,
    CartItemSchema,
    CartResponse,
    CartSummaryResponse,
    CartSummaryWithVatResponse,
    ErrorResponse,
    MergeGuestCartRequest,
    MergeGuestCartResponse,
    SetShippingRequest,
    UpdateCartItemRequest,
)
from packstore.application.cart_service import (
    CartService,
    CartSessionRegistry,
    get_cart_registry,
)
from packstore.domain.entities import CartItem
from packstore.domain.value_objects import ActorKey
from packstore.infrastructure.catalog_store import InMemoryCatalog, get_catalog

router = APIRouter(prefix="/cart", tags=["Cart"])


# ============================================================================
# Converters
# ============================================================================


def item_to_schema(item: CartItem) -> CartItemSchema:
    """Convert CartItem entity to response schema."""
    return CartItemSchema(
        id=item.id,
        product_id=item.product.id,
        product_name=item.product.name,
        variant_id=item.variant.id if item.variant else None,
        variant_name=item.variant.name if item.variant else None,
        sku=(item.variant.sku or None) if item.variant else None,
        quantity=item.quantity,
        price_per_unit=str(item.price_per_unit),
        total_price=str(item.total_price),
        quantity_option_price=(
            str(item.quantity_option_price) if item.quantity_option_price is not None else None
        ),
        pricing_rule=item.pricing_rule,
    )


def cart_to_response(service: CartService) -> CartResponse:
    """Convert the service's cart to response schema."""
    return CartResponse(
        actor_key=service.actor_key,
        items=[item_to_schema(item) for item in service.cart.items],
        item_count=service.item_count,
        selected_shipping_id=service.cart.selected_shipping_id,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=CartResponse, summary="Get cart")
async def get_cart(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Get the calling actor's cart."""
    return cart_to_response(service)


@router.post(
    "/items",
    response_model=CartItemSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Add item to cart",
)
async def add_cart_item(
    request: AddCartItemRequest,
    service: Annotated[CartService, Depends(get_cart_service)],
    catalog: Annotated[InMemoryCatalog, Depends(get_catalog)],
) -> CartItemSchema:
    """Add units of a product to the cart.

    Adding a product/variant already in the cart increases that line's
    quantity and re-prices it for the combined quantity.

    Args:
        request: Item to add.
        service: Cart service.
        catalog: Product catalog.

    Returns:
        The new or updated line.
    """
    product, variant = resolve_product(catalog, request.product_id, request.variant_id)
    item = await service.add_item(
        product,
        variant,
        quantity=request.quantity,
        quantity_option_price=request.quantity_option_price,
    )
    return item_to_schema(item)


@router.patch(
    "/items/{item_id}",
    response_model=CartResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Update item quantity",
)
async def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Set a line's quantity. An unknown line id is a no-op."""
    await service.update_quantity(item_id, request.quantity)
    return cart_to_response(service)


@router.delete("/items/{item_id}", response_model=CartResponse, summary="Remove item")
async def remove_cart_item(
    item_id: str,
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Remove a line. An unknown line id is a no-op."""
    await service.remove_item(item_id)
    return cart_to_response(service)


@router.delete("", response_model=CartResponse, summary="Clear cart")
async def clear_cart(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Clear the cart and delete its durable record."""
    await service.clear_cart()
    return cart_to_response(service)


@router.put(
    "/shipping",
    response_model=CartSummaryResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Select shipping method",
)
async def set_shipping_method(
    request: SetShippingRequest,
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartSummaryResponse:
    """Select a shipping method and return the updated summary."""
    service.set_shipping_method(request.shipping_id)
    return await get_cart_summary(service)


@router.get("/summary", response_model=CartSummaryResponse, summary="Cart totals")
async def get_cart_summary(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartSummaryResponse:
    """Subtotal, promotional discount, shipping and total (no VAT)."""
    summary = service.get_cart_summary()
    return CartSummaryResponse(
        items=[item_to_schema(item) for item in summary.items],
        subtotal=str(summary.subtotal),
        discount=str(summary.discount),
        shipping=str(summary.shipping),
        total=str(summary.total),
        shipping_method=summary.shipping_method,
    )


@router.get(
    "/summary/with-vat",
    response_model=CartSummaryWithVatResponse,
    summary="Cart totals with VAT",
)
async def get_cart_summary_with_vat(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartSummaryWithVatResponse:
    """Checkout totals including VAT."""
    summary = service.get_cart_summary_with_shipping()
    return CartSummaryWithVatResponse(
        items=[item_to_schema(item) for item in summary.items],
        subtotal=str(summary.subtotal),
        discount=str(summary.discount),
        shipping=str(summary.shipping),
        vat_amount=str(summary.vat_amount),
        total=str(summary.total),
        shipping_method=summary.shipping_method,
    )


@router.post(
    "/merge-guest",
    response_model=MergeGuestCartResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Merge guest cart after login",
)
async def merge_guest_cart(
    request: MergeGuestCartRequest,
    actor: Annotated[ActorKey, Depends(get_actor_key)],
    service: Annotated[CartService, Depends(get_cart_service)],
    registry: Annotated[CartSessionRegistry, Depends(get_cart_registry)],
) -> MergeGuestCartResponse:
    """Fold the guest cart into the signed-in customer's cart.

    Raises:
        HTTPException: If the caller is not a signed-in customer.
    """
    if actor.is_guest:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error_code": "USER_REQUIRED",
                "message": "Merging a guest cart requires X-User-ID",
            },
        )
    guest_key = str(ActorKey.for_guest(request.guest_session_id))
    merged = await service.merge_guest_cart(guest_key)
    registry.discard(guest_key)
    return MergeGuestCartResponse(merged_lines=merged, cart=cart_to_response(service))
