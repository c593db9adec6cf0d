"""Pricing API endpoints.

Display-time pricing that never touches a cart:
- POST /pricing/preview - what a quantity would cost
- GET /pricing/products/{id}/tiers - bulk pricing table
- GET /pricing/products/{id}/quantity-options - pack sizes with badges
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from packstore.api.dependencies import resolve_product
from packstore.api.schemas import (
    AppliedTierSchema,
    ErrorResponse,
    PricePreviewRequest,
    PricePreviewResponse,
    QuantityOptionSchema,
    QuantityOptionsResponse,
    TierPriceRowSchema,
    TierTableResponse,
)
from packstore.domain.exceptions import VariantNotFoundError
from packstore.domain.pricing import (
    adjusted_base_price,
    format_price,
    minimum_quantity,
    option_discount_percentage,
    quantity_option_price_for,
    resolve_unit_price,
    selectable_options,
    tier_price_table,
)
from packstore.domain.value_objects import ZERO
from packstore.infrastructure.catalog_store import InMemoryCatalog, get_catalog

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.post(
    "/preview",
    response_model=PricePreviewResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Preview price for a quantity",
)
async def preview_price(
    request: PricePreviewRequest,
    catalog: Annotated[InMemoryCatalog, Depends(get_catalog)],
) -> PricePreviewResponse:
    """Resolve the unit price a quantity would get.

    When no pack price is given and the variant is sold in packs, the
    pack matching the quantity is used, as the cart would.
    """
    product, variant = resolve_product(catalog, request.product_id, request.variant_id)
    option_price = request.quantity_option_price
    if option_price is None and variant is not None and variant.quantity_options:
        option_price = quantity_option_price_for(request.quantity, variant.quantity_options)

    resolution = resolve_unit_price(
        product.base_price,
        variant.price_adjustment if variant else ZERO,
        request.quantity,
        product.pricing_tiers,
        option_price,
    )
    tier = resolution.applied_tier
    return PricePreviewResponse(
        product_id=product.id,
        variant_id=variant.id if variant else None,
        quantity=resolution.quantity,
        unit_price=str(resolution.unit_price),
        total_price=str(resolution.total_price),
        adjusted_base=str(resolution.adjusted_base),
        savings=str(resolution.savings),
        pricing_rule=resolution.rule.kind,
        applied_tier=(
            AppliedTierSchema(
                min_quantity=tier.min_quantity,
                max_quantity=tier.max_quantity,
                discount=str(tier.discount),
                label=tier.label,
            )
            if tier
            else None
        ),
        formatted_unit_price=format_price(resolution.unit_price),
    )


@router.get(
    "/products/{product_id}/tiers",
    response_model=TierTableResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Bulk pricing table",
)
async def get_tier_table(
    product_id: str,
    catalog: Annotated[InMemoryCatalog, Depends(get_catalog)],
    variant_id: Annotated[str | None, Query()] = None,
) -> TierTableResponse:
    """Unit price under every valid tier, smallest threshold first."""
    product, variant = resolve_product(catalog, product_id, variant_id)
    adjustment = variant.price_adjustment if variant else ZERO
    rows = tier_price_table(product.base_price, product.pricing_tiers, adjustment)
    return TierTableResponse(
        product_id=product.id,
        variant_id=variant.id if variant else None,
        adjusted_base=str(adjusted_base_price(product.base_price, adjustment)),
        tiers=[
            TierPriceRowSchema(
                min_quantity=row.tier.min_quantity,
                max_quantity=row.tier.max_quantity,
                discount=str(row.tier.discount),
                label=row.tier.label,
                unit_price=str(row.unit_price),
            )
            for row in rows
        ],
    )


@router.get(
    "/products/{product_id}/quantity-options",
    response_model=QuantityOptionsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Pack sizes with discount badges",
)
async def get_quantity_options(
    product_id: str,
    catalog: Annotated[InMemoryCatalog, Depends(get_catalog)],
    variant_id: Annotated[str | None, Query()] = None,
) -> QuantityOptionsResponse:
    """Selectable pack sizes for a variant, smallest first.

    Without a variant_id the product's first variant is used.

    Raises:
        VariantNotFoundError: If the product has no variants.
    """
    product, variant = resolve_product(catalog, product_id, variant_id)
    if variant is None:
        if not product.variants:
            raise VariantNotFoundError(product.id, variant_id or "")
        variant = product.variants[0]

    options = variant.quantity_options
    return QuantityOptionsResponse(
        product_id=product.id,
        variant_id=variant.id,
        minimum_quantity=minimum_quantity(options),
        options=[
            QuantityOptionSchema(
                quantity=option.quantity,
                label=option.label,
                unit=option.unit,
                price_per_unit=str(option.price_per_unit) if option.has_price else None,
                discount_percentage=option_discount_percentage(option, options),
            )
            for option in selectable_options(options)
        ],
    )
