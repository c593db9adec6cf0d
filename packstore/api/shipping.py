"""Shipping API endpoints."""

from fastapi import APIRouter

from packstore.api.schemas import ShippingOptionSchema, ShippingOptionsResponse
from packstore.domain.shipping import (
    DEFAULT_SHIPPING_OPTION,
    SHIPPING_OPTIONS,
    format_shipping_option,
)

router = APIRouter(prefix="/shipping", tags=["Shipping"])


@router.get("/options", response_model=ShippingOptionsResponse, summary="List shipping options")
async def list_shipping_options() -> ShippingOptionsResponse:
    """List the shipping methods offered at checkout."""
    return ShippingOptionsResponse(
        options=[
            ShippingOptionSchema(
                id=option.id,
                name=option.name,
                price=str(option.price),
                delivery_time=option.delivery_time,
                carrier=option.carrier.value,
                description=option.description,
                display=format_shipping_option(option),
            )
            for option in SHIPPING_OPTIONS
        ],
        default_id=DEFAULT_SHIPPING_OPTION.id,
    )
