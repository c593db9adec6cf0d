"""API schemas for the Packstore API.

Pydantic models for request/response validation and serialization.
Money is rendered as decimal strings in pounds.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] | dict[str, Any] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Cart Schemas
# ============================================================================


class CartItemSchema(BaseModel):
    """A line in the cart."""

    id: str = Field(..., description="Line id (product id + variant identity)")
    product_id: str = Field(..., description="Product identifier")
    product_name: str = Field(..., description="Product display name")
    variant_id: str | None = Field(default=None, description="Variant identifier")
    variant_name: str | None = Field(default=None, description="Variant display name")
    sku: str | None = Field(default=None, description="Variant SKU")
    quantity: int = Field(..., description="Units on the line")
    price_per_unit: str = Field(..., description="Resolved unit price, full precision")
    total_price: str = Field(..., description="Line total, rounded to pence")
    quantity_option_price: str | None = Field(
        default=None, description="Pack price the line was resolved with"
    )
    pricing_rule: str = Field(..., description="base, tier or quantity_option")


class CartResponse(BaseModel):
    """Cart contents."""

    actor_key: str = Field(..., description="Cart owner key")
    items: list[CartItemSchema] = Field(default_factory=list, description="Cart lines")
    item_count: int = Field(..., description="Total units across all lines")
    selected_shipping_id: str = Field(..., description="Selected shipping method")


class AddCartItemRequest(BaseModel):
    """Request to add units of a product to the cart."""

    product_id: str = Field(..., min_length=1, description="Product id or slug")
    variant_id: str | None = Field(default=None, description="Variant id or SKU")
    quantity: int = Field(default=1, description="Units to add")
    quantity_option_price: Decimal | None = Field(
        default=None, description="Pack price selected by the customer"
    )


class UpdateCartItemRequest(BaseModel):
    """Request to set a line's quantity. Zero or less removes the line."""

    quantity: int = Field(..., description="New quantity")


class SetShippingRequest(BaseModel):
    """Request to select a shipping method."""

    shipping_id: str = Field(..., min_length=1, description="Shipping method id")


class MergeGuestCartRequest(BaseModel):
    """Request to fold a guest cart into the signed-in customer's cart."""

    guest_session_id: str = Field(..., min_length=1, description="Guest session id")


class MergeGuestCartResponse(BaseModel):
    """Result of merging a guest cart."""

    merged_lines: int = Field(..., description="Guest lines folded in")
    cart: CartResponse = Field(..., description="Cart after the merge")


class CartSummaryResponse(BaseModel):
    """Cart totals without VAT."""

    items: list[CartItemSchema] = Field(default_factory=list)
    subtotal: str = Field(..., description="Sum of line totals")
    discount: str = Field(..., description="Explicit promotional discount")
    shipping: str = Field(..., description="Selected shipping price")
    total: str = Field(..., description="subtotal - discount + shipping")
    shipping_method: str = Field(..., description="Selected shipping method id")


class CartSummaryWithVatResponse(CartSummaryResponse):
    """Cart totals with VAT."""

    vat_amount: str = Field(..., description="VAT charged")


# ============================================================================
# Pricing Schemas
# ============================================================================


class PricePreviewRequest(BaseModel):
    """Request for a display-time price without touching the cart."""

    product_id: str = Field(..., min_length=1, description="Product id or slug")
    variant_id: str | None = Field(default=None, description="Variant id or SKU")
    quantity: int = Field(default=1, description="Quantity to price")
    quantity_option_price: Decimal | None = Field(
        default=None, description="Pack price; derived from the variant when omitted"
    )


class AppliedTierSchema(BaseModel):
    """Volume tier that produced a price."""

    min_quantity: int
    max_quantity: int | None = None
    discount: str
    label: str = ""


class PricePreviewResponse(BaseModel):
    """Resolved price for a quantity."""

    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price: str = Field(..., description="Resolved unit price, full precision")
    total_price: str = Field(..., description="Line total, rounded to pence")
    adjusted_base: str = Field(..., description="Base price plus variant adjustment")
    savings: str = Field(..., description="Saving against the adjusted base")
    pricing_rule: str = Field(..., description="base, tier or quantity_option")
    applied_tier: AppliedTierSchema | None = None
    formatted_unit_price: str = Field(..., description="Display string, e.g. £1.79")


class TierPriceRowSchema(BaseModel):
    """One row of the bulk pricing table."""

    min_quantity: int
    max_quantity: int | None = None
    discount: str
    label: str = ""
    unit_price: str


class TierTableResponse(BaseModel):
    """Bulk pricing table for a product."""

    product_id: str
    variant_id: str | None = None
    adjusted_base: str
    tiers: list[TierPriceRowSchema] = Field(default_factory=list)


class QuantityOptionSchema(BaseModel):
    """A selectable pack size with its discount badge."""

    quantity: int
    label: str = ""
    unit: str = ""
    price_per_unit: str | None = None
    discount_percentage: int | None = Field(
        default=None, description="Whole-percent saving against the reference price"
    )


class QuantityOptionsResponse(BaseModel):
    """Selectable pack sizes for a variant."""

    product_id: str
    variant_id: str
    minimum_quantity: int
    options: list[QuantityOptionSchema] = Field(default_factory=list)


# ============================================================================
# Shipping Schemas
# ============================================================================


class ShippingOptionSchema(BaseModel):
    """A shipping method."""

    id: str
    name: str
    price: str
    delivery_time: str
    carrier: str
    description: str = ""
    display: str = Field(..., description="Formatted label with price")


class ShippingOptionsResponse(BaseModel):
    """Offered shipping methods."""

    options: list[ShippingOptionSchema]
    default_id: str


# ============================================================================
# Order Materialization Schemas
# ============================================================================


class StartPollRequest(BaseModel):
    """Request to start polling for an order after payment."""

    session_id: str | None = Field(default=None, description="Payment session token")
    wait: bool = Field(default=False, description="Block until a terminal state")


class PollStatusResponse(BaseModel):
    """Order materialization progress."""

    session_id: str
    state: str = Field(..., description="Poller state")
    attempt: int = Field(..., description="Order lookups made so far")
    max_attempts: int
    is_terminal: bool
    cancelled: bool = False
    order: dict[str, Any] | None = None
    error: str | None = None
    payment_status: str | None = None
