"""Domain layer - Pricing, cart aggregate, totals, poller state machine.

This module exports the core domain building blocks:

- **Catalog**: Read-only product snapshots (Product, ProductVariant, PricingTier)
- **Pricing**: Unit price resolution with a single applied pricing rule
- **Entities**: The Cart aggregate and its CartItem lines
- **Totals**: VAT-inclusive order total calculation
- **State Machines**: Order materialization poller states
- **Domain Events**: Cart mutations recorded by the aggregate
- **Exceptions**: Domain-specific errors and invariant violations

Example usage:
    from packstore.domain import Cart, Product, PricingTier

    product = Product(
        id="pouch-01",
        name="Kraft Pouch",
        base_price=Decimal("1.99"),
        pricing_tiers=(PricingTier(min_quantity=50, max_quantity=99, discount=Decimal(10)),),
    )
    cart = Cart.create("guest:abc")
    cart.add_item(product, quantity=75)
    print(cart.summary().subtotal)  # 134.33
"""

# Base classes
from packstore.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject

# Catalog
from packstore.domain.catalog import (
    PricingTier,
    Product,
    ProductVariant,
    QuantityOption,
)

# Entities
from packstore.domain.entities import (
    Cart,
    CartItem,
    CartSummary,
    CartSummaryWithShipping,
    line_id,
    variant_key,
)

# Domain Events
from packstore.domain.events import (
    EVENT_REGISTRY,
    CartCleared,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)

# Exceptions
from packstore.domain.exceptions import (
    CartError,
    CartStoreError,
    DomainError,
    InvalidPriceError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    ProductNotFoundError,
    UnknownShippingMethodError,
    ValidationError,
    VariantNotFoundError,
)

# Pricing
from packstore.domain.pricing import (
    NoOverride,
    PriceResolution,
    PricingRule,
    QuantityOptionRule,
    TierRule,
    active_pricing_tier,
    calculate_price_per_unit,
    calculate_total_price,
    find_matching_quantity_option,
    resolve_unit_price,
)

# Shipping
from packstore.domain.shipping import (
    DEFAULT_SHIPPING_OPTION,
    SHIPPING_OPTIONS,
    ShippingOption,
    get_shipping_option_by_id,
    get_shipping_price,
)

# State Machines
from packstore.domain.state_machines import PollerState, validate_poller_transition

# Totals
from packstore.domain.totals import (
    VAT_RATE,
    OrderTotal,
    VatBase,
    calculate_order_total,
    calculate_vat,
)

# Value Objects
from packstore.domain.value_objects import ActorKey, ActorKind, quantize_money

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Catalog
    "PricingTier",
    "Product",
    "ProductVariant",
    "QuantityOption",
    # Entities
    "Cart",
    "CartItem",
    "CartSummary",
    "CartSummaryWithShipping",
    "line_id",
    "variant_key",
    # Events
    "EVENT_REGISTRY",
    "CartCleared",
    "CartItemAdded",
    "CartItemQuantityUpdated",
    "CartItemRemoved",
    # Exceptions
    "CartError",
    "CartStoreError",
    "DomainError",
    "InvalidPriceError",
    "InvalidQuantityError",
    "InvalidStateTransitionError",
    "ProductNotFoundError",
    "UnknownShippingMethodError",
    "ValidationError",
    "VariantNotFoundError",
    # Pricing
    "NoOverride",
    "PriceResolution",
    "PricingRule",
    "QuantityOptionRule",
    "TierRule",
    "active_pricing_tier",
    "calculate_price_per_unit",
    "calculate_total_price",
    "find_matching_quantity_option",
    "resolve_unit_price",
    # Shipping
    "DEFAULT_SHIPPING_OPTION",
    "SHIPPING_OPTIONS",
    "ShippingOption",
    "get_shipping_option_by_id",
    "get_shipping_price",
    # State machines
    "PollerState",
    "validate_poller_transition",
    # Totals
    "VAT_RATE",
    "OrderTotal",
    "VatBase",
    "calculate_order_total",
    "calculate_vat",
    # Value objects
    "ActorKey",
    "ActorKind",
    "quantize_money",
]
