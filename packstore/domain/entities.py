"""Cart aggregate.

The cart owns its line items and the selected shipping method. Every
mutation re-resolves the affected line's unit price from the catalog
snapshot it carries, so a line's total is always its unit price times
its quantity and is never set on its own.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from packstore.domain.base import AggregateRoot, Entity
from packstore.domain.catalog import Product, ProductVariant
from packstore.domain.events import (
    CartCleared,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)
from packstore.domain.exceptions import UnknownShippingMethodError
from packstore.domain.pricing import (
    PriceResolution,
    adjusted_base_price,
    quantity_option_price_for,
    resolve_unit_price,
)
from packstore.domain.shipping import (
    DEFAULT_SHIPPING_OPTION,
    SHIPPING_OPTIONS,
    get_shipping_option_by_id,
    get_shipping_price,
)
from packstore.domain.totals import (
    DEFAULT_VAT_BASE,
    VAT_RATE,
    VatBase,
    calculate_order_total,
)
from packstore.domain.value_objects import (
    ZERO,
    PriceInput,
    quantize_money,
    to_decimal,
    to_price,
    to_quantity,
)

NO_VARIANT = "no-variant"
HUNDRED = Decimal(100)


def variant_key(variant: ProductVariant | None) -> str:
    """Variant part of a line's merge identity."""
    if variant is None:
        return NO_VARIANT
    return variant.identity or NO_VARIANT


def line_id(product_id: str, variant: ProductVariant | None) -> str:
    """Stable cart line id for a (product, variant) pair."""
    return f"{product_id}-{variant_key(variant)}"


def variant_option_price(variant: ProductVariant | None, quantity: int) -> Decimal | None:
    """Pack price that applies to a variant at a quantity."""
    if variant is None or not variant.quantity_options:
        return None
    return quantity_option_price_for(quantity, variant.quantity_options)


# ============================================================================
# Cart Item Entity
# ============================================================================


@dataclass(eq=False)
class CartItem(Entity):
    """A line in the cart.

    Attributes:
        id: Line id derived from product id and variant identity.
        product: Product snapshot taken when the line was added.
        variant: Variant snapshot, if any.
        quantity: Units on the line (>= 1).
        price_per_unit: Resolved unit price at full precision.
        quantity_option_price: Pack price the line was resolved with.
        pricing_rule: Which pricing rule produced the unit price.
    """

    id: str
    product: Product
    variant: ProductVariant | None
    quantity: int
    price_per_unit: Decimal
    quantity_option_price: Decimal | None = None
    pricing_rule: str = "base"

    def __post_init__(self) -> None:
        self.quantity = to_quantity(self.quantity)

    @classmethod
    def priced(
        cls,
        product: Product,
        variant: ProductVariant | None,
        quantity: int,
        quantity_option_price: Decimal | None = None,
    ) -> "CartItem":
        """Build a line with its price resolved for the quantity."""
        item = cls(
            id=line_id(product.id, variant),
            product=product,
            variant=variant,
            quantity=quantity,
            price_per_unit=ZERO,
        )
        item.reprice(quantity, quantity_option_price)
        return item

    @property
    def merge_key(self) -> tuple[str, str]:
        return (self.product.id, variant_key(self.variant))

    @property
    def variant_adjustment(self) -> Decimal:
        return self.variant.price_adjustment if self.variant else ZERO

    @property
    def total_price(self) -> Decimal:
        """Line total, always derived from unit price and quantity."""
        return quantize_money(self.price_per_unit * self.quantity)

    @property
    def promotional_discount(self) -> Decimal:
        """Explicit promotional discount for the whole line, unrounded."""
        if not self.product.has_promotion:
            return ZERO
        adjusted = adjusted_base_price(self.product.base_price, self.variant_adjustment)
        return adjusted * (self.product.discount / HUNDRED) * self.quantity

    def derive_option_price(self, quantity: int) -> Decimal | None:
        return variant_option_price(self.variant, quantity)

    def reprice(self, quantity: int, quantity_option_price: Decimal | None = None) -> PriceResolution:
        """Set the quantity and resolve the unit price from scratch.

        Args:
            quantity: New quantity.
            quantity_option_price: Pack price to resolve with, if any.

        Returns:
            The price resolution that was applied.
        """
        resolution = resolve_unit_price(
            self.product.base_price,
            self.variant_adjustment,
            quantity,
            self.product.pricing_tiers,
            quantity_option_price,
        )
        self.quantity = resolution.quantity
        self.price_per_unit = resolution.unit_price
        self.quantity_option_price = resolution.applied_option_price
        self.pricing_rule = resolution.rule.kind
        return resolution

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the durable cart record."""
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "variant": self.variant.to_dict() if self.variant else None,
            "quantity": self.quantity,
            "pricePerUnit": str(self.price_per_unit),
            "totalPrice": str(self.total_price),
            "quantityOptionPrice": (
                str(self.quantity_option_price) if self.quantity_option_price is not None else None
            ),
            "pricingRule": self.pricing_rule,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        """Rebuild a line from a durable cart record.

        The stored total is ignored; it is re-derived from the unit price.
        """
        product = Product.from_dict(data["product"])
        variant = ProductVariant.from_dict(data["variant"]) if data.get("variant") else None
        option_price = data.get("quantityOptionPrice")
        return cls(
            id=data.get("id") or line_id(product.id, variant),
            product=product,
            variant=variant,
            quantity=data["quantity"],
            price_per_unit=to_price(data["pricePerUnit"], "pricePerUnit"),
            quantity_option_price=to_price(option_price) if option_price is not None else None,
            pricing_rule=data.get("pricingRule") or "base",
        )


# ============================================================================
# Summaries
# ============================================================================


@dataclass(frozen=True)
class CartSummary:
    """Cart totals without VAT.

    Attributes:
        items: Lines at the time of the summary.
        subtotal: Sum of line totals (tier and pack savings already applied).
        discount: Explicit promotional discount only.
        shipping: Price of the selected shipping method.
        total: subtotal - discount + shipping.
        shipping_method: Selected shipping method id.
    """

    items: list[CartItem]
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal
    shipping_method: str


@dataclass(frozen=True)
class CartSummaryWithShipping:
    """Cart totals with VAT from the order total calculator."""

    items: list[CartItem]
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    vat_amount: Decimal
    total: Decimal
    shipping_method: str


# ============================================================================
# Cart Aggregate Root
# ============================================================================


@dataclass(eq=False, kw_only=True)
class Cart(AggregateRoot):
    """Shopping cart aggregate root.

    Attributes:
        id: Actor key the cart belongs to.
        items: Lines in insertion order.
        selected_shipping_id: Selected shipping method id.
    """

    id: str
    items: list[CartItem] = field(default_factory=list)
    selected_shipping_id: str = DEFAULT_SHIPPING_OPTION.id

    @classmethod
    def create(cls, actor_key: str, items: Iterable[CartItem] | None = None) -> "Cart":
        return cls(id=actor_key, items=list(items or []))

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def item_count(self) -> int:
        """Total units across all lines."""
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    def get_item(self, item_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_line(self, product_id: str, variant: ProductVariant | None) -> CartItem | None:
        """Find the line with the same merge identity."""
        key = (product_id, variant_key(variant))
        for item in self.items:
            if item.merge_key == key:
                return item
        return None

    # -------------------------------------------------------------------------
    # Cart Item Operations
    # -------------------------------------------------------------------------

    def add_item(
        self,
        product: Product,
        variant: ProductVariant | None = None,
        quantity: int = 1,
        quantity_option_price: PriceInput | None = None,
    ) -> CartItem:
        """Add units of a product to the cart.

        When a line with the same merge identity exists the quantities are
        summed and the price is resolved again for the combined quantity.
        For variants sold in packs the pack price is re-derived for the
        combined quantity; the caller's pack price only seeds a new line.

        Args:
            product: Catalog product snapshot.
            variant: Selected variant, if any.
            quantity: Units to add.
            quantity_option_price: Pack price selected by the customer.

        Returns:
            The new or updated line.

        Raises:
            InvalidQuantityError: If quantity is not a positive integer.
            InvalidPriceError: If the pack price is negative or not a number.
        """
        quantity = to_quantity(quantity)
        explicit_price = (
            to_price(quantity_option_price, "quantityOptionPrice")
            if quantity_option_price is not None
            else None
        )
        if explicit_price is not None and explicit_price <= ZERO:
            explicit_price = None

        existing = self.find_line(product.id, variant)
        if existing:
            old_quantity = existing.quantity
            new_quantity = old_quantity + quantity
            if variant is not None and variant.quantity_options:
                option_price = existing.derive_option_price(new_quantity)
            else:
                option_price = explicit_price
            resolution = existing.reprice(new_quantity, option_price)
            self._record_event(
                CartItemQuantityUpdated(
                    aggregate_id=self.id,
                    aggregate_type="Cart",
                    item_id=existing.id,
                    old_quantity=old_quantity,
                    new_quantity=new_quantity,
                    price_per_unit=str(resolution.unit_price),
                    pricing_rule=resolution.rule.kind,
                    merged=True,
                )
            )
            return existing

        if explicit_price is None:
            explicit_price = variant_option_price(variant, quantity)
        item = CartItem.priced(product, variant, quantity, explicit_price)
        self.items.append(item)
        self._record_event(
            CartItemAdded(
                aggregate_id=self.id,
                aggregate_type="Cart",
                item_id=item.id,
                product_id=product.id,
                variant_key=variant_key(variant),
                quantity=quantity,
                price_per_unit=str(item.price_per_unit),
                pricing_rule=item.pricing_rule,
            )
        )
        return item

    def update_quantity(self, item_id: str, quantity: int) -> CartItem | None:
        """Set a line's quantity and re-price it.

        A quantity of zero or less removes the line. The pack price is
        always re-derived for the new quantity; a previously selected pack
        price is never carried over.

        Returns:
            The updated line, or None if it was removed or not found.

        Raises:
            InvalidQuantityError: If quantity is not an integer.
        """
        if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity <= 0:
            self.remove_item(item_id)
            return None
        quantity = to_quantity(quantity)

        item = self.get_item(item_id)
        if item is None:
            return None

        old_quantity = item.quantity
        resolution = item.reprice(quantity, item.derive_option_price(quantity))
        self._record_event(
            CartItemQuantityUpdated(
                aggregate_id=self.id,
                aggregate_type="Cart",
                item_id=item.id,
                old_quantity=old_quantity,
                new_quantity=quantity,
                price_per_unit=str(resolution.unit_price),
                pricing_rule=resolution.rule.kind,
            )
        )
        return item

    def remove_item(self, item_id: str) -> CartItem | None:
        """Remove a line.

        Returns:
            The removed line, or None if no line has that id.
        """
        item = self.get_item(item_id)
        if item is None:
            return None
        self.items = [i for i in self.items if i.id != item_id]
        self._record_event(
            CartItemRemoved(
                aggregate_id=self.id,
                aggregate_type="Cart",
                item_id=item_id,
                product_id=item.product.id,
            )
        )
        return item

    def clear(self) -> int:
        """Drop every line and reset shipping to the default.

        Returns:
            Number of lines removed.
        """
        removed = len(self.items)
        self.items = []
        self.selected_shipping_id = DEFAULT_SHIPPING_OPTION.id
        self._record_event(
            CartCleared(aggregate_id=self.id, aggregate_type="Cart", removed_items=removed)
        )
        return removed

    def absorb(self, other_items: Iterable[CartItem]) -> None:
        """Fold lines from another cart into this one.

        Lines with a matching identity are combined and re-priced at the
        combined quantity; others are appended as they are.
        """
        for incoming in other_items:
            existing = self.find_line(incoming.product.id, incoming.variant)
            if existing is None:
                self.items.append(incoming)
                self._record_event(
                    CartItemAdded(
                        aggregate_id=self.id,
                        aggregate_type="Cart",
                        item_id=incoming.id,
                        product_id=incoming.product.id,
                        variant_key=variant_key(incoming.variant),
                        quantity=incoming.quantity,
                        price_per_unit=str(incoming.price_per_unit),
                        pricing_rule=incoming.pricing_rule,
                    )
                )
                continue
            old_quantity = existing.quantity
            new_quantity = old_quantity + incoming.quantity
            resolution = existing.reprice(new_quantity, existing.derive_option_price(new_quantity))
            self._record_event(
                CartItemQuantityUpdated(
                    aggregate_id=self.id,
                    aggregate_type="Cart",
                    item_id=existing.id,
                    old_quantity=old_quantity,
                    new_quantity=new_quantity,
                    price_per_unit=str(resolution.unit_price),
                    pricing_rule=resolution.rule.kind,
                    merged=True,
                )
            )

    # -------------------------------------------------------------------------
    # Shipping and Totals
    # -------------------------------------------------------------------------

    def set_shipping_method(self, shipping_id: str) -> None:
        """Select a shipping method. Item prices are not touched.

        Raises:
            UnknownShippingMethodError: If the method is not offered.
        """
        if get_shipping_option_by_id(shipping_id) is None:
            raise UnknownShippingMethodError(shipping_id, [o.id for o in SHIPPING_OPTIONS])
        self.selected_shipping_id = shipping_id

    def _subtotal_and_discount(self) -> tuple[Decimal, Decimal]:
        subtotal = sum((item.total_price for item in self.items), ZERO)
        discount = quantize_money(sum((item.promotional_discount for item in self.items), ZERO))
        return subtotal, discount

    def summary(self) -> CartSummary:
        """Totals without VAT.

        Tier and pack savings are already inside each line total, so only
        the explicit promotional discount is subtracted here.
        """
        subtotal, discount = self._subtotal_and_discount()
        shipping = get_shipping_price(self.selected_shipping_id)
        return CartSummary(
            items=list(self.items),
            subtotal=subtotal,
            discount=discount,
            shipping=shipping,
            total=subtotal - discount + shipping,
            shipping_method=self.selected_shipping_id,
        )

    def summary_with_shipping(
        self,
        vat_rate: PriceInput = VAT_RATE,
        vat_base: VatBase = DEFAULT_VAT_BASE,
    ) -> CartSummaryWithShipping:
        """Totals with VAT, delegated to the order total calculator."""
        subtotal, discount = self._subtotal_and_discount()
        calculation = calculate_order_total(
            subtotal - discount,
            get_shipping_price(self.selected_shipping_id),
            vat_rate=to_decimal(vat_rate, "vat_rate"),
            vat_base=vat_base,
            shipping_method=self.selected_shipping_id,
        )
        return CartSummaryWithShipping(
            items=list(self.items),
            subtotal=subtotal,
            discount=discount,
            shipping=calculation.shipping,
            vat_amount=calculation.vat_amount,
            total=calculation.total,
            shipping_method=calculation.shipping_method,
        )

    def snapshot(self) -> list[dict[str, Any]]:
        """Serialized lines for the durable cart record."""
        return [item.to_dict() for item in self.items]
