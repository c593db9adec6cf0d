"""Catalog value objects.

Read-only snapshots of products as delivered by the content store.
The content store emits loosely-typed JSON with optional fields, so
each type has a from_dict parser that validates and normalizes the
shape once at the boundary. Malformed tiers and quantity options are
dropped with a warning rather than failing the whole product.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from packstore.domain.base import ValueObject
from packstore.domain.exceptions import DomainError
from packstore.domain.value_objects import ZERO, to_decimal, to_price, to_quantity

logger = structlog.get_logger()

REFERENCE_OPTION_QUANTITY = 1
MAX_DISCOUNT = Decimal(100)


def _parse_count(value: Any, field_name: str) -> int:
    """Parse a whole, positive count; numeric strings are accepted."""
    if isinstance(value, str):
        value = to_decimal(value, field_name)
    return to_quantity(value)


# ============================================================================
# Quantity Options
# ============================================================================


@dataclass(frozen=True)
class QuantityOption(ValueObject):
    """A pack size a variant is sold in.

    Attributes:
        quantity: Units in the pack (>= 1).
        price_per_unit: Explicit per-unit price for this pack, if any.
        is_active: Inactive options are ignored everywhere.
        label: Display label (e.g. "50 Pouches").
        unit: Display unit (e.g. "Pouches").
    """

    quantity: int
    price_per_unit: Decimal | None = None
    is_active: bool = True
    label: str = ""
    unit: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError(f"Quantity option quantity must be >= 1, got {self.quantity!r}")

    @property
    def is_reference(self) -> bool:
        """The single-unit option only anchors discount badges; it is never offered."""
        return self.quantity == REFERENCE_OPTION_QUANTITY

    @property
    def has_price(self) -> bool:
        return self.price_per_unit is not None and self.price_per_unit > ZERO

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuantityOption":
        price = data.get("pricePerUnit", data.get("price_per_unit"))
        return cls(
            quantity=_parse_count(data["quantity"], "quantity"),
            price_per_unit=to_price(price, "pricePerUnit") if price is not None else None,
            is_active=bool(data.get("isActive", data.get("is_active", True))),
            label=data.get("label") or "",
            unit=data.get("unit") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "quantity": self.quantity,
            "pricePerUnit": str(self.price_per_unit) if self.price_per_unit is not None else None,
            "isActive": self.is_active,
            "label": self.label,
            "unit": self.unit,
        }


# ============================================================================
# Pricing Tiers
# ============================================================================


@dataclass(frozen=True)
class PricingTier(ValueObject):
    """A quantity-range scoped percentage discount.

    Tiers need not be contiguous or non-overlapping. A tier with a zero
    discount is still a valid match; it only attaches a label.

    Attributes:
        min_quantity: Lowest quantity the tier covers.
        max_quantity: Highest quantity covered, or None when open-ended.
        discount: Percentage off the adjusted base price (0-100).
        label: Display label (e.g. "Wholesale").
    """

    min_quantity: int
    max_quantity: int | None = None
    discount: Decimal = ZERO
    label: str = ""

    def covers(self, quantity: int) -> bool:
        """Check whether a quantity falls inside this tier's range."""
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity

    @property
    def is_valid(self) -> bool:
        """Tiers that could raise the price or never match are not valid."""
        if self.min_quantity < 1:
            return False
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            return False
        return ZERO <= self.discount <= MAX_DISCOUNT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PricingTier":
        max_quantity = data.get("maxQuantity", data.get("max_quantity"))
        return cls(
            min_quantity=_parse_count(data.get("minQuantity", data.get("min_quantity")), "minQuantity"),
            # 0 and missing both mean open-ended in the content store
            max_quantity=_parse_count(max_quantity, "maxQuantity") if max_quantity else None,
            discount=to_decimal(data.get("discount") or 0, "discount"),
            label=data.get("label") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "minQuantity": self.min_quantity,
            "maxQuantity": self.max_quantity,
            "discount": str(self.discount),
            "label": self.label,
        }


# ============================================================================
# Variants and Products
# ============================================================================


def _parse_many(cls: type, raw: Any, owner: str, kind: str) -> tuple:
    items = []
    for entry in raw or []:
        try:
            items.append(cls.from_dict(entry))
        except (DomainError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Dropping malformed catalog entry",
                owner=owner,
                kind=kind,
                entry=entry,
                error=str(e),
            )
    return tuple(items)


@dataclass(frozen=True)
class ProductVariant(ValueObject):
    """A purchasable variant of a product.

    Attributes:
        id: Variant identifier.
        name: Display name.
        sku: Stock keeping unit, may be empty.
        price_adjustment: Signed delta added to the product base price.
        quantity_options: Pack sizes, empty when sold by the unit.
    """

    id: str
    name: str = ""
    sku: str = ""
    price_adjustment: Decimal = ZERO
    quantity_options: tuple[QuantityOption, ...] = field(default_factory=tuple)

    @property
    def identity(self) -> str:
        """SKU when present, otherwise the variant id."""
        return self.sku or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductVariant":
        variant_id = str(data.get("id") or data.get("_key") or data.get("sku") or "")
        if not variant_id:
            raise ValueError("Variant requires an id or sku")
        adjustment = data.get("price_adjustment", data.get("priceAdjustment")) or 0
        return cls(
            id=variant_id,
            name=data.get("name") or "",
            sku=data.get("sku") or "",
            price_adjustment=to_decimal(adjustment, "price_adjustment"),
            quantity_options=_parse_many(
                QuantityOption, data.get("quantityOptions"), variant_id, "quantity_option"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "price_adjustment": str(self.price_adjustment),
            "quantityOptions": [o.to_dict() for o in self.quantity_options],
        }


@dataclass(frozen=True)
class Product(ValueObject):
    """Catalog product snapshot.

    Attributes:
        id: Product identifier.
        name: Display name.
        slug: URL slug.
        base_price: List price before variant/tier adjustment.
        discount: Explicit promotional percentage, independent of tiers.
            Values outside 0-100 are dropped.
        pricing_tiers: Volume discount tiers (order irrelevant).
        variants: Variants in catalog order.
        product_code: Merchant product code.
    """

    id: str
    name: str
    base_price: Decimal
    slug: str = ""
    discount: Decimal | None = None
    pricing_tiers: tuple[PricingTier, ...] = field(default_factory=tuple)
    variants: tuple[ProductVariant, ...] = field(default_factory=tuple)
    product_code: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Product id cannot be empty")
        object.__setattr__(self, "base_price", to_price(self.base_price, "basePrice"))
        if self.discount is not None:
            discount = to_decimal(self.discount, "discount")
            if not ZERO <= discount <= MAX_DISCOUNT:
                logger.warning(
                    "Dropping out of range promotional discount",
                    product_id=self.id,
                    discount=str(discount),
                )
                discount = None
            object.__setattr__(self, "discount", discount)

    def get_variant(self, variant_id: str) -> ProductVariant | None:
        """Find a variant by id or SKU."""
        for variant in self.variants:
            if variant.id == variant_id or (variant.sku and variant.sku == variant_id):
                return variant
        return None

    @property
    def has_promotion(self) -> bool:
        return self.discount is not None and self.discount > ZERO

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        """Parse a product from content-store JSON.

        Args:
            data: Product document.

        Returns:
            Product snapshot.
        """
        product_id = str(data.get("id") or data.get("_id") or "")
        discount = data.get("discount")
        slug = data.get("slug") or ""
        if isinstance(slug, dict):
            slug = slug.get("current") or ""
        return cls(
            id=product_id,
            name=data.get("name") or "",
            slug=slug,
            base_price=to_price(data.get("basePrice", data.get("base_price", 0)), "basePrice"),
            discount=to_decimal(discount, "discount") if discount not in (None, "") else None,
            pricing_tiers=_parse_many(PricingTier, data.get("pricingTiers"), product_id, "pricing_tier"),
            variants=_parse_many(ProductVariant, data.get("variants"), product_id, "variant"),
            product_code=data.get("product_code") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "basePrice": str(self.base_price),
            "discount": str(self.discount) if self.discount is not None else None,
            "pricingTiers": [t.to_dict() for t in self.pricing_tiers],
            "variants": [v.to_dict() for v in self.variants],
            "product_code": self.product_code,
        }
