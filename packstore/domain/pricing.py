"""Pricing resolution.

Turns a catalog price (base price, variant adjustment, optional pack
price, optional volume tiers) and a quantity into a per-unit price.

Exactly one pricing rule applies to any resolution, in priority order:

    1. QuantityOptionRule  - a positive pack price wins unconditionally
    2. TierRule            - the covering tier with the highest minQuantity
    3. NoOverride          - the adjusted base price

Everything here is pure. Missing or malformed tier data degrades to the
adjusted base price instead of failing the cart operation.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from packstore.domain.catalog import PricingTier, QuantityOption
from packstore.domain.exceptions import DomainError
from packstore.domain.value_objects import (
    ZERO,
    PriceInput,
    quantize_money,
    to_decimal,
    to_quantity,
)

HUNDRED = Decimal(100)


# ============================================================================
# Pricing Rules
# ============================================================================


@dataclass(frozen=True)
class NoOverride:
    """The adjusted base price applies."""

    kind = "base"


@dataclass(frozen=True)
class QuantityOptionRule:
    """An explicit pack price applies."""

    price_per_unit: Decimal
    kind = "quantity_option"


@dataclass(frozen=True)
class TierRule:
    """A volume tier applies."""

    tier: PricingTier
    kind = "tier"


PricingRule = NoOverride | QuantityOptionRule | TierRule


@dataclass(frozen=True)
class PriceResolution:
    """Outcome of resolving a unit price.

    Attributes:
        unit_price: Per-unit price at full precision.
        adjusted_base: Base price plus variant adjustment.
        quantity: Quantity the price was resolved for.
        rule: The pricing rule that produced the unit price.
        savings: Amount saved against the adjusted base, never negative.
    """

    unit_price: Decimal
    adjusted_base: Decimal
    quantity: int
    rule: PricingRule
    savings: Decimal

    @property
    def applied_tier(self) -> PricingTier | None:
        return self.rule.tier if isinstance(self.rule, TierRule) else None

    @property
    def applied_option_price(self) -> Decimal | None:
        return self.rule.price_per_unit if isinstance(self.rule, QuantityOptionRule) else None

    @property
    def total_price(self) -> Decimal:
        return quantize_money(self.unit_price * self.quantity)


# ============================================================================
# Tier Selection
# ============================================================================


def active_pricing_tier(quantity: int, tiers: Iterable[PricingTier] | None) -> PricingTier | None:
    """Select the tier that applies to a quantity.

    Tiers are scanned by minQuantity descending and the first covering
    tier wins, so the highest qualifying threshold is always chosen
    regardless of listing order. Ties on minQuantity keep listing order.
    Invalid tiers are ignored.

    Args:
        quantity: Requested quantity.
        tiers: Candidate tiers in any order.

    Returns:
        The applicable tier, or None.
    """
    if not tiers:
        return None
    candidates = sorted(
        (tier for tier in tiers if tier.is_valid),
        key=lambda tier: tier.min_quantity,
        reverse=True,
    )
    for tier in candidates:
        if tier.covers(quantity):
            return tier
    return None


def tier_unit_price(adjusted_base: Decimal, tier: PricingTier) -> Decimal:
    """Unit price under a tier. A zero discount leaves the price untouched."""
    if tier.discount > ZERO:
        return adjusted_base * (1 - tier.discount / HUNDRED)
    return adjusted_base


# ============================================================================
# Resolution
# ============================================================================


def _usable_option_price(value: PriceInput | None) -> Decimal | None:
    if value is None:
        return None
    try:
        price = to_decimal(value, "quantityOptionPrice")
    except DomainError:
        return None
    return price if price > ZERO else None


def adjusted_base_price(base_price: PriceInput, variant_adjustment: PriceInput = 0) -> Decimal:
    """Base price plus variant adjustment, floored at zero."""
    adjusted = to_decimal(base_price, "basePrice") + to_decimal(variant_adjustment, "price_adjustment")
    return max(adjusted, ZERO)


def select_pricing_rule(
    quantity: int,
    tiers: Sequence[PricingTier] | None = None,
    quantity_option_price: PriceInput | None = None,
) -> PricingRule:
    """Pick the single pricing rule that applies."""
    option_price = _usable_option_price(quantity_option_price)
    if option_price is not None:
        return QuantityOptionRule(price_per_unit=option_price)
    tier = active_pricing_tier(quantity, tiers)
    if tier is not None:
        return TierRule(tier=tier)
    return NoOverride()


def resolve_unit_price(
    base_price: PriceInput,
    variant_adjustment: PriceInput,
    quantity: int,
    tiers: Sequence[PricingTier] | None = None,
    quantity_option_price: PriceInput | None = None,
) -> PriceResolution:
    """Resolve the per-unit price for a quantity.

    Args:
        base_price: Catalog base price.
        variant_adjustment: Signed variant delta.
        quantity: Requested quantity (>= 1).
        tiers: Volume tiers, may be empty or None.
        quantity_option_price: Pack price; used only when positive.

    Returns:
        PriceResolution with unit price, applied rule and savings.

    Raises:
        InvalidQuantityError: If quantity is not a positive integer.
        InvalidPriceError: If base price or adjustment is not a finite number.
    """
    quantity = to_quantity(quantity)
    adjusted = adjusted_base_price(base_price, variant_adjustment)
    rule = select_pricing_rule(quantity, tiers, quantity_option_price)

    if isinstance(rule, QuantityOptionRule):
        unit_price = rule.price_per_unit
    elif isinstance(rule, TierRule):
        unit_price = tier_unit_price(adjusted, rule.tier)
    else:
        unit_price = adjusted

    savings = max(ZERO, adjusted * quantity - unit_price * quantity)
    return PriceResolution(
        unit_price=unit_price,
        adjusted_base=adjusted,
        quantity=quantity,
        rule=rule,
        savings=quantize_money(savings),
    )


def calculate_price_per_unit(
    quantity: int,
    base_price: PriceInput,
    tiers: Sequence[PricingTier] | None = None,
    variant_adjustment: PriceInput = 0,
) -> Decimal:
    """Tier-or-base unit price, ignoring pack prices."""
    return resolve_unit_price(base_price, variant_adjustment, quantity, tiers).unit_price


def calculate_total_price(
    quantity: int,
    base_price: PriceInput,
    tiers: Sequence[PricingTier] | None = None,
    variant_adjustment: PriceInput = 0,
    quantity_option_price: PriceInput | None = None,
) -> Decimal:
    """Line total for a quantity, rounded to the minor unit."""
    return resolve_unit_price(
        base_price, variant_adjustment, quantity, tiers, quantity_option_price
    ).total_price


@dataclass(frozen=True)
class TierPriceRow:
    """One row of the bulk pricing table."""

    tier: PricingTier
    unit_price: Decimal


def tier_price_table(
    base_price: PriceInput,
    tiers: Sequence[PricingTier] | None,
    variant_adjustment: PriceInput = 0,
) -> list[TierPriceRow]:
    """Unit price for every valid tier, ordered by minQuantity ascending."""
    adjusted = adjusted_base_price(base_price, variant_adjustment)
    rows = [
        TierPriceRow(tier=tier, unit_price=tier_unit_price(adjusted, tier))
        for tier in (tiers or ())
        if tier.is_valid
    ]
    return sorted(rows, key=lambda row: row.tier.min_quantity)


# ============================================================================
# Quantity Options
# ============================================================================


def selectable_options(options: Iterable[QuantityOption] | None) -> list[QuantityOption]:
    """Active pack sizes a customer can pick, smallest first.

    The single-unit reference option is excluded.
    """
    return sorted(
        (opt for opt in (options or ()) if opt.is_active and not opt.is_reference),
        key=lambda opt: opt.quantity,
    )


def find_matching_quantity_option(
    quantity: int,
    options: Iterable[QuantityOption] | None,
) -> QuantityOption | None:
    """Largest selectable pack size that does not exceed the quantity.

    This is a floor selection: it never rounds up to a larger pack and
    never interpolates. Returns None when the quantity is below the
    smallest pack.
    """
    match = None
    for option in selectable_options(options):
        if option.quantity > quantity:
            break
        match = option
    return match


def quantity_option_price_for(
    quantity: int,
    options: Iterable[QuantityOption] | None,
) -> Decimal | None:
    """Pack price that applies at a quantity, if the matching pack has one."""
    option = find_matching_quantity_option(quantity, options)
    if option is None or not option.has_price:
        return None
    return option.price_per_unit


def first_quantity_option(options: Iterable[QuantityOption] | None) -> QuantityOption | None:
    """Smallest selectable pack size."""
    visible = selectable_options(options)
    return visible[0] if visible else None


def minimum_quantity(options: Iterable[QuantityOption] | None) -> int:
    """Minimum orderable quantity: the smallest pack size, or 1."""
    first = first_quantity_option(options)
    return first.quantity if first else 1


def total_quantity(option_quantity: int, additional: int = 1) -> int:
    """Units ordered when a pack is selected and the stepper moved.

    A stepper value of 1 means "just the pack"; every step above adds a
    single unit on top of the pack size.
    """
    if option_quantity <= 0:
        return additional
    return option_quantity + (additional - 1)


def reference_option(options: Iterable[QuantityOption] | None) -> QuantityOption | None:
    """The option discount badges are measured against.

    The active single-unit option when it carries a price, otherwise the
    smallest active priced option.
    """
    priced = sorted(
        (opt for opt in (options or ()) if opt.is_active and opt.has_price),
        key=lambda opt: opt.quantity,
    )
    for option in priced:
        if option.is_reference:
            return option
    return priced[0] if priced else None


def option_discount_percentage(
    option: QuantityOption,
    options: Iterable[QuantityOption] | None,
) -> int | None:
    """Whole-percent discount badge for a pack, or None when not positive."""
    reference = reference_option(options)
    if reference is None or not option.has_price:
        return None
    if option.quantity == reference.quantity:
        return None
    ref_price = reference.price_per_unit
    discount = HUNDRED * (ref_price - option.price_per_unit) / ref_price
    if discount <= ZERO:
        return None
    return int(discount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_price(amount: PriceInput) -> str:
    """Format an amount for display in pounds."""
    return f"£{quantize_money(to_decimal(amount)):.2f}"
