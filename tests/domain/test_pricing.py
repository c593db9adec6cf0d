"""Tests for pricing resolution."""

from decimal import Decimal

import pytest

from packstore.domain.catalog import PricingTier, QuantityOption
from packstore.domain.exceptions import InvalidPriceError, InvalidQuantityError
from packstore.domain.pricing import (
    NoOverride,
    QuantityOptionRule,
    TierRule,
    active_pricing_tier,
    adjusted_base_price,
    calculate_price_per_unit,
    calculate_total_price,
    find_matching_quantity_option,
    first_quantity_option,
    format_price,
    minimum_quantity,
    option_discount_percentage,
    resolve_unit_price,
    tier_price_table,
    total_quantity,
)

TIERS = (
    PricingTier(min_quantity=1, max_quantity=49, discount=Decimal("0"), label="Standard"),
    PricingTier(min_quantity=50, max_quantity=99, discount=Decimal("10"), label="Bulk"),
    PricingTier(min_quantity=100, max_quantity=None, discount=Decimal("20"), label="Wholesale"),
)

OPTIONS = (
    QuantityOption(quantity=1, price_per_unit=Decimal("2.50")),
    QuantityOption(quantity=100, price_per_unit=Decimal("1.95")),
    QuantityOption(quantity=50, price_per_unit=Decimal("2.12")),
    QuantityOption(quantity=250, price_per_unit=Decimal("1.80"), is_active=False),
)


class TestTierSelection:
    """Tests for active_pricing_tier."""

    def test_quantity_inside_bounded_tier(self) -> None:
        """75 falls in the 50-99 tier."""
        assert active_pricing_tier(75, TIERS).label == "Bulk"

    def test_open_ended_tier(self) -> None:
        """An absent max quantity means no upper bound."""
        assert active_pricing_tier(5000, TIERS).label == "Wholesale"

    def test_highest_threshold_wins_regardless_of_order(self) -> None:
        """Overlapping tiers resolve to the highest minQuantity."""
        tiers = [
            PricingTier(min_quantity=100, discount=Decimal("20"), label="High"),
            PricingTier(min_quantity=1, discount=Decimal("5"), label="Low"),
        ]
        assert active_pricing_tier(150, tiers).label == "High"
        assert active_pricing_tier(150, list(reversed(tiers))).label == "High"

    def test_no_covering_tier(self) -> None:
        """Quantity below every tier gets no tier."""
        tiers = [PricingTier(min_quantity=50, discount=Decimal("10"))]
        assert active_pricing_tier(10, tiers) is None

    def test_empty_or_missing_tiers(self) -> None:
        """Missing tier data is not an error."""
        assert active_pricing_tier(10, None) is None
        assert active_pricing_tier(10, []) is None

    def test_invalid_tiers_are_ignored(self) -> None:
        """Tiers that could never match or would raise the price are skipped."""
        tiers = [
            PricingTier(min_quantity=0, discount=Decimal("10")),
            PricingTier(min_quantity=20, max_quantity=10, discount=Decimal("10")),
            PricingTier(min_quantity=1, discount=Decimal("150")),
        ]
        assert active_pricing_tier(15, tiers) is None


class TestResolveUnitPrice:
    """Tests for resolve_unit_price."""

    def test_tier_discount_keeps_full_precision(self) -> None:
        """1.99 with 10% off is 1.791 per unit, not 1.79."""
        resolution = resolve_unit_price(Decimal("1.99"), 0, 75, TIERS)

        assert resolution.unit_price == Decimal("1.791")
        assert resolution.total_price == Decimal("134.33")
        assert isinstance(resolution.rule, TierRule)
        assert resolution.applied_tier.label == "Bulk"
        assert resolution.savings == Decimal("14.93")

    def test_zero_discount_tier_still_applies(self) -> None:
        """A 0% tier is a match; it only attaches its label."""
        resolution = resolve_unit_price(Decimal("1.99"), 0, 10, TIERS)

        assert resolution.unit_price == Decimal("1.99")
        assert resolution.applied_tier.label == "Standard"
        assert resolution.savings == Decimal("0.00")

    def test_quantity_option_price_wins_over_tier(self) -> None:
        """A positive pack price beats a matching tier."""
        resolution = resolve_unit_price(Decimal("2.50"), 0, 75, TIERS, Decimal("2.12"))

        assert resolution.unit_price == Decimal("2.12")
        assert isinstance(resolution.rule, QuantityOptionRule)
        assert resolution.applied_tier is None
        assert resolution.applied_option_price == Decimal("2.12")

    def test_zero_option_price_is_ignored(self) -> None:
        """A zero pack price falls through to tiers."""
        resolution = resolve_unit_price(Decimal("1.99"), 0, 75, TIERS, 0)
        assert isinstance(resolution.rule, TierRule)

    def test_malformed_option_price_is_ignored(self) -> None:
        """A NaN pack price falls through to tiers."""
        resolution = resolve_unit_price(Decimal("1.99"), 0, 75, TIERS, "NaN")
        assert resolution.unit_price == Decimal("1.791")

    def test_no_rule_uses_adjusted_base(self) -> None:
        """Without tiers or a pack price the adjusted base applies."""
        resolution = resolve_unit_price(Decimal("1.99"), Decimal("0.20"), 3)

        assert resolution.unit_price == Decimal("2.19")
        assert isinstance(resolution.rule, NoOverride)

    def test_tier_applies_to_adjusted_base(self) -> None:
        """Tier discount is taken off base plus variant adjustment."""
        resolution = resolve_unit_price(Decimal("1.80"), Decimal("0.20"), 60, TIERS)
        assert resolution.unit_price == Decimal("1.800")

    def test_savings_never_negative(self) -> None:
        """A pack price above base reports no savings."""
        resolution = resolve_unit_price(Decimal("1.00"), 0, 10, None, Decimal("1.50"))

        assert resolution.unit_price == Decimal("1.50")
        assert resolution.savings == Decimal("0.00")

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, float("nan"), float("inf"), "3", True])
    def test_invalid_quantity_rejected(self, quantity) -> None:
        """Quantities must be positive integers."""
        with pytest.raises(InvalidQuantityError):
            resolve_unit_price(Decimal("1.99"), 0, quantity, TIERS)

    def test_integral_float_quantity_accepted(self) -> None:
        """2.0 is treated as 2."""
        assert resolve_unit_price(Decimal("1.99"), 0, 2.0).quantity == 2

    def test_invalid_base_price_rejected(self) -> None:
        """A NaN base price is rejected."""
        with pytest.raises(InvalidPriceError):
            resolve_unit_price("NaN", 0, 1)


class TestPriceHelpers:
    """Tests for the pricing convenience functions."""

    def test_adjusted_base_floored_at_zero(self) -> None:
        """A large negative adjustment cannot make the price negative."""
        assert adjusted_base_price(Decimal("1.00"), Decimal("-2.00")) == Decimal("0")

    def test_calculate_price_per_unit(self) -> None:
        assert calculate_price_per_unit(150, Decimal("1.99"), TIERS) == Decimal("1.592")

    def test_calculate_total_price(self) -> None:
        assert calculate_total_price(75, Decimal("1.99"), TIERS) == Decimal("134.33")

    def test_tier_price_table_ordered_ascending(self) -> None:
        """Rows come back smallest threshold first with their unit price."""
        rows = tier_price_table(Decimal("1.99"), list(reversed(TIERS)))

        assert [row.tier.min_quantity for row in rows] == [1, 50, 100]
        assert [row.unit_price for row in rows] == [
            Decimal("1.99"),
            Decimal("1.791"),
            Decimal("1.592"),
        ]

    def test_format_price(self) -> None:
        assert format_price(Decimal("1.791")) == "£1.79"
        assert format_price(5) == "£5.00"

    def test_total_quantity(self) -> None:
        """A pack of N with k stepper steps is N + (k - 1)."""
        assert total_quantity(50, 1) == 50
        assert total_quantity(50, 3) == 52
        assert total_quantity(0, 3) == 3


class TestQuantityOptions:
    """Tests for pack size selection and badges."""

    def test_floor_selection(self) -> None:
        """The largest pack not exceeding the quantity is chosen."""
        assert find_matching_quantity_option(120, OPTIONS).quantity == 100
        assert find_matching_quantity_option(100, OPTIONS).quantity == 100
        assert find_matching_quantity_option(99, OPTIONS).quantity == 50

    def test_below_smallest_pack(self) -> None:
        """No pack matches below the smallest pack size."""
        assert find_matching_quantity_option(49, OPTIONS) is None

    def test_inactive_and_reference_options_skipped(self) -> None:
        """Inactive packs and the single-unit reference are never selected."""
        assert find_matching_quantity_option(300, OPTIONS).quantity == 100
        assert find_matching_quantity_option(1, OPTIONS) is None

    def test_first_option_and_minimum_quantity(self) -> None:
        assert first_quantity_option(OPTIONS).quantity == 50
        assert minimum_quantity(OPTIONS) == 50
        assert minimum_quantity([]) == 1

    def test_discount_badges(self) -> None:
        """Badges are whole percentages against the single-unit price."""
        by_quantity = {o.quantity: o for o in OPTIONS}

        assert option_discount_percentage(by_quantity[50], OPTIONS) == 15
        assert option_discount_percentage(by_quantity[100], OPTIONS) == 22
        assert option_discount_percentage(by_quantity[1], OPTIONS) is None

    def test_no_badge_without_saving(self) -> None:
        """A pack priced at or above the reference gets no badge."""
        options = (
            QuantityOption(quantity=1, price_per_unit=Decimal("2.00")),
            QuantityOption(quantity=10, price_per_unit=Decimal("2.00")),
        )
        assert option_discount_percentage(options[1], options) is None
