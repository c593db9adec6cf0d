"""Tests for catalog parsing and value objects."""

from decimal import Decimal

import pytest

from packstore.domain.catalog import PricingTier, Product, ProductVariant, QuantityOption
from packstore.domain.exceptions import InvalidPriceError, InvalidQuantityError
from packstore.domain.value_objects import (
    ActorKey,
    quantize_money,
    to_decimal,
    to_price,
    to_quantity,
)


class TestProductFromDict:
    """Tests for parsing content-store documents."""

    def test_parse_full_document(self) -> None:
        product = Product.from_dict(
            {
                "_id": "pouch-01",
                "name": "Kraft Pouch",
                "slug": {"current": "kraft-pouch"},
                "basePrice": 1.99,
                "pricingTiers": [
                    {"minQuantity": 50, "maxQuantity": 0, "discount": 10, "label": "Bulk"},
                ],
                "variants": [
                    {
                        "_key": "v1",
                        "name": "Small",
                        "sku": "KP-S",
                        "priceAdjustment": "0.10",
                        "quantityOptions": [{"quantity": 50, "pricePerUnit": "1.80"}],
                    }
                ],
            }
        )

        assert product.id == "pouch-01"
        assert product.slug == "kraft-pouch"
        assert product.base_price == Decimal("1.99")
        assert product.pricing_tiers[0].max_quantity is None
        assert product.pricing_tiers[0].discount == Decimal("10")
        variant = product.variants[0]
        assert variant.id == "v1"
        assert variant.identity == "KP-S"
        assert variant.price_adjustment == Decimal("0.10")
        assert variant.quantity_options[0].price_per_unit == Decimal("1.80")

    def test_malformed_tiers_dropped(self) -> None:
        """A broken tier is skipped without failing the product."""
        product = Product.from_dict(
            {
                "id": "p1",
                "name": "P",
                "basePrice": "5.00",
                "pricingTiers": [
                    {"maxQuantity": 10, "discount": 5},
                    {"minQuantity": 10, "discount": "abc"},
                    {"minQuantity": 20, "discount": 5},
                ],
            }
        )

        assert [t.min_quantity for t in product.pricing_tiers] == [20]

    def test_missing_optional_fields(self) -> None:
        product = Product.from_dict({"id": "p1", "name": "P", "basePrice": "5"})

        assert product.pricing_tiers == ()
        assert product.variants == ()
        assert product.discount is None
        assert not product.has_promotion

    def test_negative_base_price_rejected(self) -> None:
        with pytest.raises(InvalidPriceError):
            Product.from_dict({"id": "p1", "name": "P", "basePrice": "-1"})

    def test_counts_must_be_whole_numbers(self) -> None:
        """Fractional or missing counts drop the entry instead of truncating."""
        product = Product.from_dict(
            {
                "id": "p1",
                "name": "P",
                "basePrice": "5.00",
                "pricingTiers": [
                    {"minQuantity": 2.5, "discount": 5},
                    {"minQuantity": None, "discount": 5},
                    {"minQuantity": 10, "maxQuantity": 19.5, "discount": 5},
                    {"minQuantity": "20", "maxQuantity": 49.0, "discount": 5},
                ],
                "variants": [
                    {
                        "id": "v1",
                        "quantityOptions": [{"quantity": 12.5}, {"quantity": 25}],
                    }
                ],
            }
        )

        assert [(t.min_quantity, t.max_quantity) for t in product.pricing_tiers] == [(20, 49)]
        assert [o.quantity for o in product.variants[0].quantity_options] == [25]

    @pytest.mark.parametrize("discount", [150, "-5"])
    def test_out_of_range_discount_dropped(self, discount) -> None:
        product = Product.from_dict(
            {"id": "p1", "name": "P", "basePrice": "10", "discount": discount}
        )

        assert product.discount is None
        assert not product.has_promotion

    def test_full_discount_kept(self) -> None:
        product = Product(id="p1", name="P", base_price=Decimal("10"), discount=Decimal("100"))

        assert product.discount == Decimal("100")

    def test_get_variant_by_id_or_sku(self, kraft_pouch) -> None:
        assert kraft_pouch.get_variant("kp-black").sku == "KP-BLK"
        assert kraft_pouch.get_variant("KP-BLK").id == "kp-black"
        assert kraft_pouch.get_variant("nope") is None


class TestCatalogValueObjects:
    """Tests for tiers, variants and options."""

    def test_tier_covers_range(self) -> None:
        tier = PricingTier(min_quantity=50, max_quantity=99, discount=Decimal("10"))

        assert not tier.covers(49)
        assert tier.covers(50)
        assert tier.covers(99)
        assert not tier.covers(100)

    def test_variant_identity_falls_back_to_id(self) -> None:
        assert ProductVariant(id="v1").identity == "v1"

    def test_quantity_option_requires_positive_quantity(self) -> None:
        with pytest.raises(ValueError):
            QuantityOption(quantity=0)

    def test_option_without_price(self) -> None:
        assert not QuantityOption(quantity=10).has_price
        assert not QuantityOption(quantity=10, price_per_unit=Decimal("0")).has_price


class TestMoneyHelpers:
    """Tests for money and quantity conversion."""

    def test_float_goes_through_str(self) -> None:
        assert to_decimal(1.99) == Decimal("1.99")

    @pytest.mark.parametrize("value", ["NaN", "inf", "abc", None, True])
    def test_non_numeric_rejected(self, value) -> None:
        with pytest.raises(InvalidPriceError):
            to_decimal(value)

    def test_negative_price_rejected(self) -> None:
        assert to_price("0") == Decimal("0")
        with pytest.raises(InvalidPriceError):
            to_price("-0.01")

    def test_quantize_half_up(self) -> None:
        assert quantize_money(Decimal("134.325")) == Decimal("134.33")
        assert quantize_money(Decimal("0.004")) == Decimal("0.00")

    def test_quantity_conversion(self) -> None:
        assert to_quantity(3) == 3
        assert to_quantity(Decimal("4")) == 4
        with pytest.raises(InvalidQuantityError):
            to_quantity(Decimal("4.5"))


class TestActorKey:
    """Tests for ActorKey."""

    def test_string_form(self) -> None:
        assert str(ActorKey.for_user("u1")) == "user:u1"
        assert str(ActorKey.for_guest("g1")) == "guest:g1"

    def test_guest_flag(self) -> None:
        assert ActorKey.for_guest("g1").is_guest
        assert not ActorKey.for_user("u1").is_guest

    def test_empty_value_rejected(self) -> None:
        with pytest.raises(ValueError):
            ActorKey.for_guest("  ")
