"""Shared catalog fixtures."""

from decimal import Decimal

import pytest

from packstore.domain.catalog import PricingTier, Product, ProductVariant, QuantityOption
from packstore.infrastructure.catalog_store import InMemoryCatalog


def make_kraft_pouch() -> Product:
    """Product sold by the unit with three volume tiers."""
    return Product(
        id="kraft-pouch",
        name="Kraft Stand Up Pouch",
        slug="kraft-stand-up-pouch",
        base_price=Decimal("1.99"),
        pricing_tiers=(
            PricingTier(min_quantity=1, max_quantity=49, discount=Decimal("0"), label="Standard"),
            PricingTier(min_quantity=50, max_quantity=99, discount=Decimal("10"), label="Bulk"),
            PricingTier(min_quantity=100, max_quantity=None, discount=Decimal("20"), label="Wholesale"),
        ),
        variants=(
            ProductVariant(id="kp-natural", name="Natural", sku="KP-NAT"),
            ProductVariant(
                id="kp-black",
                name="Black",
                sku="KP-BLK",
                price_adjustment=Decimal("0.20"),
            ),
        ),
    )


def make_clear_pouch() -> Product:
    """Product whose variant is sold in packs."""
    return Product(
        id="clear-pouch",
        name="Clear Window Pouch",
        slug="clear-window-pouch",
        base_price=Decimal("2.50"),
        pricing_tiers=(
            PricingTier(min_quantity=50, max_quantity=None, discount=Decimal("10"), label="Bulk"),
        ),
        variants=(
            ProductVariant(
                id="cp-clear",
                name="Clear",
                sku="CP-CLR",
                quantity_options=(
                    QuantityOption(quantity=1, price_per_unit=Decimal("2.50"), label="1 Pouch"),
                    QuantityOption(quantity=50, price_per_unit=Decimal("2.12"), label="50 Pouches"),
                    QuantityOption(quantity=100, price_per_unit=Decimal("1.95"), label="100 Pouches"),
                    QuantityOption(
                        quantity=250,
                        price_per_unit=Decimal("1.80"),
                        label="250 Pouches",
                        is_active=False,
                    ),
                ),
            ),
        ),
    )


def make_mailer_box() -> Product:
    """Product on a 10% promotion, no tiers."""
    return Product(
        id="mailer-box",
        name="Mailer Box",
        base_price=Decimal("10.00"),
        discount=Decimal("10"),
    )


@pytest.fixture
def kraft_pouch() -> Product:
    return make_kraft_pouch()


@pytest.fixture
def clear_pouch() -> Product:
    return make_clear_pouch()


@pytest.fixture
def mailer_box() -> Product:
    return make_mailer_box()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Catalog holding every test product."""
    return InMemoryCatalog([make_kraft_pouch(), make_clear_pouch(), make_mailer_box()])
