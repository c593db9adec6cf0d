"""Shipping options offered at checkout."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from packstore.domain.base import ValueObject
from packstore.domain.value_objects import ZERO


class Carrier(str, Enum):
    """Carriers a shipping option can use."""

    EVRI = "Evri"
    DHL = "DHL"
    COLLECTION = "Collection"


@dataclass(frozen=True)
class ShippingOption(ValueObject):
    """A shipping method and its flat price.

    Attributes:
        id: Stable identifier stored on the cart.
        name: Display name.
        price: Flat price in pounds.
        delivery_time: Delivery promise shown to the customer.
        carrier: Carrier used.
        description: Short price description.
    """

    id: str
    name: str
    price: Decimal
    delivery_time: str
    carrier: Carrier
    description: str = ""


SHIPPING_OPTIONS: tuple[ShippingOption, ...] = (
    ShippingOption(
        id="evri-48",
        name="Evri Tracked 48",
        price=Decimal("0.00"),
        delivery_time="Deliver within 3-4 working days",
        carrier=Carrier.EVRI,
        description="Free",
    ),
    ShippingOption(
        id="dhl-next-day",
        name="DHL Next Day UK",
        price=Decimal("5.99"),
        delivery_time="Next Working Day Delivery (Monday - Friday Delivery)",
        carrier=Carrier.DHL,
        description="£5.99",
    ),
    ShippingOption(
        id="free-collection",
        name="Free Collection From Our Manchester Warehouse",
        price=Decimal("0.00"),
        delivery_time="Collect at your convenience",
        carrier=Carrier.COLLECTION,
        description="Free",
    ),
)

DEFAULT_SHIPPING_OPTION = SHIPPING_OPTIONS[0]


def get_shipping_option_by_id(shipping_id: str) -> ShippingOption | None:
    """Get a shipping option by id."""
    for option in SHIPPING_OPTIONS:
        if option.id == shipping_id:
            return option
    return None


def get_shipping_price(shipping_id: str) -> Decimal:
    """Price of a shipping option. Unknown ids cost nothing."""
    option = get_shipping_option_by_id(shipping_id)
    return option.price if option else ZERO


def format_shipping_option(option: ShippingOption) -> str:
    return f"{option.name} - £{option.price:.2f}"
