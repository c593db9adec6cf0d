"""Order total calculation.

Turns a discounted subtotal and a shipping cost into a VAT-inclusive
breakdown. Whether shipping is part of the VAT base depends on the
jurisdiction, so it is passed in as a VatBase rather than fixed here.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from packstore.domain.value_objects import PriceInput, quantize_money, to_decimal

# UK standard rate
VAT_RATE = Decimal("0.20")


class VatBase(str, Enum):
    """What VAT is charged on."""

    SUBTOTAL_AND_SHIPPING = "subtotal_and_shipping"
    SUBTOTAL_ONLY = "subtotal_only"


DEFAULT_VAT_BASE = VatBase.SUBTOTAL_AND_SHIPPING


@dataclass(frozen=True)
class OrderTotal:
    """VAT-inclusive order breakdown.

    Attributes:
        subtotal: Discounted goods subtotal.
        shipping: Shipping cost.
        vat_amount: VAT charged.
        total: subtotal + shipping + vat_amount.
        shipping_method: Id of the selected shipping method.
    """

    subtotal: Decimal
    shipping: Decimal
    vat_amount: Decimal
    total: Decimal
    shipping_method: str = ""


@dataclass(frozen=True)
class VatSplit:
    """A VAT-inclusive amount split into its parts."""

    exclusive: Decimal
    vat: Decimal


def vat_taxable_amount(
    subtotal: PriceInput,
    shipping_cost: PriceInput,
    vat_base: VatBase = DEFAULT_VAT_BASE,
) -> Decimal:
    """Amount VAT is charged on under a VAT base."""
    taxable = to_decimal(subtotal, "subtotal")
    if vat_base == VatBase.SUBTOTAL_AND_SHIPPING:
        taxable += to_decimal(shipping_cost, "shipping")
    return taxable


def calculate_vat(
    subtotal: PriceInput,
    shipping_cost: PriceInput,
    vat_rate: PriceInput = VAT_RATE,
    vat_base: VatBase = DEFAULT_VAT_BASE,
) -> Decimal:
    """VAT owed, rounded to the minor unit."""
    taxable = vat_taxable_amount(subtotal, shipping_cost, vat_base)
    return quantize_money(taxable * to_decimal(vat_rate, "vat_rate"))


def calculate_order_total(
    discounted_subtotal: PriceInput,
    shipping_cost: PriceInput,
    vat_rate: PriceInput = VAT_RATE,
    vat_base: VatBase = DEFAULT_VAT_BASE,
    shipping_method: str = "",
) -> OrderTotal:
    """Calculate the VAT-inclusive order total.

    Args:
        discounted_subtotal: Goods subtotal after promotional discounts.
        shipping_cost: Price of the selected shipping method.
        vat_rate: VAT rate as a fraction.
        vat_base: Whether shipping is part of the VAT base.
        shipping_method: Shipping method id to carry on the result.

    Returns:
        OrderTotal with every figure rounded to the minor unit.
    """
    subtotal = quantize_money(to_decimal(discounted_subtotal, "subtotal"))
    shipping = quantize_money(to_decimal(shipping_cost, "shipping"))
    vat_amount = calculate_vat(subtotal, shipping, vat_rate, vat_base)
    return OrderTotal(
        subtotal=subtotal,
        shipping=shipping,
        vat_amount=vat_amount,
        total=subtotal + shipping + vat_amount,
        shipping_method=shipping_method,
    )


def calculate_vat_exclusive(
    vat_inclusive_amount: PriceInput,
    vat_rate: PriceInput = VAT_RATE,
) -> VatSplit:
    """Split a VAT-inclusive amount into net and VAT parts."""
    gross = to_decimal(vat_inclusive_amount, "amount")
    exclusive = quantize_money(gross / (1 + to_decimal(vat_rate, "vat_rate")))
    return VatSplit(exclusive=exclusive, vat=quantize_money(gross) - exclusive)
