"""Value objects and money helpers for the domain layer.

Prices are carried as Decimal in major currency units (pounds). Unit
prices keep full precision; line totals and summary figures are rounded
to the minor unit with ROUND_HALF_UP.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Self

from packstore.domain.base import ValueObject
from packstore.domain.exceptions import InvalidPriceError, InvalidQuantityError

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")

PriceInput = Decimal | int | float | str


# ============================================================================
# Money Helpers
# ============================================================================


def to_decimal(value: PriceInput, field_name: str = "price") -> Decimal:
    """Convert a price-like input into a finite Decimal.

    Floats go through str() so 1.99 stays 1.99 rather than its binary
    expansion.

    Args:
        value: Decimal, int, float or numeric string.
        field_name: Field name used in the error message.

    Returns:
        Finite Decimal value.

    Raises:
        InvalidPriceError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidPriceError(value, field_name)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError(value, field_name) from None
    if not result.is_finite():
        raise InvalidPriceError(value, field_name)
    return result


def to_price(value: PriceInput, field_name: str = "price") -> Decimal:
    """Convert to a non-negative finite Decimal.

    Raises:
        InvalidPriceError: If the value is negative or not a finite number.
    """
    result = to_decimal(value, field_name)
    if result < ZERO:
        raise InvalidPriceError(value, field_name)
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Round an amount to the minor currency unit (half up)."""
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_quantity(value: object) -> int:
    """Validate a line quantity.

    Accepts ints and integral floats/Decimals; rejects bools, NaN,
    fractions and anything below one.

    Raises:
        InvalidQuantityError: If the value is not a positive integer.
    """
    if isinstance(value, bool):
        raise InvalidQuantityError(value)
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, (float, Decimal)):
        try:
            if value != value or value != int(value):
                raise InvalidQuantityError(value)
        except (OverflowError, ValueError, InvalidOperation):
            raise InvalidQuantityError(value) from None
        quantity = int(value)
    else:
        raise InvalidQuantityError(value)
    if quantity < 1:
        raise InvalidQuantityError(value)
    return quantity


# ============================================================================
# Actor Identity
# ============================================================================


class ActorKind(str, Enum):
    """Who owns a cart record."""

    USER = "user"
    GUEST = "guest"


@dataclass(frozen=True)
class ActorKey(ValueObject):
    """Key of a durable cart record.

    Known customers are keyed by their authenticated id, anonymous
    visitors by a guest session id. Only one cart record exists per key.
    """

    kind: ActorKind
    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Actor key value cannot be empty")

    @classmethod
    def for_user(cls, user_id: str) -> Self:
        return cls(kind=ActorKind.USER, value=user_id)

    @classmethod
    def for_guest(cls, session_id: str) -> Self:
        return cls(kind=ActorKind.GUEST, value=session_id)

    @property
    def is_guest(self) -> bool:
        return self.kind == ActorKind.GUEST

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"
