"""Domain events recorded by the cart aggregate."""

from dataclasses import dataclass
from typing import Any, ClassVar

from packstore.domain.base import DomainEvent


@dataclass(frozen=True)
class CartItemAdded(DomainEvent):
    """A new line was appended to the cart."""

    event_type: ClassVar[str] = "cart.item_added"

    item_id: str = ""
    product_id: str = ""
    variant_key: str = ""
    quantity: int = 0
    price_per_unit: str = ""
    pricing_rule: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "product_id": self.product_id,
            "variant_key": self.variant_key,
            "quantity": self.quantity,
            "price_per_unit": self.price_per_unit,
            "pricing_rule": self.pricing_rule,
        }


@dataclass(frozen=True)
class CartItemQuantityUpdated(DomainEvent):
    """A line's quantity changed and its price was re-resolved."""

    event_type: ClassVar[str] = "cart.item_quantity_updated"

    item_id: str = ""
    old_quantity: int = 0
    new_quantity: int = 0
    price_per_unit: str = ""
    pricing_rule: str = ""
    merged: bool = False

    def _payload(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
            "price_per_unit": self.price_per_unit,
            "pricing_rule": self.pricing_rule,
            "merged": self.merged,
        }


@dataclass(frozen=True)
class CartItemRemoved(DomainEvent):
    """A line was removed from the cart."""

    event_type: ClassVar[str] = "cart.item_removed"

    item_id: str = ""
    product_id: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"item_id": self.item_id, "product_id": self.product_id}


@dataclass(frozen=True)
class CartCleared(DomainEvent):
    """All lines were dropped and shipping reset to the default."""

    event_type: ClassVar[str] = "cart.cleared"

    removed_items: int = 0

    def _payload(self) -> dict[str, Any]:
        return {"removed_items": self.removed_items}


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    cls.event_type: cls
    for cls in (CartItemAdded, CartItemQuantityUpdated, CartItemRemoved, CartCleared)
}
