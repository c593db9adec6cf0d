"""Domain exceptions.

All domain-level errors that represent business rule violations.
Absent things (a cart line, a product, an order) are returned as None
by lookups and are not modelled as exceptions here.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "OrderPoller").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Base class for malformed input rejected at the boundary."""

    pass


class InvalidQuantityError(ValidationError):
    """Raised when an invalid quantity is provided."""

    def __init__(self, quantity: object, reason: str = "Quantity must be a positive integer") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity!r}: {reason}",
            details={"quantity": str(quantity), "reason": reason},
        )


class InvalidPriceError(ValidationError):
    """Raised when a price is negative, NaN, infinite or not a number."""

    def __init__(self, value: object, field_name: str = "price") -> None:
        """Initialize invalid price error.

        Args:
            value: The rejected value.
            field_name: Name of the field that carried the value.
        """
        super().__init__(
            f"Invalid {field_name}: {value!r}",
            details={"field": field_name, "value": str(value)},
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(DomainError):
    """Base class for cart-related errors."""

    pass


class UnknownShippingMethodError(CartError):
    """Raised when selecting a shipping method that is not offered."""

    def __init__(self, shipping_id: str, available: list[str]) -> None:
        """Initialize unknown shipping method error.

        Args:
            shipping_id: The requested shipping method id.
            available: Ids of the methods that are offered.
        """
        super().__init__(
            f"Unknown shipping method '{shipping_id}'",
            details={"shipping_id": shipping_id, "available": available},
        )


class ProductNotFoundError(CartError):
    """Raised at the HTTP boundary when a product id does not resolve."""

    def __init__(self, product_id: str) -> None:
        super().__init__(
            f"Product {product_id} not found",
            details={"product_id": product_id},
        )


class VariantNotFoundError(CartError):
    """Raised at the HTTP boundary when a variant does not belong to the product."""

    def __init__(self, product_id: str, variant_id: str) -> None:
        super().__init__(
            f"Variant {variant_id} not found on product {product_id}",
            details={"product_id": product_id, "variant_id": variant_id},
        )


class CartStoreError(CartError):
    """Raised by durable cart stores when a read or write fails."""

    def __init__(self, actor_key: str, operation: str, reason: str) -> None:
        """Initialize cart store error.

        Args:
            actor_key: Key of the cart record.
            operation: Store operation that failed (load, save, delete).
            reason: Underlying failure description.
        """
        super().__init__(
            f"Cart store {operation} failed for {actor_key}: {reason}",
            details={"actor_key": actor_key, "operation": operation, "reason": reason},
        )
