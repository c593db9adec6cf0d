"""Durable cart stores.

A cart record is keyed by actor key and holds the serialized lines.
Saving an empty cart deletes the record so there is never an empty
row lying around. Store failures surface as CartStoreError; the cart
service decides what to do with them.
"""

from typing import Any, Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from packstore.domain.entities import CartItem
from packstore.domain.exceptions import CartStoreError, DomainError
from packstore.infrastructure.models import CartModel

logger = structlog.get_logger()


class CartStore(Protocol):
    """Port for durable cart records."""

    async def load_cart(self, actor_key: str) -> list[CartItem] | None:
        """Load lines for an actor, or None when no record exists."""
        ...

    async def save_cart(self, items: list[CartItem], actor_key: str) -> None:
        """Replace the record's lines. An empty list deletes the record."""
        ...

    async def delete_cart(self, actor_key: str) -> None:
        """Delete the record. Deleting a missing record is a no-op."""
        ...


def _decode_items(actor_key: str, raw_items: list[dict[str, Any]] | None) -> list[CartItem]:
    items = []
    for raw in raw_items or []:
        try:
            items.append(CartItem.from_dict(raw))
        except (DomainError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Dropping unreadable cart line",
                actor_key=actor_key,
                error=str(e),
            )
    return items


# ============================================================================
# In-Memory Store
# ============================================================================


class InMemoryCartStore:
    """In-memory cart store.

    Stores serialized records so loads hand back fresh objects, the same
    as a database round trip would.
    """

    def __init__(self) -> None:
        self._records: dict[str, list[dict[str, Any]]] = {}

    async def load_cart(self, actor_key: str) -> list[CartItem] | None:
        raw = self._records.get(actor_key)
        if raw is None:
            return None
        return _decode_items(actor_key, raw)

    async def save_cart(self, items: list[CartItem], actor_key: str) -> None:
        if not items:
            await self.delete_cart(actor_key)
            return
        self._records[actor_key] = [item.to_dict() for item in items]

    async def delete_cart(self, actor_key: str) -> None:
        self._records.pop(actor_key, None)

    def __contains__(self, actor_key: str) -> bool:
        return actor_key in self._records

    def __len__(self) -> int:
        return len(self._records)


# ============================================================================
# SQLAlchemy Store
# ============================================================================


class SqlAlchemyCartStore:
    """Cart store backed by the carts table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory for async sessions.
        """
        self._session_factory = session_factory

    async def load_cart(self, actor_key: str) -> list[CartItem] | None:
        """Load lines for an actor.

        Raises:
            CartStoreError: If the database read fails.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CartModel).where(CartModel.actor_key == actor_key)
                )
                record = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise CartStoreError(actor_key, "load", str(e)) from e

        if record is None:
            return None
        return _decode_items(actor_key, record.items)

    async def save_cart(self, items: list[CartItem], actor_key: str) -> None:
        """Upsert the record, or delete it when there are no lines.

        Raises:
            CartStoreError: If the database write fails.
        """
        if not items:
            await self.delete_cart(actor_key)
            return

        payload = [item.to_dict() for item in items]
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(CartModel).where(CartModel.actor_key == actor_key)
                    )
                    record = result.scalar_one_or_none()
                    if record is None:
                        session.add(CartModel(actor_key=actor_key, items=payload))
                    else:
                        record.items = payload
        except (SQLAlchemyError, OSError) as e:
            raise CartStoreError(actor_key, "save", str(e)) from e

        logger.debug("Cart record saved", actor_key=actor_key, line_count=len(payload))

    async def delete_cart(self, actor_key: str) -> None:
        """Delete the record for an actor.

        Raises:
            CartStoreError: If the database delete fails.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        delete(CartModel).where(CartModel.actor_key == actor_key)
                    )
        except (SQLAlchemyError, OSError) as e:
            raise CartStoreError(actor_key, "delete", str(e)) from e

        logger.debug("Cart record deleted", actor_key=actor_key)


# Global store instance
_cart_store: CartStore | None = None


def get_cart_store() -> CartStore:
    """Get the configured cart store singleton.

    Returns:
        SqlAlchemyCartStore when the database backend is configured,
        otherwise InMemoryCartStore.
    """
    global _cart_store
    if _cart_store is None:
        from packstore.infrastructure.config import settings

        if settings.cart_store_backend == "database":
            from packstore.infrastructure.database import get_session_factory

            _cart_store = SqlAlchemyCartStore(get_session_factory())
        else:
            _cart_store = InMemoryCartStore()
    return _cart_store


def reset_cart_store() -> None:
    """Reset the cart store singleton (for testing)."""
    global _cart_store
    _cart_store = None
