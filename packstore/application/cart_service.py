"""Cart application service.

Wraps the Cart aggregate for one actor and keeps the durable record in
step with it:
- Loading the record once per session
- Applying mutations, then syncing the record exactly once
- Folding a guest cart into a customer's cart on login

Every mutation is applied to the in-memory aggregate synchronously, so
summaries are correct before persistence finishes. Persistence failures
are logged and never raised; the in-memory cart stays authoritative for
the session and there is no automatic retry.

Two sessions mutating the same actor's cart each write their own view
of the lines; the last write wins.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from decimal import Decimal

import structlog

from packstore.domain.catalog import Product, ProductVariant
from packstore.domain.entities import Cart, CartItem, CartSummary, CartSummaryWithShipping
from packstore.domain.exceptions import CartStoreError
from packstore.domain.totals import DEFAULT_VAT_BASE, VAT_RATE, VatBase
from packstore.domain.value_objects import PriceInput
from packstore.infrastructure.cart_store import CartStore, get_cart_store

logger = structlog.get_logger()


class CartService:
    """Application service for one actor's cart.

    Attributes:
        actor_key: Key of the durable cart record.
        cart: The in-memory aggregate, authoritative for the session.
    """

    def __init__(
        self,
        actor_key: str,
        store: CartStore,
        vat_rate: PriceInput = VAT_RATE,
        vat_base: VatBase = DEFAULT_VAT_BASE,
    ) -> None:
        """Initialize cart service.

        Args:
            actor_key: Key of the durable cart record.
            store: Durable cart store.
            vat_rate: VAT rate used for VAT-inclusive summaries.
            vat_base: What VAT is charged on.
        """
        self.actor_key = actor_key
        self.store = store
        self.vat_rate = vat_rate
        self.vat_base = vat_base
        self.cart = Cart.create(actor_key)
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def items(self) -> list[CartItem]:
        return list(self.cart.items)

    @property
    def item_count(self) -> int:
        return self.cart.item_count

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize_cart(self) -> Cart:
        """Load the durable record into the cart, once.

        A failed load is logged and leaves the cart empty but initialized.

        Returns:
            The cart aggregate.
        """
        if self._initialized:
            return self.cart

        try:
            items = await self.store.load_cart(self.actor_key)
        except CartStoreError as e:
            logger.error(
                "Failed to load cart",
                actor_key=self.actor_key,
                error=e.message,
            )
            items = None

        if items:
            self.cart = Cart.create(self.actor_key, items)
        self._initialized = True

        logger.info(
            "Cart initialized",
            actor_key=self.actor_key,
            line_count=len(self.cart.items),
        )
        return self.cart

    async def _sync(self) -> None:
        """Write the current lines to the durable record.

        An empty cart deletes the record.
        """
        try:
            await self.store.save_cart(list(self.cart.items), self.actor_key)
        except CartStoreError as e:
            logger.error(
                "Failed to sync cart",
                actor_key=self.actor_key,
                operation=e.details.get("operation"),
                error=e.message,
            )

    def _log_events(self) -> None:
        for event in self.cart.collect_events():
            logger.info(
                "Cart event",
                actor_key=self.actor_key,
                **event.to_dict(),
            )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add_item(
        self,
        product: Product,
        variant: ProductVariant | None = None,
        quantity: int = 1,
        quantity_option_price: PriceInput | None = None,
    ) -> CartItem:
        """Add units to the cart and sync.

        Args:
            product: Catalog product.
            variant: Selected variant, if any.
            quantity: Units to add.
            quantity_option_price: Pack price selected by the customer.

        Returns:
            The new or merged line.

        Raises:
            InvalidQuantityError: If quantity is not a positive integer.
            InvalidPriceError: If the pack price is invalid.
        """
        item = self.cart.add_item(product, variant, quantity, quantity_option_price)
        self._log_events()
        await self._sync()
        return item

    async def update_quantity(self, item_id: str, quantity: int) -> CartItem | None:
        """Set a line's quantity and sync. Zero or less removes the line.

        Returns:
            The updated line, or None if removed or not found.
        """
        item = self.cart.update_quantity(item_id, quantity)
        self._log_events()
        await self._sync()
        return item

    async def remove_item(self, item_id: str) -> CartItem | None:
        """Remove a line and sync.

        Returns:
            The removed line, or None if no line has that id.
        """
        item = self.cart.remove_item(item_id)
        self._log_events()
        await self._sync()
        return item

    async def clear_cart(self) -> None:
        """Drop every line and delete the durable record.

        Safe to call on an already empty cart.
        """
        self.cart.clear()
        self._log_events()
        await self._sync()

    def set_shipping_method(self, shipping_id: str) -> None:
        """Select a shipping method.

        Raises:
            UnknownShippingMethodError: If the method is not offered.
        """
        self.cart.set_shipping_method(shipping_id)
        logger.info(
            "Shipping method selected",
            actor_key=self.actor_key,
            shipping_id=shipping_id,
        )

    async def merge_guest_cart(self, guest_key: str) -> int:
        """Fold a guest's cart into this cart after login.

        Matching lines are combined and re-priced at the combined
        quantity. The guest record is deleted afterwards; a failed delete
        is only logged.

        Args:
            guest_key: Actor key of the guest cart record.

        Returns:
            Number of guest lines folded in.
        """
        await self.initialize_cart()

        try:
            guest_items = await self.store.load_cart(guest_key)
        except CartStoreError as e:
            logger.error(
                "Failed to load guest cart",
                guest_key=guest_key,
                actor_key=self.actor_key,
                error=e.message,
            )
            return 0

        if not guest_items:
            return 0

        self.cart.absorb(guest_items)
        self._log_events()
        await self._sync()

        try:
            await self.store.delete_cart(guest_key)
        except CartStoreError as e:
            logger.error(
                "Failed to delete guest cart",
                guest_key=guest_key,
                error=e.message,
            )

        logger.info(
            "Guest cart merged",
            guest_key=guest_key,
            actor_key=self.actor_key,
            merged_lines=len(guest_items),
        )
        return len(guest_items)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_cart_summary(self) -> CartSummary:
        return self.cart.summary()

    def get_cart_summary_with_shipping(self) -> CartSummaryWithShipping:
        return self.cart.summary_with_shipping(self.vat_rate, self.vat_base)


# ============================================================================
# Session Registry
# ============================================================================


class CartSessionRegistry:
    """Holds recently used CartServices keyed by actor key.

    At most max_sessions services are kept and the least recently used
    one is dropped first. A service idle for longer than idle_seconds is
    dropped on its next use and the cart is loaded from the store again.
    The shipping selection lives only here; the durable record holds
    lines only, so a dropped session falls back to the default method.
    """

    def __init__(
        self,
        store: CartStore | None = None,
        vat_rate: PriceInput | None = None,
        vat_base: VatBase | None = None,
        max_sessions: int | None = None,
        idle_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        from packstore.infrastructure.config import settings

        self._store = store
        self._vat_rate = vat_rate
        self._vat_base = vat_base
        self.max_sessions = max_sessions if max_sessions is not None else settings.cart_session_cache_size
        self.idle_seconds = idle_seconds if idle_seconds is not None else settings.cart_session_idle_seconds
        self._clock = clock
        self._services: OrderedDict[str, CartService] = OrderedDict()
        self._last_used: dict[str, float] = {}

    @property
    def store(self) -> CartStore:
        if self._store is None:
            self._store = get_cart_store()
        return self._store

    async def get(self, actor_key: str) -> CartService:
        """Get the initialized service for an actor, creating it on first use."""
        now = self._clock()
        service = self._services.get(actor_key)
        if service is not None and now - self._last_used[actor_key] > self.idle_seconds:
            logger.info("Cart session expired", actor_key=actor_key)
            self.discard(actor_key)
            service = None

        if service is None:
            service = CartService(
                actor_key,
                self.store,
                vat_rate=self._vat_rate if self._vat_rate is not None else _settings_vat_rate(),
                vat_base=self._vat_base or _settings_vat_base(),
            )
            self._services[actor_key] = service
        self._services.move_to_end(actor_key)
        self._last_used[actor_key] = now
        self._evict()

        await service.initialize_cart()
        return service

    def _evict(self) -> None:
        while len(self._services) > self.max_sessions:
            actor_key, _ = self._services.popitem(last=False)
            self._last_used.pop(actor_key, None)
            logger.debug("Cart session evicted", actor_key=actor_key)

    def peek(self, actor_key: str) -> CartService | None:
        return self._services.get(actor_key)

    def discard(self, actor_key: str) -> None:
        self._services.pop(actor_key, None)
        self._last_used.pop(actor_key, None)

    def __len__(self) -> int:
        return len(self._services)



def _settings_vat_rate() -> Decimal:
    from packstore.infrastructure.config import settings

    return settings.vat_rate


def _settings_vat_base() -> VatBase:
    from packstore.infrastructure.config import settings

    return VatBase(settings.vat_base)


# Global registry instance
_cart_registry: CartSessionRegistry | None = None


def get_cart_registry() -> CartSessionRegistry:
    """Get the cart session registry singleton."""
    global _cart_registry
    if _cart_registry is None:
        _cart_registry = CartSessionRegistry()
    return _cart_registry


def reset_cart_registry() -> None:
    """Reset the cart session registry (for testing)."""
    global _cart_registry
    _cart_registry = None
