"""Shared fixtures for API tests."""

from collections.abc import Iterator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from packstore.application.cart_service import CartSessionRegistry, get_cart_registry
from packstore.application.order_poller import reset_poller_registry
from packstore.domain.totals import VatBase
from packstore.infrastructure.cart_store import InMemoryCartStore
from packstore.infrastructure.catalog_store import InMemoryCatalog, reset_catalog, set_catalog
from packstore.main import app


@pytest.fixture
def cart_store() -> InMemoryCartStore:
    return InMemoryCartStore()


@pytest.fixture
def cart_registry(cart_store) -> CartSessionRegistry:
    """Fresh cart sessions for every test."""
    return CartSessionRegistry(
        store=cart_store,
        vat_rate=Decimal("0.20"),
        vat_base=VatBase.SUBTOTAL_AND_SHIPPING,
    )


@pytest.fixture
def client(catalog: InMemoryCatalog, cart_registry: CartSessionRegistry) -> Iterator[TestClient]:
    """Test client over the test catalog.

    Used as a context manager so the event loop stays up between
    requests and background polls keep running.
    """
    set_catalog(catalog)
    reset_poller_registry()
    app.dependency_overrides[get_cart_registry] = lambda: cart_registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_poller_registry()
    reset_catalog()


@pytest.fixture
def guest_headers() -> dict[str, str]:
    return {"X-Guest-Session": "guest-abc"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-ID": "user-42"}
