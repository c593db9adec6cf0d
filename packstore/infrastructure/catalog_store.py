"""Catalog read access.

The catalog is owned by an external content store. This service only
reads product snapshots; an in-memory catalog loaded from a JSON export
backs the HTTP surface and tests.
"""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

import structlog

from packstore.domain.catalog import Product
from packstore.domain.exceptions import DomainError

logger = structlog.get_logger()


class CatalogReader(Protocol):
    """Port for product lookups."""

    def get_product_by_id(self, product_id: str) -> Product | None:
        ...

    def get_product_by_slug(self, slug: str) -> Product | None:
        ...

    def list_products(self) -> list[Product]:
        ...


class InMemoryCatalog:
    """Catalog held in memory, keyed by product id and slug."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: dict[str, Product] = {}
        self._by_slug: dict[str, str] = {}
        for product in products:
            self.add(product)

    def add(self, product: Product) -> None:
        """Add or replace a product."""
        self._products[product.id] = product
        if product.slug:
            self._by_slug[product.slug] = product.id

    def get_product_by_id(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def get_product_by_slug(self, slug: str) -> Product | None:
        product_id = self._by_slug.get(slug)
        return self._products.get(product_id) if product_id else None

    def get_product(self, product_ref: str) -> Product | None:
        """Get product by id, falling back to slug."""
        return self.get_product_by_id(product_ref) or self.get_product_by_slug(product_ref)

    def list_products(self) -> list[Product]:
        return list(self._products.values())

    def __len__(self) -> int:
        return len(self._products)

    @classmethod
    def from_documents(cls, documents: Iterable[dict[str, Any]]) -> "InMemoryCatalog":
        """Build a catalog from content-store documents.

        Documents that cannot be parsed are skipped with a warning.
        """
        catalog = cls()
        for doc in documents:
            try:
                catalog.add(Product.from_dict(doc))
            except (DomainError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Skipping unparseable product",
                    product_id=doc.get("id") or doc.get("_id"),
                    error=str(e),
                )
        return catalog

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryCatalog":
        """Load a catalog from a JSON file holding a list of products.

        Args:
            path: Path to the JSON export.

        Returns:
            Populated catalog.
        """
        with open(path, encoding="utf-8") as f:
            documents = json.load(f)
        catalog = cls.from_documents(documents)
        logger.info("Catalog loaded", path=str(path), product_count=len(catalog))
        return catalog


# Global catalog instance
_catalog: InMemoryCatalog | None = None


def get_catalog() -> InMemoryCatalog:
    """Get the catalog singleton, loading it from settings on first use."""
    global _catalog
    if _catalog is None:
        from packstore.infrastructure.config import settings

        if settings.catalog_path:
            _catalog = InMemoryCatalog.from_file(settings.catalog_path)
        else:
            _catalog = InMemoryCatalog()
    return _catalog


def set_catalog(catalog: InMemoryCatalog) -> None:
    """Replace the catalog singleton."""
    global _catalog
    _catalog = catalog


def reset_catalog() -> None:
    """Reset the catalog singleton (for testing)."""
    global _catalog
    _catalog = None
