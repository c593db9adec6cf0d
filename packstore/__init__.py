"""Packstore - pricing, cart and order materialization service for a packaging supplies storefront."""

__version__ = "0.1.0"
