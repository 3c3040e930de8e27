"""Catalog -- books, events, team roster and the public feeds built on them."""

from kitabghar.catalog.service import CatalogService

__all__ = ["CatalogService"]
