"""Catalog infrastructure (read-only products table)."""

from .client import SqlCatalogStoreClient, escape_like, to_product_record

__all__ = ["SqlCatalogStoreClient", "escape_like", "to_product_record"]
