"""Search domain exceptions"""


class SearchError(Exception):
    """Base exception for search operations"""
    pass


class InvalidQueryError(SearchError):
    """Query is empty or whitespace-only; rejected before any downstream call"""
    pass


class StoreError(SearchError):
    """Base exception for data store adapters"""
    pass


class VectorStoreError(StoreError):
    """Vector store query or write failed (including timeouts)"""
    pass


class CatalogStoreError(StoreError):
    """Catalog store query failed (including timeouts)"""
    pass
