"""Infrastructure - Adapters for the embedding model, the vector store and the catalog.

This package contains concrete implementations of domain ports.
"""
