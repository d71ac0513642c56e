"""Vector store infrastructure (pgvector)."""

from .client import PgVectorStoreClient, clamp_similarity

__all__ = ["PgVectorStoreClient", "clamp_similarity"]
