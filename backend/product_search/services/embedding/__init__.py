"""Embedding Services - Product embedding texts and the embedding sync job.

This module provides services for:
- Canonical text generation from product data
- Query text normalization
- Text truncation before embedding
- Reconciling missing embeddings (EmbeddingSyncJob)
"""

from .text_generator import (
    ProductEmbeddingTexts,
    generate_combined_text,
    generate_product_embedding_texts,
    generate_query_embedding_text,
    truncate_text_for_embedding,
)
from .sync_job import (
    EmbeddingSyncJob,
    EmbeddingSyncError,
    EmbeddingSyncAlreadyRunningError,
    SyncItemError,
    SyncReport,
)

__all__ = [
    "ProductEmbeddingTexts",
    "generate_combined_text",
    "generate_product_embedding_texts",
    "generate_query_embedding_text",
    "truncate_text_for_embedding",
    "EmbeddingSyncJob",
    "EmbeddingSyncError",
    "EmbeddingSyncAlreadyRunningError",
    "SyncItemError",
    "SyncReport",
]
