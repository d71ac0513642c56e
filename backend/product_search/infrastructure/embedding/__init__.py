"""Embedding infrastructure - local sentence-transformers model cache."""

from .model_cache import (
    EmbeddingModelCache,
    load_sentence_transformer,
    model_dir_for,
    REQUIRED_MODEL_FILES,
)

__all__ = [
    "EmbeddingModelCache",
    "load_sentence_transformer",
    "model_dir_for",
    "REQUIRED_MODEL_FILES",
]
