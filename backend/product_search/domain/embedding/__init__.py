"""Embedding domain layer - provider port and errors"""

from .ports import (
    EmbeddingProviderPort,
    EmbeddingError,
    ModelUnavailableError,
    EmbeddingInferenceError,
)

__all__ = [
    "EmbeddingProviderPort",
    "EmbeddingError",
    "ModelUnavailableError",
    "EmbeddingInferenceError",
]
