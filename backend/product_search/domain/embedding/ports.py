"""Embedding Provider Port - Abstract interface for text embedding.

Hexagonal Architecture: This is a domain port that infrastructure adapters implement.
The search orchestrator and the sync job depend on this port, not on the
concrete sentence-transformers cache, so tests can substitute a fake model.
"""

from abc import ABC, abstractmethod
from typing import List


class EmbeddingProviderPort(ABC):
    """Abstract interface for embedding providers.

    Implementations must:
    - Return fixed-dimension, L2-normalized vectors (cosine == dot product)
    - Share a single model instance across concurrent callers
    - Raise ModelUnavailableError when the model cannot be loaded, never
      return a placeholder vector

    Example Usage:
        provider = EmbeddingModelCache(model_name="sentence-transformers/all-MiniLM-L6-v2")
        vector = await provider.embed("Hydraulic Pipe Connector")
        # vector is list[float] of length 384
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector returned by ``embed``."""

    @abstractmethod
    async def preload(self) -> None:
        """Load the model if it is not loaded yet. Idempotent.

        Raises:
            ModelUnavailableError: Model artifacts could not be fetched or loaded
        """

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Generate embedding vector for text.

        Args:
            text: Arbitrary UTF-8 text; truncated to the provider's max length

        Returns:
            Normalized embedding vector

        Raises:
            ValueError: Text is empty after trimming
            ModelUnavailableError: Model could not be loaded
            EmbeddingInferenceError: Model failed to encode the text
        """


class EmbeddingError(Exception):
    """Base exception for embedding operations"""
    pass


class ModelUnavailableError(EmbeddingError):
    """Model artifacts could not be fetched or loaded"""
    pass


class EmbeddingInferenceError(EmbeddingError):
    """Loaded model failed to produce a valid embedding"""
    pass
