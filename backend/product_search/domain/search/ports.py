"""Search ports and interfaces for hexagonal architecture.

The orchestrator and the sync job depend on these ports. Production adapters
live in ``infrastructure``; tests use in-memory implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import EmbeddingField, ProductRecord


@dataclass
class AvailabilityStatus:
    """Result of a vector store reachability probe.

    Attributes:
        available: True only if the store answered and pgvector is installed
        reason: Machine-readable reason when unavailable
            (vector_store_unreachable, pgvector_not_installed, probe_timeout)
        error: Underlying error message, for diagnostics
    """
    available: bool
    reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class EmbeddingStats:
    """Summary of the vector store contents."""
    total_embeddings: int
    last_updated_at: Optional[datetime]


class VectorStorePort(ABC):
    """Port for the pgvector-backed embedding store."""

    @abstractmethod
    async def is_available(self) -> AvailabilityStatus:
        """Fast probe; never raises."""

    @abstractmethod
    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        field: EmbeddingField = EmbeddingField.COMBINED,
    ) -> List[Tuple[int, float]]:
        """Return (product_id, similarity) with similarity > threshold.

        Ordered by similarity descending, at most ``limit`` rows.

        Raises:
            VectorStoreError: Query failed or timed out
        """

    @abstractmethod
    async def upsert_embedding(
        self,
        product_id: int,
        title_vector: Sequence[float],
        description_vector: Sequence[float],
        combined_vector: Sequence[float],
    ) -> None:
        """Insert or overwrite the embedding row for ``product_id``.

        Raises:
            VectorStoreError: Write failed or timed out
        """

    @abstractmethod
    async def list_embedded_ids(self) -> Set[int]:
        """Product ids that currently have an embedding row."""

    @abstractmethod
    async def get_embedding_stats(self) -> EmbeddingStats:
        """Counts for status reporting."""


class CatalogStorePort(ABC):
    """Port for read-only access to the product catalog."""

    @abstractmethod
    async def get_active_products(self, ids: Sequence[int]) -> List[ProductRecord]:
        """Active subset of ``ids`` in the same order as ``ids``.

        Raises:
            CatalogStoreError: Query failed or timed out
        """

    @abstractmethod
    async def list_all_active_ids(self) -> Set[int]:
        """Ids of every active product."""

    @abstractmethod
    async def get_all_active(self) -> List[ProductRecord]:
        """Every active product, most recent first."""

    async def keyword_search(self, term: str, limit: int) -> List[ProductRecord]:
        """Case-insensitive substring match on name/description, most recent first.

        Default implementation filters ``get_all_active``. Adapters that can
        push the match down to the database should override it.
        """
        products = await self.get_all_active()
        return filter_by_keyword(products, term)[:limit]


def filter_by_keyword(products: Iterable[ProductRecord], term: str) -> List[ProductRecord]:
    """Keep products whose name or description contains ``term`` (case-insensitive)."""
    needle = term.strip().casefold()
    if not needle:
        return []
    return [
        p for p in products
        if needle in (p.name or "").casefold() or needle in (p.description or "").casefold()
    ]


def order_by_ids(products: Iterable[ProductRecord], ids: Sequence[int]) -> List[ProductRecord]:
    """Reorder ``products`` to follow ``ids``, dropping ids without a product."""
    by_id: Dict[int, ProductRecord] = {p.id: p for p in products}
    return [by_id[i] for i in ids if i in by_id]
