"""pgvector store client - Implementation of VectorStorePort.

Cosine similarity search over ``product_embeddings`` using the pgvector
``<=>`` operator. Stored vectors are L2-normalized, so
``similarity = 1 - cosine_distance``.
"""

import asyncio
from typing import Any, Awaitable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from ...database import scoped_session
from ...domain.search import (
    AvailabilityStatus,
    EmbeddingField,
    EmbeddingStats,
    VectorStoreError,
    VectorStorePort,
)
from ...models import ProductEmbedding
from ...models.product_embedding import EMBEDDING_DIM
from ...observability.logging_config import get_logger
from ...observability.metrics import vector_store_available

logger = get_logger(__name__)

PGVECTOR_PROBE_SQL = text("SELECT 1 FROM pg_extension WHERE extname = 'vector'")

_FIELD_COLUMNS = {
    EmbeddingField.TITLE: ProductEmbedding.title_embedding,
    EmbeddingField.DESCRIPTION: ProductEmbedding.description_embedding,
    EmbeddingField.COMBINED: ProductEmbedding.combined_embedding,
}


def clamp_similarity(value: float) -> float:
    """Clamp a similarity into [0, 1]; rounding can push it slightly outside."""
    return max(0.0, min(1.0, float(value)))


class PgVectorStoreClient(VectorStorePort):
    """Vector store adapter backed by PostgreSQL + pgvector.

    Args:
        session_factory: Async session factory bound to the pooled vector engine
        probe_engine: Non-pooled engine used only by ``is_available``
        query_timeout: Deadline in seconds for searches and writes
        availability_timeout: Deadline in seconds for the reachability probe
        dimension: Expected vector length
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        probe_engine: AsyncEngine,
        query_timeout: float = 10.0,
        availability_timeout: float = 3.0,
        dimension: int = EMBEDDING_DIM,
    ):
        self._session_factory = session_factory
        self._probe_engine = probe_engine
        self.query_timeout = query_timeout
        self.availability_timeout = availability_timeout
        self.dimension = dimension

    async def is_available(self) -> AvailabilityStatus:
        try:
            installed = await asyncio.wait_for(self._probe(), timeout=self.availability_timeout)
        except asyncio.TimeoutError:
            status = AvailabilityStatus(
                available=False,
                reason="probe_timeout",
                error=f"No answer within {self.availability_timeout}s",
            )
        except Exception as e:
            status = AvailabilityStatus(available=False, reason="vector_store_unreachable", error=str(e))
        else:
            if installed:
                status = AvailabilityStatus(available=True)
            else:
                status = AvailabilityStatus(
                    available=False,
                    reason="pgvector_not_installed",
                    error="pgvector extension is not installed",
                )

        vector_store_available.set(1 if status.available else 0)
        if not status.available:
            logger.warning(
                f"Vector store unavailable: {status.error}",
                extra={"reason": status.reason},
            )
        return status

    async def _probe(self) -> bool:
        async with self._probe_engine.connect() as conn:
            result = await conn.execute(PGVECTOR_PROBE_SQL)
            return result.scalar() is not None

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        field: EmbeddingField = EmbeddingField.COMBINED,
    ) -> List[Tuple[int, float]]:
        self._check_dimension(query_vector)
        if limit <= 0:
            return []

        column = _FIELD_COLUMNS[field]
        distance = column.cosine_distance(list(query_vector))
        similarity = (1 - distance).label("similarity")
        query = (
            select(ProductEmbedding.product_id, similarity)
            .where(similarity > threshold)
            .order_by(distance, ProductEmbedding.product_id)
            .limit(limit)
        )

        async def run() -> List[Any]:
            async with scoped_session(self._session_factory) as session:
                return (await session.execute(query)).all()

        rows = await self._with_deadline(run(), "similarity search")

        results = []
        for row in rows:
            value = clamp_similarity(row.similarity)
            if value != float(row.similarity):
                logger.warning(
                    f"Similarity {row.similarity} outside [0, 1] clamped to {value}",
                    extra={"product_id": row.product_id},
                )
            if value > threshold:
                results.append((int(row.product_id), value))
        return results

    async def upsert_embedding(
        self,
        product_id: int,
        title_vector: Sequence[float],
        description_vector: Sequence[float],
        combined_vector: Sequence[float],
    ) -> None:
        for vector in (title_vector, description_vector, combined_vector):
            self._check_dimension(vector)

        stmt = pg_insert(ProductEmbedding).values(
            product_id=product_id,
            title_embedding=list(title_vector),
            description_embedding=list(description_vector),
            combined_embedding=list(combined_vector),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductEmbedding.product_id],
            set_={
                "title_embedding": stmt.excluded.title_embedding,
                "description_embedding": stmt.excluded.description_embedding,
                "combined_embedding": stmt.excluded.combined_embedding,
                "updated_at": func.now(),
            },
        )

        async def run() -> None:
            async with scoped_session(self._session_factory) as session:
                await session.execute(stmt)

        await self._with_deadline(run(), f"upsert of product {product_id}")

    async def list_embedded_ids(self) -> Set[int]:
        async def run() -> Set[int]:
            async with scoped_session(self._session_factory) as session:
                result = await session.execute(select(ProductEmbedding.product_id))
                return {int(pid) for pid in result.scalars().all()}

        return await self._with_deadline(run(), "listing embedded ids")

    async def get_embedding_stats(self) -> EmbeddingStats:
        async def run() -> EmbeddingStats:
            async with scoped_session(self._session_factory) as session:
                row = (await session.execute(
                    select(
                        func.count(ProductEmbedding.id).label("total"),
                        func.max(ProductEmbedding.updated_at).label("last_updated_at"),
                    )
                )).one()
                return EmbeddingStats(total_embeddings=int(row.total or 0), last_updated_at=row.last_updated_at)

        return await self._with_deadline(run(), "embedding stats")

    def _check_dimension(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimension:
            raise ValueError(f"Expected {self.dimension}-dimensional vector, got {len(vector)}")

    async def _with_deadline(self, awaitable: Awaitable[Any], operation: str, timeout: Optional[float] = None) -> Any:
        """Await ``awaitable`` under the query deadline, mapping failures to VectorStoreError."""
        deadline = timeout if timeout is not None else self.query_timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=deadline)
        except asyncio.TimeoutError as e:
            raise VectorStoreError(f"Vector store {operation} timed out after {deadline}s") from e
        except (SQLAlchemyError, OSError) as e:
            raise VectorStoreError(f"Vector store {operation} failed: {e}") from e
