"""Search orchestrator - semantic product search with keyword fallback.

Runs one request through the stages declared in
``domain.search.state_machine``. Every stage either advances to the next one
or diverts to KEYWORD_FALLBACK; a non-empty query always produces a
``SearchOutcome`` and never raises.

Example:
    orchestrator = SearchOrchestrator(model_cache, vector_store, catalog_store)
    outcome = await orchestrator.search("pipe connector", limit=10)
    # outcome.search_type == SearchType.SEMANTIC
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..domain.embedding import EmbeddingError, EmbeddingProviderPort
from ..domain.search import (
    CatalogStorePort,
    InvalidQueryError,
    InvalidStageTransition,
    ProductRecord,
    SearchMetadata,
    SearchOutcome,
    SearchResult,
    SearchStage,
    SearchType,
    SearchWarning,
    StoreError,
    VectorStorePort,
    can_transition,
    is_terminal,
)
from ..observability.logging_config import get_logger
from ..observability.metrics import (
    search_duration_seconds,
    search_fallbacks_total,
    search_requests_total,
    search_top_similarity,
)
from ..services.embedding.text_generator import generate_query_embedding_text

logger = get_logger(__name__)

AI_DISABLED_WARNING = "AI search is currently disabled"

# search_type -> ai_enabled
AI_ENABLED_BY_TYPE: Dict[SearchType, bool] = {
    SearchType.SEMANTIC: True,
    SearchType.SEMANTIC_FALLBACK: True,
    SearchType.FALLBACK: False,
    SearchType.SEMANTIC_ERROR_FALLBACK: False,
}

SIMILARITY_DECIMALS = 2


@dataclass
class _SearchRun:
    """Mutable state of one request as it moves through the stages."""
    query: str
    limit: int
    threshold: float
    stage: Optional[SearchStage] = None
    query_vector: Optional[List[float]] = None
    candidates: List[Tuple[int, float]] = field(default_factory=list)
    results: List[SearchResult] = field(default_factory=list)
    metadata: Optional[SearchMetadata] = None
    # Set when diverting to KEYWORD_FALLBACK
    fallback_type: Optional[SearchType] = None
    fallback_stage: Optional[SearchStage] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def advance(self, to_stage: SearchStage) -> None:
        if not can_transition(self.stage, to_stage):
            raise InvalidStageTransition(self.stage, to_stage)
        self.stage = to_stage

    def fall_back(self, search_type: SearchType, reason: Optional[str] = None, error: Optional[str] = None) -> None:
        self.fallback_type = search_type
        self.fallback_stage = self.stage
        self.reason = reason
        self.error = error
        self.advance(SearchStage.KEYWORD_FALLBACK)


class SearchOrchestrator:
    """Request-time state machine for semantic product search.

    Args:
        embedding_provider: Produces the query vector
        vector_store: Similarity search over stored product embeddings
        catalog_store: Authoritative product records and keyword search
        default_threshold: Similarity threshold when the caller gives none
        default_limit: Result limit when the caller gives none
        max_limit: Upper bound applied to any requested limit
        query_embedding_timeout: Deadline for embedding the query, which
            includes the model load on a cold process
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProviderPort,
        vector_store: VectorStorePort,
        catalog_store: CatalogStorePort,
        default_threshold: float = 0.1,
        default_limit: int = 20,
        max_limit: int = 100,
        query_embedding_timeout: float = 60.0,
    ):
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.catalog_store = catalog_store
        self.default_threshold = default_threshold
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.query_embedding_timeout = query_embedding_timeout

        self._handlers: Dict[SearchStage, Callable[[_SearchRun], Awaitable[None]]] = {
            SearchStage.AVAILABILITY_CHECK: self._check_availability,
            SearchStage.QUERY_EMBEDDING: self._embed_query,
            SearchStage.SIMILARITY_SEARCH: self._find_candidates,
            SearchStage.ZERO_RESULT_CHECK: self._check_candidates,
            SearchStage.CATALOG_JOIN: self._join_catalog,
        }

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> SearchOutcome:
        """Search products for ``query``.

        Raises:
            InvalidQueryError: ``query`` is empty or whitespace-only
        """
        cleaned = (query or "").strip()
        if not cleaned:
            raise InvalidQueryError("Search query is required")

        run = _SearchRun(
            query=cleaned,
            limit=self._resolve_limit(limit),
            threshold=self.default_threshold if threshold is None else threshold,
        )

        start = time.perf_counter()
        run.advance(SearchStage.AVAILABILITY_CHECK)
        while not is_terminal(run.stage):
            await self._handlers[run.stage](run)

        if run.stage == SearchStage.SUCCESS:
            outcome = self._semantic_outcome(run)
        else:
            outcome = await self._keyword_fallback(run)

        elapsed = time.perf_counter() - start
        search_requests_total.labels(search_type=outcome.search_type.value).inc()
        search_duration_seconds.labels(search_type=outcome.search_type.value).observe(elapsed)
        logger.info(
            f"Search completed: {len(outcome.products)} products",
            extra={
                "search_type": outcome.search_type.value,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )
        return outcome

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            limit = self.default_limit
        return max(1, min(limit, self.max_limit))

    # Stage handlers

    async def _check_availability(self, run: _SearchRun) -> None:
        try:
            status = await self.vector_store.is_available()
        except Exception as e:
            logger.error(f"Availability check failed: {e}", extra={"stage": run.stage.value}, exc_info=True)
            run.fall_back(SearchType.FALLBACK, reason="vector_store_unreachable")
            return
        if not status.available:
            run.fall_back(SearchType.FALLBACK, reason=status.reason or "vector_store_unreachable")
            return
        run.advance(SearchStage.QUERY_EMBEDDING)

    async def _embed_query(self, run: _SearchRun) -> None:
        text = generate_query_embedding_text(run.query)
        try:
            run.query_vector = await asyncio.wait_for(
                self.embedding_provider.embed(text),
                timeout=self.query_embedding_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Query embedding timed out after {self.query_embedding_timeout}s",
                extra={"stage": run.stage.value},
            )
            run.fall_back(
                SearchType.SEMANTIC_ERROR_FALLBACK,
                reason="embedding_timeout",
                error=f"Query embedding timed out after {self.query_embedding_timeout}s",
            )
            return
        except (EmbeddingError, ValueError) as e:
            logger.error(f"Query embedding failed: {e}", extra={"stage": run.stage.value}, exc_info=True)
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="embedding_failed", error=str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected query embedding error: {e}", extra={"stage": run.stage.value}, exc_info=True)
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="embedding_failed", error=str(e))
            return
        run.advance(SearchStage.SIMILARITY_SEARCH)

    async def _find_candidates(self, run: _SearchRun) -> None:
        try:
            run.candidates = await self.vector_store.similarity_search(
                run.query_vector, run.threshold, run.limit
            )
        except (StoreError, ValueError) as e:
            logger.warning(f"Similarity search failed: {e}", extra={"stage": run.stage.value})
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="similarity_search_failed", error=str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected similarity search error: {e}", extra={"stage": run.stage.value}, exc_info=True)
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="similarity_search_failed", error=str(e))
            return
        run.advance(SearchStage.ZERO_RESULT_CHECK)

    async def _check_candidates(self, run: _SearchRun) -> None:
        if not run.candidates:
            run.fall_back(SearchType.SEMANTIC_FALLBACK, reason="no_semantic_matches")
            return
        run.advance(SearchStage.CATALOG_JOIN)

    async def _join_catalog(self, run: _SearchRun) -> None:
        ids = [product_id for product_id, _ in run.candidates]
        try:
            products = await self.catalog_store.get_active_products(ids)
        except StoreError as e:
            logger.warning(f"Catalog join failed: {e}", extra={"stage": run.stage.value})
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="catalog_join_failed", error=str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected catalog join error: {e}", extra={"stage": run.stage.value}, exc_info=True)
            run.fall_back(SearchType.SEMANTIC_ERROR_FALLBACK, reason="catalog_join_failed", error=str(e))
            return

        similarity_by_id = dict(run.candidates)
        ranked = sorted(products, key=lambda p: (-similarity_by_id[p.id], ids.index(p.id)))
        if not ranked:
            run.fall_back(SearchType.SEMANTIC_FALLBACK, reason="no_active_matches")
            return

        similarities = [similarity_by_id[p.id] for p in ranked]
        run.results = [
            SearchResult(product=p, search_type=SearchType.SEMANTIC, similarity=round(s, SIMILARITY_DECIMALS))
            for p, s in zip(ranked, similarities)
        ]
        run.metadata = SearchMetadata(
            threshold=run.threshold,
            avg_similarity=round(sum(similarities) / len(similarities), SIMILARITY_DECIMALS),
            top_similarity=round(similarities[0], SIMILARITY_DECIMALS),
            candidate_count=len(run.candidates),
        )
        search_top_similarity.observe(similarities[0])
        run.advance(SearchStage.SUCCESS)

    # Terminal stages

    def _semantic_outcome(self, run: _SearchRun) -> SearchOutcome:
        return SearchOutcome(
            query=run.query,
            search_type=SearchType.SEMANTIC,
            ai_enabled=AI_ENABLED_BY_TYPE[SearchType.SEMANTIC],
            message=f"Found {len(run.results)} products using AI-powered semantic search",
            products=run.results,
            metadata=run.metadata,
        )

    async def _keyword_fallback(self, run: _SearchRun) -> SearchOutcome:
        search_type = run.fallback_type
        search_fallbacks_total.labels(stage=run.fallback_stage.value).inc()
        logger.info(
            f"Falling back to keyword search from {run.fallback_stage.value}",
            extra={"stage": run.fallback_stage.value, "reason": run.reason, "search_type": search_type.value},
        )

        products = await self._keyword_products(run.query, run.limit)
        results = [SearchResult(product=p, search_type=search_type) for p in products]

        outcome = SearchOutcome(
            query=run.query,
            search_type=search_type,
            ai_enabled=AI_ENABLED_BY_TYPE[search_type],
            message=self._fallback_message(search_type, len(results)),
            products=results,
        )
        if search_type == SearchType.FALLBACK:
            outcome.warning = SearchWarning(message=AI_DISABLED_WARNING, reason=run.reason)
        elif search_type == SearchType.SEMANTIC_ERROR_FALLBACK:
            outcome.error = run.error
        elif search_type == SearchType.SEMANTIC_FALLBACK:
            outcome.metadata = SearchMetadata(
                threshold=run.threshold,
                avg_similarity=0.0,
                top_similarity=0.0,
                candidate_count=len(run.candidates),
            )
        return outcome

    async def _keyword_products(self, query: str, limit: int) -> Sequence[ProductRecord]:
        try:
            return await self.catalog_store.keyword_search(query, limit)
        except StoreError as e:
            logger.error(f"Keyword fallback failed, returning no products: {e}", exc_info=True)
            return []
        except Exception as e:
            logger.error(f"Unexpected keyword fallback error, returning no products: {e}", exc_info=True)
            return []

    @staticmethod
    def _fallback_message(search_type: SearchType, count: int) -> str:
        if search_type == SearchType.FALLBACK:
            return f"AI search temporarily unavailable, showing {count} keyword matches"
        if search_type == SearchType.SEMANTIC_FALLBACK:
            return f"No semantic matches above the similarity threshold, showing {count} keyword matches"
        return f"AI search failed for this request, showing {count} keyword matches"
