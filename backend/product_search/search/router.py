"""Semantic search API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    get_catalog_store,
    get_model_cache,
    get_search_orchestrator,
    get_vector_store,
)
from .orchestrator import SearchOrchestrator
from .schemas import (
    MAX_SEARCH_LIMIT,
    SearchStatusResponse,
    SemanticSearchRequest,
    SemanticSearchResponse,
)
from .status import collect_search_status

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post("/semantic", response_model=SemanticSearchResponse)
async def semantic_search(
    body: SemanticSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    """
    Search products by meaning, falling back to keyword search.

    Always answers 200 for a non-empty query; ``search_type`` tells the
    caller which path produced the results.

    Raises:
        InvalidQueryError: Empty or whitespace-only query (mapped to 400)
    """
    outcome = await orchestrator.search(body.query, limit=body.limit, threshold=body.threshold)
    return SemanticSearchResponse.from_outcome(outcome)


@router.get("/semantic", response_model=SemanticSearchResponse)
async def semantic_search_get(
    q: Optional[str] = Query(None, description="Free-text search query"),
    limit: Optional[int] = Query(None, ge=1, le=MAX_SEARCH_LIMIT, description="Maximum number of results"),
    threshold: Optional[float] = Query(None, ge=0.0, le=1.0, description="Minimum cosine similarity"),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    """Query-string variant of POST /api/search/semantic."""
    outcome = await orchestrator.search(q or "", limit=limit, threshold=threshold)
    return SemanticSearchResponse.from_outcome(outcome)


@router.get("/status", response_model=SearchStatusResponse)
async def search_status(
    model_cache=Depends(get_model_cache),
    vector_store=Depends(get_vector_store),
    catalog_store=Depends(get_catalog_store),
):
    """Model cache state, vector store availability and embedding coverage."""
    status = await collect_search_status(model_cache, vector_store, catalog_store)
    return SearchStatusResponse(
        ai_enabled=status["ai_enabled"],
        model=status["model"],
        vector_store=status["vector_store"],
        embeddings=status["embeddings"],
    )
