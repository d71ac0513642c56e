"""Pydantic schemas for the search API.

Response keys follow the established wire format, which mixes snake_case
(``search_type``) and camelCase (``aiEnabled``, ``searchMetadata``).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..domain.search import SearchOutcome, SearchResult

MAX_SEARCH_LIMIT = 100


class SemanticSearchRequest(BaseModel):
    """Body of POST /api/search/semantic.

    ``query`` is checked for emptiness by the orchestrator so an empty or
    whitespace-only query yields 400 rather than 422. Long queries are accepted;
    the embedding text is truncated by the model cache.
    """
    query: str = Field(...)
    limit: Optional[int] = Field(None, ge=1, le=MAX_SEARCH_LIMIT)
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0)


class SearchResultItem(BaseModel):
    product_id: int
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    category_id: Optional[int] = None
    featured: bool = False
    new_arrival: bool = False
    created_at: Optional[datetime] = None
    similarity: Optional[float] = None
    search_type: str

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultItem":
        product = result.product
        return cls(
            product_id=product.id,
            name=product.name,
            description=product.description,
            price=float(product.price) if product.price is not None else None,
            category_id=product.category_id,
            featured=product.featured,
            new_arrival=product.new_arrival,
            created_at=product.created_at,
            similarity=result.similarity,
            search_type=result.search_type.value,
        )


class SearchMetadataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    threshold: float
    avg_similarity: float = Field(..., alias="avgSimilarity")
    top_similarity: float = Field(..., alias="topSimilarity")
    candidate_count: int = Field(..., alias="candidateCount")


class SearchWarningResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    reason: Optional[str] = None
    fallback_used: bool = Field(True, alias="fallbackUsed")


class SemanticSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    products: List[SearchResultItem]
    search_type: str
    query: str
    ai_enabled: bool = Field(..., alias="aiEnabled")
    message: str
    search_metadata: Optional[SearchMetadataResponse] = Field(None, alias="searchMetadata")
    warning: Optional[SearchWarningResponse] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SemanticSearchResponse":
        metadata = None
        if outcome.metadata is not None:
            metadata = SearchMetadataResponse(
                threshold=outcome.metadata.threshold,
                avg_similarity=outcome.metadata.avg_similarity,
                top_similarity=outcome.metadata.top_similarity,
                candidate_count=outcome.metadata.candidate_count,
            )
        warning = None
        if outcome.warning is not None:
            warning = SearchWarningResponse(
                message=outcome.warning.message,
                reason=outcome.warning.reason,
                fallback_used=outcome.warning.fallback_used,
            )
        return cls(
            products=[SearchResultItem.from_result(r) for r in outcome.products],
            search_type=outcome.search_type.value,
            query=outcome.query,
            ai_enabled=outcome.ai_enabled,
            message=outcome.message,
            search_metadata=metadata,
            warning=warning,
            error=outcome.error,
        )


class SearchStatusResponse(BaseModel):
    """Body of GET /api/search/status."""
    model_config = ConfigDict(populate_by_name=True)

    ai_enabled: bool = Field(..., alias="aiEnabled")
    model: Dict[str, Any]
    vector_store: Dict[str, Any] = Field(..., alias="vectorStore")
    embeddings: Dict[str, Any]
