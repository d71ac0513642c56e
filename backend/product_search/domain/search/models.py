"""Search domain models and enums"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class SearchType(str, Enum):
    """Provenance of a search response.

    SEMANTIC: ranked by vector similarity
    SEMANTIC_FALLBACK: semantic search ran but found nothing above threshold
    SEMANTIC_ERROR_FALLBACK: semantic search failed mid-request
    FALLBACK: semantic search disabled (vector store unavailable)
    """
    SEMANTIC = "semantic"
    SEMANTIC_FALLBACK = "semantic_fallback"
    SEMANTIC_ERROR_FALLBACK = "semantic_error_fallback"
    FALLBACK = "fallback"


class EmbeddingField(str, Enum):
    """Which stored vector a similarity query compares against."""
    TITLE = "title"
    DESCRIPTION = "description"
    COMBINED = "combined"


@dataclass
class ProductRecord:
    """Read-only view of a catalog product."""
    id: int
    name: str
    description: Optional[str]
    price: Optional[Decimal]
    active: bool = True
    category_id: Optional[int] = None
    featured: bool = False
    new_arrival: bool = False
    created_at: Optional[datetime] = None


@dataclass
class SearchResult:
    """Single product in a search response.

    similarity is only set for results produced by the vector path.
    """
    product: ProductRecord
    search_type: SearchType
    similarity: Optional[float] = None

    @property
    def product_id(self) -> int:
        return self.product.id


@dataclass
class SearchMetadata:
    threshold: float
    avg_similarity: float
    top_similarity: float
    candidate_count: int


@dataclass
class SearchWarning:
    message: str
    reason: Optional[str]
    fallback_used: bool = True


@dataclass
class SearchOutcome:
    """Complete, always-successful result of one search request."""
    query: str
    search_type: SearchType
    ai_enabled: bool
    message: str
    products: List[SearchResult] = field(default_factory=list)
    metadata: Optional[SearchMetadata] = None
    warning: Optional[SearchWarning] = None
    error: Optional[str] = None
