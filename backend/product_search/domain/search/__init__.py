"""Search domain layer - models, ports, errors and the request state machine"""

from .models import (
    SearchType,
    EmbeddingField,
    ProductRecord,
    SearchResult,
    SearchMetadata,
    SearchWarning,
    SearchOutcome,
)
from .ports import (
    AvailabilityStatus,
    EmbeddingStats,
    VectorStorePort,
    CatalogStorePort,
    filter_by_keyword,
    order_by_ids,
)
from .errors import (
    SearchError,
    InvalidQueryError,
    StoreError,
    VectorStoreError,
    CatalogStoreError,
)
from .state_machine import (
    SearchStage,
    ALLOWED_TRANSITIONS,
    TERMINAL_STAGES,
    can_transition,
    is_terminal,
    InvalidStageTransition,
)

__all__ = [
    "SearchType",
    "EmbeddingField",
    "ProductRecord",
    "SearchResult",
    "SearchMetadata",
    "SearchWarning",
    "SearchOutcome",
    "AvailabilityStatus",
    "EmbeddingStats",
    "VectorStorePort",
    "CatalogStorePort",
    "filter_by_keyword",
    "order_by_ids",
    "SearchError",
    "InvalidQueryError",
    "StoreError",
    "VectorStoreError",
    "CatalogStoreError",
    "SearchStage",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STAGES",
    "can_transition",
    "is_terminal",
    "InvalidStageTransition",
]
