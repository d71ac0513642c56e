"""Observability module.

Provides structured logging, request correlation, metrics and health checks.
"""

from .logging_config import configure_logging, configure_logging_from_settings, get_logger
from .metrics import (
    search_requests_total,
    search_duration_seconds,
    search_top_similarity,
    search_fallbacks_total,
    embedding_model_load_seconds,
    embedding_model_loaded,
    embedding_sync_products_total,
    vector_store_available,
)
from .request_id import (
    request_id_var,
    get_request_id,
    generate_request_id,
    bound_request_id,
)
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    # Metrics
    "search_requests_total",
    "search_duration_seconds",
    "search_top_similarity",
    "search_fallbacks_total",
    "embedding_model_load_seconds",
    "embedding_model_loaded",
    "embedding_sync_products_total",
    "vector_store_available",
    # Request ID
    "request_id_var",
    "get_request_id",
    "generate_request_id",
    "bound_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
