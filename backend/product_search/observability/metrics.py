"""Prometheus metrics for product search.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram, Gauge

# Search request metrics
search_requests_total = Counter(
    "product_search_requests_total",
    "Total number of search requests by provenance",
    ["search_type"]  # semantic|semantic_fallback|semantic_error_fallback|fallback
)

search_duration_seconds = Histogram(
    "product_search_duration_seconds",
    "End-to-end search latency in seconds",
    ["search_type"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

search_top_similarity = Histogram(
    "product_search_top_similarity",
    "Similarity of the best semantic match",
    buckets=[0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
)

search_fallbacks_total = Counter(
    "product_search_fallbacks_total",
    "Keyword fallbacks by the stage that triggered them",
    ["stage"]
)

# Embedding model metrics
embedding_model_load_seconds = Histogram(
    "embedding_model_load_seconds",
    "Time spent loading the embedding model",
    ["source"],  # source: cache|download
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

embedding_model_loaded = Gauge(
    "embedding_model_loaded",
    "1 when the embedding model is loaded in this process"
)

# Sync job metrics
embedding_sync_products_total = Counter(
    "embedding_sync_products_total",
    "Products handled by the embedding sync job",
    ["status"]  # status: embedded|failed
)

# Vector store availability
vector_store_available = Gauge(
    "vector_store_available",
    "1 when the last availability probe succeeded"
)
