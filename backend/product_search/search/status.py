"""Search subsystem status report.

Shared by GET /api/search/status and the ``check_search_status`` script.
"""

from typing import Any, Dict

from ..domain.search import CatalogStorePort, StoreError, VectorStorePort
from ..infrastructure.embedding import EmbeddingModelCache
from ..observability.logging_config import get_logger

logger = get_logger(__name__)


async def collect_search_status(
    model_cache: EmbeddingModelCache,
    vector_store: VectorStorePort,
    catalog_store: CatalogStorePort,
) -> Dict[str, Any]:
    """Gather model, vector store and embedding coverage status.

    Never raises; store failures are reported in the result.
    """
    availability = await vector_store.is_available()
    status: Dict[str, Any] = {
        "ai_enabled": availability.available,
        "model": model_cache.get_cache_status(),
        "vector_store": {
            "available": availability.available,
            "reason": availability.reason,
            "error": availability.error,
        },
        "embeddings": {
            "total_embeddings": None,
            "last_updated_at": None,
            "active_products": None,
            "missing": None,
            "coverage_percent": None,
        },
    }

    embeddings = status["embeddings"]
    if availability.available:
        try:
            stats = await vector_store.get_embedding_stats()
            embeddings["total_embeddings"] = stats.total_embeddings
            embeddings["last_updated_at"] = stats.last_updated_at.isoformat() if stats.last_updated_at else None
            embedded_ids = await vector_store.list_embedded_ids()
        except StoreError as e:
            logger.warning(f"Could not read embedding stats: {e}")
            embeddings["error"] = str(e)
            return status
    else:
        embedded_ids = None

    try:
        active_ids = await catalog_store.list_all_active_ids()
    except StoreError as e:
        logger.warning(f"Could not read active product ids: {e}")
        embeddings["error"] = str(e)
        return status

    embeddings["active_products"] = len(active_ids)
    if embedded_ids is not None:
        missing = active_ids - embedded_ids
        embeddings["missing"] = len(missing)
        if active_ids:
            embeddings["coverage_percent"] = round(100.0 * (len(active_ids) - len(missing)) / len(active_ids), 1)
        else:
            embeddings["coverage_percent"] = 100.0
    return status
