"""Embedding sync worker - Celery tasks around EmbeddingSyncJob.

Tasks:
- embeddings.sync: embed active products that lack an embedding (scheduled)
- embeddings.embed_product: (re-)embed a single product
- embeddings.rebuild: re-embed every active product, e.g. after a model change

Each task runs the async job in its own event loop. Engines are created per
task and disposed afterwards; the embedding model is loaded once per worker
process and reused by later tasks.
"""

import asyncio
from typing import Any, Dict, Iterable, Optional

from celery import Task

from ..config import get_settings
from ..dependencies import build_model_cache, build_search_services
from ..infrastructure.embedding import EmbeddingModelCache
from ..observability.logging_config import get_logger
from ..observability.request_id import bound_request_id
from ..services.embedding import (
    EmbeddingSyncAlreadyRunningError,
    EmbeddingSyncError,
    EmbeddingSyncJob,
)
from .base import celery_app

logger = get_logger(__name__)

_model_cache: Optional[EmbeddingModelCache] = None


def get_worker_model_cache() -> EmbeddingModelCache:
    """Process-wide model cache for this worker."""
    global _model_cache
    if _model_cache is None:
        _model_cache = build_model_cache(get_settings())
    return _model_cache


async def run_embedding_sync(
    force: bool = False,
    product_ids: Optional[Iterable[int]] = None,
) -> Dict[str, Any]:
    """Wire services, run one sync and dispose the engines.

    Raises:
        EmbeddingSyncError: Pre-flight failed (including an overlapping run)
    """
    settings = get_settings()
    services = build_search_services(settings, model_cache=get_worker_model_cache())
    try:
        job = EmbeddingSyncJob(
            embedding_provider=services.model_cache,
            vector_store=services.vector_store,
            catalog_store=services.catalog_store,
            batch_size=settings.SYNC_BATCH_SIZE,
            item_delay=settings.SYNC_ITEM_DELAY_SECONDS,
        )
        report = await job.run(force=force, product_ids=product_ids)
        return report.to_dict()
    finally:
        await services.close()


def _execute(task_name: str, force: bool = False, product_ids: Optional[Iterable[int]] = None) -> Dict[str, Any]:
    with bound_request_id(prefix="sync") as run_id:
        logger.info(f"{task_name} started")
        try:
            result = asyncio.run(run_embedding_sync(force=force, product_ids=product_ids))
        except EmbeddingSyncAlreadyRunningError as e:
            logger.warning(f"{task_name} skipped: {e}")
            return {"status": "skipped", "reason": "already_running", "run_id": run_id}
        result["run_id"] = run_id
        logger.info(f"{task_name} finished with status {result['status']}")
        return result


class EmbeddingSyncTask(Task):
    """Retry configuration for pre-flight failures.

    Per-product failures are reported in the result and never retried;
    only a run that could not start is retried.
    """
    autoretry_for = (EmbeddingSyncError,)
    dont_autoretry_for = (EmbeddingSyncAlreadyRunningError,)
    retry_kwargs = {'max_retries': 3, 'countdown': 30}
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True


@celery_app.task(name="embeddings.sync", base=EmbeddingSyncTask, bind=True)
def sync_product_embeddings(self: Task) -> Dict[str, Any]:
    """Embed every active product that has no embedding yet.

    Returns:
        SyncReport as a dict plus ``run_id``; ``status`` is ``completed``,
        ``completed_with_errors``, ``cancelled`` or ``skipped``
    """
    return _execute("embeddings.sync")


@celery_app.task(name="embeddings.embed_product", base=EmbeddingSyncTask, bind=True)
def embed_product(self: Task, product_id: int) -> Dict[str, Any]:
    """(Re-)embed one product, e.g. after it was created or edited.

    Example:
        >>> embed_product.delay(product_id=7)
    """
    return _execute("embeddings.embed_product", force=True, product_ids=[int(product_id)])


@celery_app.task(name="embeddings.rebuild", base=EmbeddingSyncTask, bind=True)
def rebuild_product_embeddings(self: Task) -> Dict[str, Any]:
    """Re-embed every active product. Upserts keep one row per product."""
    return _execute("embeddings.rebuild", force=True)
