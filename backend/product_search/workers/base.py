"""Celery application for background embedding work.

Start a worker and the beat scheduler with:

    celery -A product_search.workers.base:celery_app worker --loglevel=INFO
    celery -A product_search.workers.base:celery_app beat --loglevel=INFO

Beat triggers ``embeddings.sync`` every ``SYNC_SCHEDULE_MINUTES`` minutes.
"""

from datetime import timedelta

from celery import Celery
from celery.signals import setup_logging

from ..config import get_settings
from ..observability.logging_config import configure_logging_from_settings

settings = get_settings()

celery_app = Celery(
    "product_search",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["product_search.workers.embedding_sync_worker"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=timedelta(days=1),
)

celery_app.conf.beat_schedule = {
    "sync-product-embeddings": {
        "task": "embeddings.sync",
        "schedule": timedelta(minutes=settings.SYNC_SCHEDULE_MINUTES),
        "options": {
            # Skip a tick that was not picked up before the next one is due
            "expires": settings.SYNC_SCHEDULE_MINUTES * 60,
        },
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging_from_settings(get_settings(), service="product-search-worker")
