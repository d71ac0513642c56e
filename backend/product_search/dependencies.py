"""Service wiring and FastAPI dependencies.

This module provides:
- build_search_services: construct engines, store clients, the model cache
  and the orchestrator from ``Settings`` (used by the API, the Celery worker
  and the CLI scripts)
- get_* dependencies that read the wired services from ``app.state``

Tests override the get_* dependencies with in-memory fakes.
"""

from dataclasses import dataclass

from fastapi import Request

from .config import Settings
from .database import StoreEngines, create_session_factory, create_store_engines
from .infrastructure.catalog import SqlCatalogStoreClient
from .infrastructure.embedding import EmbeddingModelCache
from .infrastructure.vector_store import PgVectorStoreClient
from .search.orchestrator import SearchOrchestrator


@dataclass
class SearchServices:
    """Everything one process needs to search and to sync embeddings."""
    engines: StoreEngines
    model_cache: EmbeddingModelCache
    vector_store: PgVectorStoreClient
    catalog_store: SqlCatalogStoreClient
    orchestrator: SearchOrchestrator

    async def close(self) -> None:
        await self.engines.dispose()


def build_model_cache(settings: Settings) -> EmbeddingModelCache:
    return EmbeddingModelCache(
        model_name=settings.EMBEDDING_MODEL_NAME,
        cache_dir=settings.EMBEDDING_CACHE_DIR,
        dimension=settings.EMBEDDING_DIMENSION,
        max_text_length=settings.EMBEDDING_MAX_TEXT_LENGTH,
    )


def build_search_services(settings: Settings, model_cache: EmbeddingModelCache = None) -> SearchServices:
    """Wire all search services from settings.

    No network I/O happens here; engines connect lazily and the model is
    loaded on first use or explicit preload.

    Args:
        settings: Application settings
        model_cache: Reuse an existing cache (e.g. the worker's process-wide one)
    """
    engines = create_store_engines(settings)
    model_cache = model_cache or build_model_cache(settings)

    vector_store = PgVectorStoreClient(
        session_factory=create_session_factory(engines.vector),
        probe_engine=engines.vector_probe,
        query_timeout=settings.VECTOR_QUERY_TIMEOUT,
        availability_timeout=settings.VECTOR_AVAILABILITY_TIMEOUT,
        dimension=settings.EMBEDDING_DIMENSION,
    )
    catalog_store = SqlCatalogStoreClient(
        session_factory=create_session_factory(engines.catalog),
        query_timeout=settings.CATALOG_QUERY_TIMEOUT,
    )
    orchestrator = SearchOrchestrator(
        embedding_provider=model_cache,
        vector_store=vector_store,
        catalog_store=catalog_store,
        default_threshold=settings.SEARCH_DEFAULT_THRESHOLD,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
        max_limit=settings.SEARCH_MAX_LIMIT,
        query_embedding_timeout=settings.QUERY_EMBEDDING_TIMEOUT,
    )

    return SearchServices(
        engines=engines,
        model_cache=model_cache,
        vector_store=vector_store,
        catalog_store=catalog_store,
        orchestrator=orchestrator,
    )


def get_search_orchestrator(request: Request) -> SearchOrchestrator:
    return request.app.state.services.orchestrator


def get_model_cache(request: Request) -> EmbeddingModelCache:
    return request.app.state.services.model_cache


def get_vector_store(request: Request) -> PgVectorStoreClient:
    return request.app.state.services.vector_store


def get_catalog_store(request: Request) -> SqlCatalogStoreClient:
    return request.app.state.services.catalog_store


def get_catalog_engine(request: Request):
    return request.app.state.services.engines.catalog
