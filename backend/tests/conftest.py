"""Shared pytest fixtures.

Provides in-memory implementations of the search ports and a deterministic
stand-in for the sentence-transformers model, so unit tests exercise the real
EmbeddingModelCache, SearchOrchestrator and EmbeddingSyncJob without a
database or a model download.

Usage:
    @pytest.mark.asyncio
    async def test_search(orchestrator, catalog_store):
        outcome = await orchestrator.search("pipe connector")
"""

import hashlib
import math
import os
import re
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

# Settings are read at import time of product_search.main
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("PRELOAD_MODEL_ON_STARTUP", "false")

import pytest

from product_search.domain.search import (
    AvailabilityStatus,
    CatalogStoreError,
    CatalogStorePort,
    EmbeddingField,
    EmbeddingStats,
    ProductRecord,
    VectorStoreError,
    VectorStorePort,
    order_by_ids,
)
from product_search.infrastructure.embedding import EmbeddingModelCache
from product_search.search.orchestrator import SearchOrchestrator
from product_search.services.embedding import EmbeddingSyncJob

DIM = 384
MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"


# =============================================================================
# Fake model
# =============================================================================

def hashed_bag_of_words(text: str, dim: int = DIM) -> List[float]:
    """Deterministic L2-normalized vector: one md5-hashed bucket per word."""
    vector = [0.0] * dim
    for token in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dim
        vector[bucket] += 1.0
    norm = math.sqrt(sum(x * x for x in vector))
    if norm == 0:
        vector[0] = 1.0
        return vector
    return [x / norm for x in vector]


class FakeSentenceModel:
    """Mimics SentenceTransformer.encode for a single string."""

    def __init__(self, dim: int = DIM):
        self.dim = dim
        self.encode_calls = 0

    def encode(self, text, normalize_embeddings=True, convert_to_numpy=True):
        self.encode_calls += 1
        return hashed_bag_of_words(text, self.dim)


class CountingLoader:
    """Loader for EmbeddingModelCache that records calls and can fail or block."""

    def __init__(self, model=None, fail_times: int = 0, gate: Optional[threading.Event] = None):
        self.model = model or FakeSentenceModel()
        self.fail_times = fail_times
        self.gate = gate
        self.calls: List[Tuple[str, Path, bool]] = []
        self._lock = threading.Lock()

    def __call__(self, model_name: str, model_dir: Path, cached: bool):
        with self._lock:
            self.calls.append((model_name, model_dir, cached))
            attempt = len(self.calls)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if attempt <= self.fail_times:
            raise OSError("connection reset while downloading model")
        return self.model


# =============================================================================
# Fake stores
# =============================================================================

class FakeVectorStore(VectorStorePort):
    """In-memory vector store with dot-product similarity."""

    def __init__(self):
        self.rows: Dict[int, Dict[EmbeddingField, List[float]]] = {}
        self.availability = AvailabilityStatus(available=True)
        self.search_error: Optional[Exception] = None
        self.upsert_error_for: Set[int] = set()
        self.availability_calls = 0
        self.search_calls = 0
        self.upsert_calls = 0
        self.last_updated_at: Optional[datetime] = None

    def set_unavailable(self, reason: str = "vector_store_unreachable", error: str = "connection refused"):
        self.availability = AvailabilityStatus(available=False, reason=reason, error=error)

    async def is_available(self) -> AvailabilityStatus:
        self.availability_calls += 1
        return self.availability

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        field: EmbeddingField = EmbeddingField.COMBINED,
    ) -> List[Tuple[int, float]]:
        self.search_calls += 1
        if self.search_error is not None:
            raise self.search_error
        scored = []
        for product_id, vectors in self.rows.items():
            similarity = sum(a * b for a, b in zip(query_vector, vectors[field]))
            similarity = max(0.0, min(1.0, similarity))
            if similarity > threshold:
                scored.append((product_id, similarity))
        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored[:limit]

    async def upsert_embedding(self, product_id, title_vector, description_vector, combined_vector) -> None:
        self.upsert_calls += 1
        if product_id in self.upsert_error_for:
            raise VectorStoreError(f"write failed for {product_id}")
        self.rows[product_id] = {
            EmbeddingField.TITLE: list(title_vector),
            EmbeddingField.DESCRIPTION: list(description_vector),
            EmbeddingField.COMBINED: list(combined_vector),
        }
        self.last_updated_at = datetime.now(timezone.utc)

    async def list_embedded_ids(self) -> Set[int]:
        return set(self.rows)

    async def get_embedding_stats(self) -> EmbeddingStats:
        return EmbeddingStats(total_embeddings=len(self.rows), last_updated_at=self.last_updated_at)


class FakeCatalogStore(CatalogStorePort):
    """In-memory catalog; keyword_search uses the port's default implementation."""

    def __init__(self, products: Optional[List[ProductRecord]] = None):
        self.products: Dict[int, ProductRecord] = {p.id: p for p in (products or [])}
        self.fail_lookups = False
        self.fail_all = False
        self.lookup_calls = 0

    def add(self, product: ProductRecord) -> None:
        self.products[product.id] = product

    def _check(self) -> None:
        if self.fail_all:
            raise CatalogStoreError("catalog unreachable")

    async def get_active_products(self, ids: Sequence[int]) -> List[ProductRecord]:
        self.lookup_calls += 1
        self._check()
        if self.fail_lookups:
            raise CatalogStoreError("catalog lookup timed out")
        active = [p for p in self.products.values() if p.active and p.id in set(ids)]
        return order_by_ids(active, ids)

    async def list_all_active_ids(self) -> Set[int]:
        self._check()
        return {p.id for p in self.products.values() if p.active}

    async def get_all_active(self) -> List[ProductRecord]:
        self._check()
        active = [p for p in self.products.values() if p.active]
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        return sorted(active, key=lambda p: (p.created_at or epoch, p.id), reverse=True)


# =============================================================================
# Sample data
# =============================================================================

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_product(product_id: int, name: str, description: Optional[str] = None, active: bool = True) -> ProductRecord:
    return ProductRecord(
        id=product_id,
        name=name,
        description=description,
        price=Decimal("19.99"),
        active=active,
        category_id=1,
        created_at=_BASE_TIME + timedelta(days=product_id),
    )


SAMPLE_PRODUCTS = [
    make_product(1, "Wireless Headphones", "Over-ear bluetooth headphones with noise cancelling"),
    make_product(2, "Running Shoes", "Lightweight trainers for road running"),
    make_product(3, "Coffee Grinder", "Burr grinder for espresso and filter coffee"),
    make_product(4, "Garden Hose", "Flexible 20m hose with spray nozzle"),
    make_product(7, "Hydraulic Pipe Connector", "Brass fitting for high pressure lines"),
    make_product(9, "Discontinued Pipe Wrench", "Adjustable wrench", active=False),
]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_model() -> FakeSentenceModel:
    return FakeSentenceModel()


@pytest.fixture
def model_loader(fake_model) -> CountingLoader:
    return CountingLoader(model=fake_model)


@pytest.fixture
def model_cache(tmp_path, model_loader) -> EmbeddingModelCache:
    return EmbeddingModelCache(
        model_name=MODEL_NAME,
        cache_dir=str(tmp_path / "models"),
        dimension=DIM,
        loader=model_loader,
    )


@pytest.fixture
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def catalog_store() -> FakeCatalogStore:
    return FakeCatalogStore(list(SAMPLE_PRODUCTS))


@pytest.fixture
def sync_job(model_cache, vector_store, catalog_store) -> EmbeddingSyncJob:
    return EmbeddingSyncJob(
        embedding_provider=model_cache,
        vector_store=vector_store,
        catalog_store=catalog_store,
        batch_size=2,
        item_delay=0,
    )


@pytest.fixture
def orchestrator(model_cache, vector_store, catalog_store) -> SearchOrchestrator:
    return SearchOrchestrator(
        embedding_provider=model_cache,
        vector_store=vector_store,
        catalog_store=catalog_store,
        default_threshold=0.1,
        default_limit=20,
        max_limit=100,
        query_embedding_timeout=5.0,
    )
