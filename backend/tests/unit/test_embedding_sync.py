"""Unit tests for EmbeddingSyncJob"""

import asyncio
from typing import List

import pytest

from product_search.domain.embedding import EmbeddingProviderPort
from product_search.domain.search import EmbeddingField
from product_search.services.embedding import (
    EmbeddingSyncAlreadyRunningError,
    EmbeddingSyncError,
    EmbeddingSyncJob,
    SyncReport,
)
from product_search.services.embedding import sync_job as sync_job_module

from conftest import (
    CountingLoader,
    FakeCatalogStore,
    FakeVectorStore,
    hashed_bag_of_words,
    make_product,
)

ACTIVE_PRODUCTS = [
    make_product(1, "Wireless Headphones", "Bluetooth, over-ear"),
    make_product(2, "Running Shoes", "Road trainers"),
    make_product(3, "Coffee Grinder", "Burr grinder"),
    make_product(4, "Garden Hose", ""),
    make_product(5, "Desk Lamp", None),
]


@pytest.fixture
def catalog_store() -> FakeCatalogStore:
    return FakeCatalogStore(list(ACTIVE_PRODUCTS))


async def pre_embed(vector_store: FakeVectorStore, product_ids):
    for product_id in product_ids:
        vector = hashed_bag_of_words(f"old {product_id}")
        await vector_store.upsert_embedding(product_id, vector, vector, vector)


class CancellingEmbedder(EmbeddingProviderPort):
    """Sets the cancel event after a number of products."""

    def __init__(self, cancel_event, after_products: int):
        self.cancel_event = cancel_event
        self.after_calls = after_products * 3
        self.calls = 0

    @property
    def dimension(self) -> int:
        return 384

    async def preload(self) -> None:
        return None

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        if self.calls >= self.after_calls:
            self.cancel_event.set()
        return hashed_bag_of_words(text)


class TestSyncRun:
    """Diff, embed and upsert"""

    @pytest.mark.asyncio
    async def test_processes_only_missing_products(self, sync_job, vector_store):
        await pre_embed(vector_store, [1, 2])
        vector_store.upsert_calls = 0

        report = await sync_job.run()

        assert report.total_active == 5
        assert report.already_embedded == 2
        assert report.missing == 3
        assert report.processed == 3
        assert report.failed == 0
        assert vector_store.upsert_calls == 3
        assert sorted(vector_store.rows) == [1, 2, 3, 4, 5]
        assert report.exit_code == 0

    @pytest.mark.asyncio
    async def test_rerun_is_noop(self, sync_job, vector_store):
        first = await sync_job.run()
        second = await sync_job.run()

        assert first.processed == 5
        assert second.missing == 0
        assert second.processed == 0
        assert len(vector_store.rows) == 5

    @pytest.mark.asyncio
    async def test_force_reembeds_without_duplicates(self, sync_job, vector_store):
        await pre_embed(vector_store, [1, 2])

        report = await sync_job.run(force=True)

        assert report.missing == 5
        assert report.processed == 5
        assert len(vector_store.rows) == 5
        expected = hashed_bag_of_words("Wireless Headphones Bluetooth, over-ear")
        assert vector_store.rows[1][EmbeddingField.COMBINED] == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_inactive_products_not_embedded(self, sync_job, vector_store, catalog_store):
        catalog_store.add(make_product(6, "Old Lamp", "retired", active=False))

        report = await sync_job.run()

        assert report.total_active == 5
        assert 6 not in vector_store.rows

    @pytest.mark.asyncio
    async def test_vectors_for_empty_fields_use_combined_text(self, sync_job, vector_store):
        await sync_job.run()

        combined = hashed_bag_of_words("Garden Hose")
        assert vector_store.rows[4][EmbeddingField.DESCRIPTION] == pytest.approx(combined)
        assert vector_store.rows[5][EmbeddingField.DESCRIPTION] == pytest.approx(hashed_bag_of_words("Desk Lamp"))

    @pytest.mark.asyncio
    async def test_restricted_to_product_ids(self, sync_job, vector_store):
        report = await sync_job.run(product_ids=[2, 3, 99])

        assert report.total_active == 2
        assert report.processed == 2
        assert sorted(vector_store.rows) == [2, 3]

    @pytest.mark.asyncio
    async def test_loads_model_once(self, sync_job, model_loader):
        await sync_job.run()
        await sync_job.run()
        assert len(model_loader.calls) == 1


class TestPerItemFailures:
    """A failing product is recorded and the batch continues"""

    @pytest.mark.asyncio
    async def test_product_without_text_recorded(self, sync_job, vector_store, catalog_store):
        catalog_store.add(make_product(6, "", None))

        report = await sync_job.run()

        assert report.processed == 5
        assert report.failed == 1
        assert report.errors[0].product_id == 6
        assert "neither name nor description" in report.errors[0].error
        assert report.exit_code == 1
        assert report.status == "completed_with_errors"

    @pytest.mark.asyncio
    async def test_upsert_failure_recorded(self, sync_job, vector_store):
        vector_store.upsert_error_for = {2}

        report = await sync_job.run()

        assert report.processed == 4
        assert [e.product_id for e in report.errors] == [2]
        assert 2 not in vector_store.rows

    @pytest.mark.asyncio
    async def test_failed_product_retried_next_run(self, sync_job, vector_store):
        vector_store.upsert_error_for = {2}
        await sync_job.run()
        vector_store.upsert_error_for = set()

        report = await sync_job.run()

        assert report.missing == 1
        assert report.processed == 1
        assert report.exit_code == 0

    @pytest.mark.asyncio
    async def test_catalog_batch_failure_recorded(self, sync_job, catalog_store):
        catalog_store.fail_lookups = True

        report = await sync_job.run()

        assert report.failed == 5
        assert report.processed == 0


class TestPreflight:
    """Run-level failures raise EmbeddingSyncError"""

    @pytest.mark.asyncio
    async def test_vector_store_unavailable(self, sync_job, vector_store, model_loader):
        vector_store.set_unavailable(reason="probe_timeout")

        with pytest.raises(EmbeddingSyncError, match="probe_timeout"):
            await sync_job.run()
        assert model_loader.calls == []

    @pytest.mark.asyncio
    async def test_model_unavailable(self, tmp_path, vector_store, catalog_store):
        from product_search.infrastructure.embedding import EmbeddingModelCache

        cache = EmbeddingModelCache("m", str(tmp_path), loader=CountingLoader(fail_times=1))
        job = EmbeddingSyncJob(cache, vector_store, catalog_store, item_delay=0)

        with pytest.raises(EmbeddingSyncError):
            await job.run()
        assert vector_store.upsert_calls == 0

    @pytest.mark.asyncio
    async def test_catalog_unreachable(self, sync_job, catalog_store):
        catalog_store.fail_all = True
        with pytest.raises(EmbeddingSyncError):
            await sync_job.run()

    def test_invalid_batch_size(self, model_cache, vector_store, catalog_store):
        with pytest.raises(ValueError):
            EmbeddingSyncJob(model_cache, vector_store, catalog_store, batch_size=0)


class TestConcurrencyAndCancellation:

    @pytest.mark.asyncio
    async def test_overlapping_run_refused(self, sync_job):
        sync_job_module._RUN_GUARD.acquire()
        try:
            with pytest.raises(EmbeddingSyncAlreadyRunningError):
                await sync_job.run()
        finally:
            sync_job_module._RUN_GUARD.release()

    @pytest.mark.asyncio
    async def test_concurrent_runs_one_refused(self, sync_job):
        results = await asyncio.gather(sync_job.run(), sync_job.run(), return_exceptions=True)

        reports = [r for r in results if isinstance(r, SyncReport)]
        refused = [r for r in results if isinstance(r, EmbeddingSyncAlreadyRunningError)]
        assert len(reports) == 1
        assert len(refused) == 1

    @pytest.mark.asyncio
    async def test_guard_released_after_failure(self, sync_job, vector_store):
        vector_store.set_unavailable()
        with pytest.raises(EmbeddingSyncError):
            await sync_job.run()

        vector_store.availability.available = True
        report = await sync_job.run()
        assert report.processed == 5

    @pytest.mark.asyncio
    async def test_cancel_event_stops_run(self, vector_store, catalog_store):
        cancel_event = asyncio.Event()
        embedder = CancellingEmbedder(cancel_event, after_products=2)
        job = EmbeddingSyncJob(embedder, vector_store, catalog_store, batch_size=10, item_delay=0)

        report = await job.run(cancel_event=cancel_event)

        assert report.cancelled is True
        assert report.status == "cancelled"
        assert report.processed == 2
        assert len(vector_store.rows) == 2

    @pytest.mark.asyncio
    async def test_already_set_cancel_event_processes_nothing(self, sync_job, vector_store):
        cancel_event = asyncio.Event()
        cancel_event.set()

        report = await sync_job.run(cancel_event=cancel_event)

        assert report.cancelled is True
        assert report.processed == 0


class TestSyncReport:

    def test_exit_code(self):
        assert SyncReport(processed=3).exit_code == 0
        report = SyncReport(processed=2)
        report.record_failure(5, "boom")
        assert report.exit_code == 1

    def test_to_dict(self):
        report = SyncReport(total_active=5, missing=1)
        report.record_failure(7, "boom")
        data = report.to_dict()
        assert data["errors"] == [{"product_id": 7, "error": "boom"}]
        assert data["exit_code"] == 1
        assert data["status"] == "completed_with_errors"
