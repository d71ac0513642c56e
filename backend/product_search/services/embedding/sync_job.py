"""Embedding Sync Job - reconcile the vector store with the catalog.

One run:
1. Pre-flight: vector store reachable, model loaded, both id sets readable
2. Diff: active catalog ids minus ids that already have an embedding row
3. Embed each missing product (title, description, combined) and upsert it
4. Record per-product failures without aborting the batch

Runs are idempotent. Upserts are keyed on ``product_id``, so re-running
(or running with ``force=True``) never creates duplicate rows.

Example:
    job = EmbeddingSyncJob(model_cache, vector_store, catalog_store)
    report = await job.run()
    sys.exit(report.exit_code)
"""

import asyncio
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence

from ...domain.embedding import EmbeddingError, EmbeddingProviderPort
from ...domain.search import CatalogStorePort, ProductRecord, StoreError, VectorStorePort
from ...observability.logging_config import get_logger
from ...observability.metrics import embedding_sync_products_total
from .text_generator import generate_product_embedding_texts

logger = get_logger(__name__)

# One sync run per process at a time, across event loops and threads
_RUN_GUARD = threading.Lock()


class EmbeddingSyncError(Exception):
    """Pre-flight failure: the run could not start (model or store unavailable)"""
    pass


class EmbeddingSyncAlreadyRunningError(EmbeddingSyncError):
    """Another sync run is in progress in this process"""
    pass


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


@dataclass
class SyncItemError:
    product_id: int
    error: str


@dataclass
class SyncReport:
    """Statistics of one sync run.

    Attributes:
        total_active: Active products in the catalog (within the requested scope)
        already_embedded: Active products that already had an embedding row
        missing: Products selected for embedding in this run
        processed: Products embedded and upserted successfully
        failed: Products that could not be embedded
        skipped: Selected products that were no longer active when fetched
        errors: One entry per failed product
        cancelled: Run stopped early on request
        duration_ms: Wall time of the run
    """
    total_active: int = 0
    already_embedded: int = 0
    missing: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[SyncItemError] = field(default_factory=list)
    cancelled: bool = False
    duration_ms: int = 0

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 else 1

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        return "completed" if self.failed == 0 else "completed_with_errors"

    def record_failure(self, product_id: int, error: str) -> None:
        self.failed += 1
        self.errors.append(SyncItemError(product_id=product_id, error=error))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status
        data["exit_code"] = self.exit_code
        return data


def _chunks(items: Sequence[int], size: int) -> Iterator[List[int]]:
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


class EmbeddingSyncJob:
    """Computes and stores embeddings for active products lacking one.

    Args:
        embedding_provider: Model used for product texts (same as for queries)
        vector_store: Destination of the embeddings
        catalog_store: Source of active products
        batch_size: Products fetched from the catalog per round-trip
        item_delay: Pause between products, in seconds
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProviderPort,
        vector_store: VectorStorePort,
        catalog_store: CatalogStorePort,
        batch_size: int = 10,
        item_delay: float = 0.1,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.catalog_store = catalog_store
        self.batch_size = batch_size
        self.item_delay = item_delay

    async def run(
        self,
        force: bool = False,
        product_ids: Optional[Iterable[int]] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> SyncReport:
        """Run one sync.

        Args:
            force: Re-embed every selected active product, even if embedded
            product_ids: Restrict the run to these products
            cancel_event: Checked before each product; once set the run stops

        Returns:
            SyncReport for the run

        Raises:
            EmbeddingSyncAlreadyRunningError: A run is already in progress
            EmbeddingSyncError: Pre-flight failed, nothing was processed
        """
        if not _RUN_GUARD.acquire(blocking=False):
            raise EmbeddingSyncAlreadyRunningError("An embedding sync run is already in progress")
        try:
            return await self._run(force, product_ids, cancel_event)
        finally:
            _RUN_GUARD.release()

    async def _run(
        self,
        force: bool,
        product_ids: Optional[Iterable[int]],
        cancel_event: Optional[CancelSignal],
    ) -> SyncReport:
        start = time.perf_counter()
        report = SyncReport()

        active_ids, embedded_ids = await self._preflight()
        if product_ids is not None:
            requested = set(product_ids)
            not_active = requested - active_ids
            if not_active:
                logger.info(f"Ignoring {len(not_active)} requested products that are not active")
            active_ids &= requested

        report.total_active = len(active_ids)
        report.already_embedded = len(active_ids & embedded_ids)
        targets = sorted(active_ids if force else active_ids - embedded_ids)
        report.missing = len(targets)

        logger.info(
            f"Embedding sync: {report.total_active} active, {report.already_embedded} embedded, "
            f"{report.missing} to process{' (forced)' if force else ''}"
        )

        try:
            for batch_number, batch in enumerate(_chunks(targets, self.batch_size), start=1):
                if self._cancelled(cancel_event):
                    report.cancelled = True
                    break
                logger.info(f"Processing batch {batch_number}: {len(batch)} products")
                await self._process_batch(batch, report, cancel_event)
                if report.cancelled:
                    break
        finally:
            report.duration_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            f"Embedding sync {report.status}: {report.processed} processed, {report.failed} failed",
            extra={"processed": report.processed, "failed": report.failed, "duration_ms": report.duration_ms},
        )
        return report

    async def _preflight(self):
        availability = await self.vector_store.is_available()
        if not availability.available:
            raise EmbeddingSyncError(
                f"Vector store unavailable ({availability.reason}): {availability.error}"
            )

        try:
            await self.embedding_provider.preload()
        except EmbeddingError as e:
            raise EmbeddingSyncError(f"Embedding model unavailable: {e}") from e

        try:
            active_ids = await self.catalog_store.list_all_active_ids()
            embedded_ids = await self.vector_store.list_embedded_ids()
        except StoreError as e:
            raise EmbeddingSyncError(f"Could not read product ids: {e}") from e
        return set(active_ids), set(embedded_ids)

    async def _process_batch(
        self,
        batch: List[int],
        report: SyncReport,
        cancel_event: Optional[CancelSignal],
    ) -> None:
        try:
            products = await self.catalog_store.get_active_products(batch)
        except StoreError as e:
            logger.error(f"Could not fetch batch of {len(batch)} products: {e}")
            for product_id in batch:
                report.record_failure(product_id, f"Catalog fetch failed: {e}")
                embedding_sync_products_total.labels(status="failed").inc()
            return

        report.skipped += len(batch) - len(products)

        for index, product in enumerate(products):
            if self._cancelled(cancel_event):
                report.cancelled = True
                return
            try:
                await self.embed_product(product)
            except Exception as e:
                report.record_failure(product.id, str(e))
                embedding_sync_products_total.labels(status="failed").inc()
                logger.error(
                    f"Failed to embed product {product.id}: {e}",
                    extra={"product_id": product.id},
                )
            else:
                report.processed += 1
                embedding_sync_products_total.labels(status="embedded").inc()

            if self.item_delay > 0 and index < len(products) - 1:
                await asyncio.sleep(self.item_delay)

    async def embed_product(self, product: ProductRecord) -> None:
        """Embed one product's title, description and combined text and upsert them.

        Raises:
            ValueError: Product has neither name nor description
            EmbeddingError: Model failed
            VectorStoreError: Upsert failed
        """
        texts = generate_product_embedding_texts(product.name, product.description)
        title_vector = await self.embedding_provider.embed(texts.title)
        description_vector = await self.embedding_provider.embed(texts.description)
        combined_vector = await self.embedding_provider.embed(texts.combined)
        await self.vector_store.upsert_embedding(
            product.id, title_vector, description_vector, combined_vector
        )
        logger.debug(f"Stored embeddings for product {product.id}", extra={"product_id": product.id})

    @staticmethod
    def _cancelled(cancel_event: Optional[CancelSignal]) -> bool:
        return cancel_event is not None and cancel_event.is_set()
