"""Command line entry points.

sync-embeddings
    Run the embedding sync job once. Exit status:
    0 no product failed, 1 at least one product failed, 2 the run could not
    start (model or store unavailable, or another run in progress).

check-search-status
    Print model cache, vector store and embedding coverage status.
    Exit status 0 when semantic search is available, 1 otherwise.
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, List, Optional

from .config import get_settings
from .dependencies import build_search_services
from .observability.logging_config import configure_logging, get_logger
from .observability.request_id import bound_request_id
from .search.status import collect_search_status
from .services.embedding import EmbeddingSyncError, EmbeddingSyncJob, SyncReport

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ITEM_FAILURES = 1
EXIT_PREFLIGHT_FAILED = 2


def build_sync_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sync-embeddings",
        description="Generate embeddings for active products that do not have one yet.",
    )
    parser.add_argument("--force", action="store_true", help="Re-embed every active product")
    parser.add_argument(
        "--product-id",
        dest="product_ids",
        type=int,
        action="append",
        help="Restrict the run to this product (repeatable)",
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Products per catalog round-trip")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def format_report(report: SyncReport) -> str:
    lines = [
        f"Status:           {report.status}",
        f"Active products:  {report.total_active}",
        f"Already embedded: {report.already_embedded}",
        f"To process:       {report.missing}",
        f"Processed:        {report.processed}",
        f"Failed:           {report.failed}",
        f"Skipped:          {report.skipped}",
        f"Duration:         {report.duration_ms} ms",
    ]
    for item in report.errors:
        lines.append(f"  product {item.product_id}: {item.error}")
    return "\n".join(lines)


def _install_cancel_handlers(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on this platform or thread
            pass


async def run_sync_command(args: argparse.Namespace, services: Any, settings=None) -> int:
    """Run the sync job against ``services`` and print the report.

    Args:
        args: Parsed ``sync-embeddings`` arguments
        services: Object exposing model_cache, vector_store and catalog_store
        settings: Settings for batch size and delay (defaults to get_settings())

    Returns:
        Process exit status
    """
    settings = settings or get_settings()
    job = EmbeddingSyncJob(
        embedding_provider=services.model_cache,
        vector_store=services.vector_store,
        catalog_store=services.catalog_store,
        batch_size=args.batch_size or settings.SYNC_BATCH_SIZE,
        item_delay=settings.SYNC_ITEM_DELAY_SECONDS,
    )

    cancel_event = asyncio.Event()
    _install_cancel_handlers(cancel_event)

    try:
        report = await job.run(force=args.force, product_ids=args.product_ids, cancel_event=cancel_event)
    except EmbeddingSyncError as e:
        logger.error(f"Embedding sync could not start: {e}")
        print(f"Embedding sync could not start: {e}", file=sys.stderr)
        return EXIT_PREFLIGHT_FAILED

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_report(report))
    return report.exit_code


async def _sync_main(args: argparse.Namespace) -> int:
    settings = get_settings()
    services = build_search_services(settings)
    try:
        with bound_request_id(prefix="sync"):
            return await run_sync_command(args, services, settings)
    finally:
        await services.close()


def sync_embeddings_main(argv: Optional[List[str]] = None) -> int:
    args = build_sync_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(
        level=args.log_level or settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        service="product-search-sync",
        environment=settings.ENVIRONMENT,
    )
    return asyncio.run(_sync_main(args))


def build_status_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-search-status",
        description="Report embedding model, vector store and embedding coverage status.",
    )
    parser.add_argument("--json", action="store_true", help="Print the status as JSON")
    return parser


def format_status(status: dict) -> str:
    model = status["model"]
    vector_store = status["vector_store"]
    embeddings = status["embeddings"]
    lines = [
        f"AI search enabled:   {status['ai_enabled']}",
        f"Model:               {model['model_name']}",
        f"  cached on disk:    {model['is_cached']} ({model['model_dir']})",
        f"  loaded:            {model['is_loaded']}",
        f"Vector store:        {'available' if vector_store['available'] else 'unavailable'}",
    ]
    if not vector_store["available"]:
        lines.append(f"  reason:            {vector_store['reason']}")
    lines.extend([
        f"Active products:     {embeddings['active_products']}",
        f"Embeddings:          {embeddings['total_embeddings']}",
        f"Missing embeddings:  {embeddings['missing']}",
        f"Coverage:            {embeddings['coverage_percent']}%",
        f"Last updated:        {embeddings['last_updated_at']}",
    ])
    return "\n".join(lines)


async def _status_main(args: argparse.Namespace) -> int:
    services = build_search_services(get_settings())
    try:
        status = await collect_search_status(services.model_cache, services.vector_store, services.catalog_store)
    finally:
        await services.close()

    if args.json:
        print(json.dumps(status, indent=2, default=str))
    else:
        print(format_status(status))
    return EXIT_OK if status["ai_enabled"] else 1


def check_search_status_main(argv: Optional[List[str]] = None) -> int:
    args = build_status_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level="WARNING", json_format=settings.LOG_JSON, service="product-search-status")
    return asyncio.run(_status_main(args))
