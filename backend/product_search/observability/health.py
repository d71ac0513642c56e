"""Health check utilities.

The catalog store is required for any answer, so its loss makes the service
unhealthy. The vector store and the embedding model only enable the semantic
path; without them search still answers through keyword fallback, so their
loss is reported as degraded.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


async def check_catalog_health(engine: AsyncEngine, timeout: float = 3.0) -> ComponentHealth:
    """Run ``SELECT 1`` against the catalog store."""
    start = time.perf_counter()
    try:
        async def ping() -> None:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        await asyncio.wait_for(ping(), timeout=timeout)
    except asyncio.TimeoutError:
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Catalog did not answer within {timeout}s")
    except Exception as e:
        logger.error(f"Catalog health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Catalog error: {e}")

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Catalog connection OK",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


async def check_vector_store_health(vector_store) -> ComponentHealth:
    """Probe the vector store; unavailability degrades search to keyword mode."""
    start = time.perf_counter()
    availability = await vector_store.is_available()
    latency_ms = round((time.perf_counter() - start) * 1000, 2)

    if availability.available:
        return ComponentHealth(status=HealthStatus.HEALTHY, message="pgvector available", latency_ms=latency_ms)
    return ComponentHealth(
        status=HealthStatus.DEGRADED,
        message=f"Semantic search disabled: {availability.reason}",
        latency_ms=latency_ms,
    )


def check_model_health(model_cache) -> ComponentHealth:
    if model_cache.is_loaded:
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Embedding model loaded")
    if model_cache.is_loading:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="Embedding model loading")
    return ComponentHealth(status=HealthStatus.DEGRADED, message="Embedding model not loaded")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses.

    Args:
        components: Dictionary of component health statuses

    Returns:
        HealthStatus: Overall system health
    """
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
