"""Observability API endpoints.

Provides metrics, health checks, and readiness probes for monitoring.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ..dependencies import get_catalog_engine, get_model_cache, get_vector_store
from .health import (
    check_catalog_health,
    check_model_health,
    check_vector_store_health,
    get_overall_health,
    HealthStatus,
)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    include_in_schema=False,
)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Health of the catalog store, the vector store and the embedding model",
)
async def health_check(
    catalog_engine=Depends(get_catalog_engine),
    vector_store=Depends(get_vector_store),
    model_cache=Depends(get_model_cache),
):
    """Check health of all components.

    Returns 200 when healthy or degraded (search still answers through
    keyword fallback), 503 when the catalog store is unreachable.
    """
    components = {
        "catalog": await check_catalog_health(catalog_engine),
        "vector_store": await check_vector_store_health(vector_store),
        "embedding_model": check_model_health(model_cache),
    }
    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }
    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503
    return JSONResponse(content=response_data, status_code=status_code)


@router.get(
    "/ready",
    summary="Readiness check endpoint",
    description="Returns readiness status (for Kubernetes readiness probes)",
)
async def readiness_check(catalog_engine=Depends(get_catalog_engine)):
    """Ready once the catalog store answers; the semantic path is optional."""
    catalog_health = await check_catalog_health(catalog_engine)

    if catalog_health.status == HealthStatus.HEALTHY:
        return {
            "status": "ready",
            "message": "Application is ready to serve traffic"
        }
    return JSONResponse(
        content={
            "status": "not_ready",
            "message": catalog_health.message
        },
        status_code=503
    )
