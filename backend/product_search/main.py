"""Product Search - Main FastAPI Application

Semantic product search with automatic keyword fallback.

This module creates and configures the FastAPI application, including:
- Search and observability routers
- Middleware (request ID correlation, CORS)
- Exception handlers
- Lifespan wiring of store clients, the embedding model cache and the
  search orchestrator
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import get_settings
from .dependencies import build_search_services
from .domain.embedding import EmbeddingError
from .domain.search import InvalidQueryError
from .observability.logging_config import configure_logging_from_settings
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .search.router import router as search_router

settings = get_settings()

configure_logging_from_settings(settings)

logger = logging.getLogger(__name__)


async def _preload_model(model_cache) -> None:
    try:
        await model_cache.preload()
    except EmbeddingError as e:
        logger.warning(f"Embedding model preload failed, AI search falls back until it loads: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: wire services; start the model preload in the background so
      the API accepts traffic (keyword fallback) while the model loads
    - Shutdown: cancel a pending preload, dispose engines
    """
    logger.info("Product search API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    services = build_search_services(settings)
    app.state.services = services

    preload_task = None
    if settings.PRELOAD_MODEL_ON_STARTUP:
        preload_task = asyncio.create_task(_preload_model(services.model_cache))

    yield

    logger.info("Product search API shutting down...")
    if preload_task is not None and not preload_task.done():
        preload_task.cancel()
    await services.close()


# Create FastAPI application
app = FastAPI(
    title="Product Search API",
    description="Semantic product search with keyword fallback",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    """Reject empty queries before any downstream call."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_input",
            "message": str(exc),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Returns a structured error response with field-level details.
    """
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Log the full database error, return a generic message."""
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Catch-all for unhandled exceptions; details are logged, not exposed."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(observability_router)
app.include_router(search_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "name": "product-search",
        "version": __version__,
        "docs": "/docs" if settings.ENVIRONMENT != "production" else None,
    }
