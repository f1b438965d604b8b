"""
FastAPI application factory for the read-only query API.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from headline_anchor import __version__
from headline_anchor.api.dependencies import cleanup_dependencies
from headline_anchor.api.routes import changes, health, items, sources, stats
from headline_anchor.config.settings import get_settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Query API starting up")
    app.state.started_at = time.monotonic()

    yield

    logger.info("Query API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "items", "description": "Tracked feed items and their receipts"},
        {"name": "changes", "description": "Detected content changes"},
        {"name": "sources", "description": "Configured feed sources"},
        {"name": "stats", "description": "Aggregate counts"},
    ]

    app = FastAPI(
        title="Headline Anchor API",
        description="""
Read-only access to tracked headlines, detected changes and their ledger
receipts. A null receipt means the commitment is still waiting for the
reconciliation sweeper.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )
    app.state.started_at = time.monotonic()

    # Origins from CORS_ORIGINS env var, comma-separated
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(items.router, tags=["items"])
    app.include_router(changes.router, tags=["changes"])
    app.include_router(sources.router, tags=["sources"])
    app.include_router(stats.router, tags=["stats"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Headline Anchor API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
