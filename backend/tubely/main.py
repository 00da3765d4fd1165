"""
Tubely API - FastAPI Application Entry Point.

Builds the FastAPI application: logging and MongoDB lifecycle in the
lifespan, CORS and request logging middleware, the versioned API router,
health endpoints and the static mount that serves thumbnails from the
assets root.

API Structure:
    /api/v1/upload  - Thumbnail and video upload endpoints
    /api/v1/videos  - Create, list and fetch video records
    /assets         - Thumbnail files
    /health, /ready - Liveness and readiness probes

Usage:
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091
"""

import logging
import os
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import Settings, get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.utils.logger import setup_logging


logger = logging.getLogger(__name__)

HTTP_ERROR_THRESHOLD = 400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Configure logging and open the MongoDB connection for the app's lifetime.

    Raises:
        RuntimeError: If MongoDB cannot be reached on startup
    """
    settings: Settings = app.state.settings
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    os.makedirs(settings.assets_root, exist_ok=True)

    logger.info(
        "Tubely API starting",
        extra={
            "app_env": settings.app_env,
            "bucket": settings.s3_bucket_name,
            "address": f"{settings.host}:{settings.port}",
        },
    )

    await init_db(settings)

    yield

    await close_db()
    logger.info("Tubely API shutdown complete")


async def request_logging_middleware(request: Request, call_next) -> Response:
    """Log each request with its status and timing; tag the response with an id."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed",
            extra={"method": request.method, "path": request.url.path, "request_id": request_id},
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    level = logging.INFO if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        level,
        "%s %s -> %d",
        request.method,
        request.url.path,
        response.status_code,
        extra={"request_id": request_id, "process_time_ms": process_time_ms},
    )
    return response


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a generic 500 for unhandled exceptions without leaking details."""
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": {
                "error": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; defaults to ``get_settings()``

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Upload, process and serve videos and thumbnails.",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    app.middleware("http")(request_logging_middleware)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(api_router, prefix="/api/v1")

    # Directory is created in the lifespan
    app.mount(
        "/assets", StaticFiles(directory=settings.assets_root, check_dir=False), name="assets"
    )

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        return {"name": f"{settings.app_name} API", "version": __version__, "docs": "/docs"}

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Liveness probe; does not touch dependencies."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "service": settings.app_name,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check() -> JSONResponse:
        """Readiness probe; reports whether MongoDB answers a ping."""
        try:
            mongodb = await get_db_client().ping()
        except RuntimeError:
            mongodb = False

        return JSONResponse(
            status_code=200 if mongodb else 503,
            content={
                "ready": mongodb,
                "timestamp": datetime.now(UTC).isoformat(),
                "checks": {"mongodb": mongodb},
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "tubely.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
    )
