"""
Movie Catalog Backend: FastAPI Application Factory
=====================================================

What:  Builds the FastAPI application: middleware, exception handlers,
       routes, the MovieStore and its lifecycle.
How:   create_app() returns a configured instance; `app` at the bottom is
       what uvicorn imports (uvicorn catalog.main:app).

Application Layout:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware:  Request ID → Access Log → CORS         │
    │                                                      │
    │  Routes:                                             │
    │  ┌────────────────┐ ┌──────────────┐ ┌────────────┐  │
    │  │ POST /movies   │ │ GET /movies/ │ │ POST       │  │
    │  │                │ │     stream   │ │  /delete   │  │
    │  └────────────────┘ └──────────────┘ └────────────┘  │
    │  GET /health          static front end at / (opt.)   │
    │                                                      │
    │  Exception Handlers:                                 │
    │  Validation→400 │ StoreUnavailable→503 │ Internal→500│
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, connect the MovieStore. On failure either
              close the client and abort (MONGO_CONNECT_REQUIRED=true) or
              log and let requests reconnect lazily.
    Shutdown: close the MovieStore.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

from catalog import __version__
from catalog.config import Settings, settings as default_settings
from catalog.database import MovieStore
from catalog.exceptions import (
    CatalogError,
    InternalError,
    StoreUnavailableError,
    ValidationError,
)
from catalog.middleware.logging import RequestLoggingMiddleware
from catalog.middleware.request_id import RequestIDMiddleware, request_id_var
from catalog.routes import health
from catalog.routes.movies import build_router

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] catalog.services.movie_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Driver topology and heartbeat events are logged at DEBUG/INFO.
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

def build_lifespan(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(config.log_level)
        store: MovieStore = app.state.store

        logger.info("=" * 60)
        logger.info("Movie Catalog %s starting up...", __version__)
        logger.info(
            "MongoDB: %s (%s.%s)",
            config.redacted_mongo_url(),
            store.database_name,
            store.collection_name,
        )

        try:
            await store.connect()
        except PyMongoError as e:
            if config.mongo_connect_required:
                logger.critical(
                    "Could not connect to MongoDB after %d attempts: %s",
                    store.connect_attempts,
                    type(e).__name__,
                )
                await store.close()
                raise
            logger.error(
                "MongoDB unreachable at startup (%s); requests will retry the connection",
                type(e).__name__,
            )

        logger.info("Routes mounted under '%s'", config.api_prefix or "/")
        logger.info("=" * 60)

        yield

        logger.info("Movie Catalog shutting down...")
        await store.close()
        logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared ErrorResponse body.

        ValidationError / RequestValidationError → 400
        StoreUnavailableError                    → 503 (Retry-After)
        InternalError (incl. DatabaseError)      → 500
        CatalogError (base)                      → 500
        Exception (fallback)                     → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = _request_id(request)
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return await handle_validation_error(request, ValidationError.from_errors(exc.errors()))

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        rid = _request_id(request)
        logger.error("[%s] Store unavailable | Context: %s", rid, exc.context)
        return JSONResponse(
            status_code=503,
            content={
                "error": "store_unavailable",
                "message": exc.message,
                "details": {"retry_after": exc.retry_after},
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = _request_id(request)
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "details": {"error_type": exc.context.get("error_type")},
                "request_id": rid,
            },
        )

    @app.exception_handler(CatalogError)
    async def handle_catalog_error(request: Request, exc: CatalogError):
        rid = _request_id(request)
        logger.error("[%s] Unhandled catalog error: %s", rid, exc.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
            # Built outside RequestIDMiddleware, so the header is set here
            headers={"X-Request-ID": rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    store: Optional[MovieStore] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: MovieStore to serve from. Built from `config` when omitted.
        config: Settings to use. Defaults to the module-level settings.
    """
    config = config or default_settings
    store = store or MovieStore.from_settings(config)

    app = FastAPI(
        title="Movie Catalog API",
        description="Add, list and delete movies stored in MongoDB.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=build_lifespan(config),
    )
    app.state.store = store

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → CORS.
    allow_all = config.cors_allow_all
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else config.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(build_router(config))
    app.include_router(health.router)

    # Mounted last so every API route above takes precedence.
    if config.static_dir:
        static_path = Path(config.static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="frontend")
        else:
            logger.warning("STATIC_DIR %s is not a directory; front end not served", static_path)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve `app` with uvicorn on the configured address."""
    uvicorn.run(
        "catalog.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
