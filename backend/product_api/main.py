"""
Product API: FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (`uvicorn product_api.main:app`) or by
       `python -m product_api`.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:                                        │
    │  ┌──────────────────────────────────┐               │
    │  │ Request context (ID + access log)│               │
    │  └──────────────────────────────────┘               │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌─────────────────────────────┐   │
    │  │   GET /      │ │  /api/products[/{id}] CRUD  │   │
    │  └──────────────┘ └─────────────────────────────┘   │
    │                                                     │
    │  app.state.product_service ← installed by lifespan  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (MONGO_URI must be set)
    3. Connect to MongoDB and ping the server
    4. Install ProductService on app.state (product routes stop answering 503)
    Any failure here is logged and re-raised; uvicorn aborts startup and
    the process exits.

    Shutdown:
    1. Close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from product_api import __version__
from product_api.config import Settings, settings as default_settings
from product_api.database import MongoDatabase
from product_api.exceptions import (
    DatabaseError,
    NotFoundError,
    NotReadyError,
    ProductAPIError,
    ValidationError,
)
from product_api.middleware.request_context import RequestContextMiddleware, request_id_var
from product_api.routes import health, products
from product_api.services.product_service import ProductService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    When:   Called once during app startup, before connecting to MongoDB.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # These log every request / driver event at INFO or DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

def build_lifespan(config: Settings):
    """Return a lifespan handler bound to `config`."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(config.log_level)
        logger.info("Product API %s starting up...", __version__)

        try:
            config.validate_required()
        except ValueError as e:
            logger.error("%s", str(e))
            raise

        database = MongoDatabase(
            uri=config.mongo_uri,
            database_name=config.mongo_database,
            collection_name=config.mongo_collection,
            timeout_ms=config.mongo_timeout_ms,
        )
        try:
            collection = await database.connect()
        except Exception as e:
            logger.error("DB connection error: %s", str(e))
            raise

        app.state.database = database
        app.state.product_service = ProductService(collection)
        logger.info("Server ready on port %d", config.port)

        try:
            yield
        finally:
            # ── Shutdown ──────────────────────────────────────────────────
            logger.info("Product API shutting down...")
            await database.close()
            logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # The catch-all handler runs outside the middleware's context copy
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _error_field(location: tuple) -> str:
    """('body', 'price', 'int') → 'price'; a missing body reports as 'body'."""
    if len(location) > 1 and location[0] == "body":
        return str(location[1])
    return ".".join(str(part) for part in location) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and a single JSON error format.

    Handler hierarchy:
        ValidationError          → 400 Bad Request
        RequestValidationError   → 400 Bad Request (body schema failures)
        NotFoundError            → 404 Not Found
        NotReadyError            → 503 Service Unavailable
        DatabaseError            → 500 Internal Server Error (generic message)
        ProductAPIError (base)   → 500 Internal Server Error
        Exception (fallback)     → 500 Internal Server Error

    Driver errors, stack traces and queries never reach the response body.
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
        """Body failed the Pydantic schema: list every failed requirement."""
        rid = _request_id(request)
        errors = [
            {"field": _error_field(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Validation error",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = _request_id(request)
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotReadyError)
    async def handle_not_ready(request: Request, exc: NotReadyError):
        rid = _request_id(request)
        logger.warning("[%s] Request rejected, database not ready", rid)
        return JSONResponse(
            status_code=503,
            content={
                "error": "service_unavailable",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "Server error",
                "request_id": rid,
            },
        )

    @app.exception_handler(ProductAPIError)
    async def handle_product_api_error(request: Request, exc: ProductAPIError):
        rid = _request_id(request)
        logger.error("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "Server error",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500, full traceback in the server log only."""
        rid = _request_id(request)
        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to bind to the lifespan (defaults to the module
                singleton). Tests pass their own or skip the lifespan and
                install a ProductService on `app.state` directly.
    """
    config = config or default_settings

    app = FastAPI(
        title="Product API",
        description="CRUD operations over the products collection in MongoDB.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=build_lifespan(config),
    )
    app.state.settings = config

    # ── Register Middleware ───────────────────────────────────────────────
    app.add_middleware(RequestContextMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(products.router)

    return app


# uvicorn expects `product_api.main:app` to be importable
app = create_app()
