"""SecureCoda FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() — testable application factory
  - lifespan — @asynccontextmanager startup/shutdown sequence
  - /health router — delegated to securecoda/health.py
  - /api router    — delegated to securecoda/api/routes.py
  - /        route — service discovery root
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. load_config()               → app.state.config (skipped when create_app got one)
  2. create_document_source()    → app.state.source
  3. AlertStore()                → app.state.store
  4. ScanOrchestrator()          → app.state.orchestrator
     RemediationDispatcher()     → app.state.remediation
  5. scheduler.run_initial()     → first scan completes before any request is served
  6. scheduler.start()           → app.state.scheduler (cron */N background task)
  7. app.state.ready = True

Shutdown sequence (reverse):
  app.state.ready = False → stop scheduler → close document source
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter

from securecoda import __version__
from securecoda.api.routes import router as api_router
from securecoda.config import DEFAULT_CORS_ORIGINS, Config, load_config
from securecoda.health import router as health_router
from securecoda.remediation import RemediationDispatcher
from securecoda.scanner.orchestrator import ScanOrchestrator
from securecoda.scheduler import ScanScheduler
from securecoda.source import create_document_source
from securecoda.store import AlertStore
from securecoda.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
# Configure logging at module import time (before any other imports that may log).
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


# ─── Routers ──────────────────────────────────────────────────────────────────

root_router = APIRouter(tags=["root"])


@root_router.get("/")
async def root() -> dict[str, str]:
    """Root endpoint — service identity / discovery."""
    return {
        "service": "SecureCoda",
        "tagline": "Security monitoring for Coda documents",
        "version": __version__,
        "health": "/health",
        "api": "/api/data",
    }


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup and shutdown sequence.

    The initial scan runs to completion before ``ready`` is set; a failing
    initial scan is logged and startup continues (the scheduler retries on the
    next tick).
    """
    logger.info("SecureCoda starting up...")

    # ── Step 1: Load configuration ────────────────────────────────────────────
    # load_config() raises SystemExit on parse error or missing version field.
    config: Optional[Config] = getattr(app.state, "config", None)
    if config is None:
        config = load_config()
        app.state.config = config
    logger.info(
        "Config loaded",
        mode="demo" if config.demo_mode else "live",
        scan_interval_minutes=config.scan.interval_minutes,
        stale_after_minutes=config.scan.stale_after_minutes,
    )

    # ── Step 2: Document source ───────────────────────────────────────────────
    source = create_document_source(config)
    app.state.source = source

    # ── Step 3-4: Store, orchestrator, remediation ────────────────────────────
    store = AlertStore()
    app.state.store = store

    orchestrator = ScanOrchestrator(
        source=source,
        store=store,
        stale_after_minutes=config.scan.stale_after_minutes,
        demo_mode=config.demo_mode,
    )
    app.state.orchestrator = orchestrator
    app.state.remediation = RemediationDispatcher(store=store, source=source)

    # ── Step 5-6: Initial scan + scheduler ────────────────────────────────────
    scheduler = ScanScheduler(orchestrator, interval_minutes=config.scan.interval_minutes)
    app.state.scheduler = scheduler
    await scheduler.run_initial()
    scheduler.start()

    # ── Step 7: Mark as ready ─────────────────────────────────────────────────
    app.state.ready = True
    logger.info(
        "SecureCoda ready",
        host=config.server.host,
        port=config.server.port,
        alerts=len(store),
    )

    yield

    # ── Shutdown (reverse order) ──────────────────────────────────────────────
    logger.info("SecureCoda shutting down...")
    app.state.ready = False

    await scheduler.stop()

    try:
        await source.close()
    except Exception as exc:
        logger.warning("Document source close error (non-fatal)", error=str(exc))

    logger.info("SecureCoda shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the SecureCoda FastAPI application.

    Args:
        config: Pre-loaded configuration. When given, the lifespan uses it
                instead of calling load_config() and CORS is restricted to
                ``config.server.cors_origins``; otherwise the default localhost
                origins apply.

    Call this function directly in tests to get an isolated app instance:
        app = create_app()
    """
    # Swagger UI / ReDoc only with DEBUG=true.
    _debug = os.getenv("DEBUG", "false").lower() == "true"

    application = FastAPI(
        title="SecureCoda",
        description="Scans Coda documents for stale, public and sensitive content",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if _debug else None,
        redoc_url="/redoc" if _debug else None,
        openapi_url="/openapi.json" if _debug else None,
    )

    # Initialize ready flag before lifespan — /health returns 503 until startup completes.
    application.state.ready = False
    if config is not None:
        application.state.config = config

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins if config else list(DEFAULT_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    application.include_router(root_router)
    application.include_router(health_router)
    application.include_router(api_router, prefix="/api")

    # Global exception handlers
    @application.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=str(request.url.path),
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=500, content={"error": "Internal server error"}
        )

    return application


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────
#   uvicorn securecoda.main:app --host 127.0.0.1 --port 3001

app = create_app()
