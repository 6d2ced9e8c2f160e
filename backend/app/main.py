"""
MemoTap Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the lifespan builds the Gemini extraction pipeline.
Who:   uvicorn (uvicorn app.main:app).
When:  Once at server startup.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware: Rate Limit → Request ID → Logging → GZip/CORS│
    │                                                          │
    │  Routes:                                                 │
    │    /api/recordings  /api/tasks  /api/notes               │
    │    /api/reminders   /health                              │
    │                                                          │
    │  app.state.extraction_pipeline                           │
    │    GeminiTransport + CredentialPool (shared, thread-safe)│
    │                                                          │
    │  Exception Handlers:                                     │
    │    Validation→400 │ NotFound→404 │ LLM/Pool→503 │ DB→500 │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (missing keys are logged, not fatal)
    3. Build CredentialPool, GeminiTransport and ExtractionPipeline
    Shutdown:
    1. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    DatabaseError,
    LLMServiceError,
    MemoTapError,
    NotFoundError,
    PoolEmptyError,
    PoolExhaustedError,
    RateLimitExceededError,
    RetryBudgetExceededError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import health, notes, recordings, reminders, tasks
from app.services.extraction_service import ExtractionPipeline
from app.services.gemini_service import GeminiTransport
from app.services.key_pool import CredentialPool

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


def build_extraction_pipeline() -> ExtractionPipeline:
    """Wire the Gemini transport and the process-wide key pool from settings."""
    key_pool = CredentialPool.from_config(settings.gemini_api_keys)
    transport = GeminiTransport(timeout_seconds=settings.gemini_timeout_seconds)
    return ExtractionPipeline(
        transport=transport,
        key_pool=key_pool,
        model=settings.gemini_model,
        max_attempts=settings.extraction_max_attempts,
        timezone=settings.extraction_timezone,
    )


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("MemoTap Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health reports "degraded" and processing answers 503
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    # Tests may install their own pipeline before startup
    if getattr(app.state, "extraction_pipeline", None) is None:
        app.state.extraction_pipeline = build_extraction_pipeline()
    pipeline: ExtractionPipeline = app.state.extraction_pipeline
    logger.info(
        "Extraction pipeline ready: model=%s, %d API key(s), max %d attempt(s), tz=%s",
        pipeline.model,
        len(pipeline.key_pool),
        pipeline.max_attempts,
        pipeline.timezone_name,
    )

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("MemoTap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError          → 400
        NotFoundError            → 404
        RateLimitExceededError   → 429
        PoolExhaustedError /
        RetryBudgetExceededError → 503 "temporarily unavailable"
        PoolEmptyError           → 503 (misconfiguration, details logged)
        LLMServiceError          → 503
        DatabaseError            → 500 (generic message, details logged)
        MemoTapError / Exception → 500

    Responses never include stack traces; context dicts of server-side
    failures are logged only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
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

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    async def respond_pool_unavailable(request: Request, exc: LLMServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] Gemini key pool unavailable: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content={
                "error": "service_unavailable",
                "message": exc.message,
                "request_id": rid,
            },
        )

    app.add_exception_handler(PoolExhaustedError, respond_pool_unavailable)
    app.add_exception_handler(RetryBudgetExceededError, respond_pool_unavailable)
    app.add_exception_handler(PoolEmptyError, respond_pool_unavailable)

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] LLM service error: %s | Context: %s", rid, exc.message, exc.context)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=503,
            content={
                "error": "llm_service_error",
                "message": exc.message,
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(MemoTapError)
    async def handle_application_error(request: Request, exc: MemoTapError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
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
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance. The extraction pipeline is
    attached during lifespan startup, not here.
    """
    app = FastAPI(
        title="MemoTap API",
        description=(
            "Voice-note backend: upload a recording, get a transcript plus the "
            "tasks, notes and reminders it contains, extracted by Google Gemini."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(recordings.router)
    app.include_router(tasks.router)
    app.include_router(notes.router)
    app.include_router(reminders.router)
    app.include_router(health.router)

    return app


app = create_app()
