from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.routes.ncm import router as ncm_router
from src.core.logging import configure_logging, correlation_id_var
from src.core.settings import get_app_settings
from src.db.config import get_settings
from src.db.run_migrations import main as run_alembic
from src.db.session import build_engine, build_session_maker, ping_database
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness and readiness probes."},
    {"name": "NCM", "description": "NCM classification code reference table."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Attach a correlation_id to the request for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    request.state.correlation_id = corr

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-JSON values (e.g. ctx exceptions) from validation errors."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Malformed request bodies and parameters are client errors: 400 with the
    pydantic error list as details.
    """
    return _build_error_response(
        request=request,
        status_code=400,
        error_type="validation_error",
        message="Invalid request",
        details=_jsonable_errors(exc),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Create the connection pool, verify the database and run migrations.

    Any failure here is fatal: the exception propagates and the server stops
    before serving requests.
    """
    db_settings = get_settings()
    engine = build_engine(db_settings)
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)

    try:
        await ping_database(engine)
        logger.info("Database reachable at %s:%s/%s", db_settings.DB_HOST, db_settings.DB_PORT, db_settings.DB_NAME)
        if settings.RUN_MIGRATIONS_ON_STARTUP:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so run it off the server loop.
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
    except Exception:
        logger.exception("Startup failed; aborting")
        await engine.dispose()
        raise


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Dispose the connection pool."""
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()


# PUBLIC_INTERFACE
@app.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@app.get(
    "/health/db",
    response_model=MessageResponse,
    summary="Database Readiness Check",
    tags=["Health"],
)
async def database_health_check(request: Request) -> MessageResponse:
    """Run SELECT 1 against the pool; 503 when the database cannot be reached."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Database engine not initialized")
    try:
        await ping_database(engine)
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return MessageResponse(message="Database reachable")


app.include_router(ncm_router)
