"""
FastAPI application entry point.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Annotated, Any

import sentry_sdk
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prisma.errors import PrismaError
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from starlette.responses import Response

from .config import get_settings
from .core.database import check_db_health, connect_db, disconnect_db, get_db_client
from .dependencies import SettingsDep
from .middleware import LoggingMiddleware, SecurityHeadersMiddleware
from .models.error_response import ErrorResponse
from .routes.goals import router as goals_router
from .routes.progress import router as progress_router
from .utils.exceptions import AuthenticationError, FitTrackError, StorageError, ValidationError
from .utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


# ============================================================================
# Global Exception Handlers
# ============================================================================


async def fittrack_error_handler(request: Request, exc: FitTrackError) -> JSONResponse:
    """
    Convert FitTrackError instances into the standard ErrorResponse body.

    5xx errors are logged with traceback and sent to Sentry; 4xx errors are
    logged at WARNING. `detail` is only exposed when DEBUG is on.
    """
    settings = get_settings()

    log_context = {
        "error_code": exc.code,
        "status_code": exc.status_code,
        "detail": exc.detail,
        "path": request.url.path,
        "method": request.method,
    }

    if exc.status_code >= 500:
        logger.error(
            f"FitTrackError [500-level]: {exc.code} - {exc.message}",
            exc_info=exc,
            extra=log_context,
        )
        sentry_sdk.capture_exception(exc)
    else:
        logger.warning(f"FitTrackError: {exc.code} - {exc.message}", extra=log_context)

    error_response = ErrorResponse(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        fields=exc.fields if isinstance(exc, ValidationError) else None,
        detail=exc.detail if settings.DEBUG else None,
    )

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
        headers=headers,
    )


def _error_field(loc: tuple[Any, ...]) -> str:
    """Field name from a pydantic error location, minus the request part prefix."""
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Reformat pydantic/FastAPI validation errors into the ErrorResponse body,
    naming every offending field.
    """
    settings = get_settings()
    errors = exc.errors()
    fields = sorted({_error_field(tuple(error["loc"])) for error in errors})

    if len(errors) == 1:
        message = f"Validation error in field '{fields[0]}': {errors[0]['msg']}"
    else:
        message = f"Request validation failed with {len(errors)} error(s)"

    error_response = ErrorResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="VALIDATION_ERROR",
        message=message,
        fields=fields,
        detail=str(errors) if settings.DEBUG else None,
    )

    logger.info(
        f"Validation error: {message}",
        extra={"fields": fields, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(exclude_none=True),
    )


async def storage_error_handler(request: Request, exc: PrismaError) -> JSONResponse:
    """Report Prisma client failures as STORAGE_ERROR without exposing the query or driver message."""
    storage_error = StorageError(detail=f"{type(exc).__name__}: {exc}")
    storage_error.__cause__ = exc
    return await fittrack_error_handler(request, storage_error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Safety net for anything unexpected, storage client errors included.

    Logs the full traceback but never returns internals to the client.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={
            "exception_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
            "traceback": "".join(traceback.format_exception(exc)),
        },
    )
    sentry_sdk.capture_exception(exc)

    error_response = ErrorResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_SERVER_ERROR",
        message="An internal server error occurred. Please try again later.",
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(exclude_none=True),
    )


# ============================================================================
# Application Lifespan
# ============================================================================


def init_sentry() -> bool:
    """Initialise Sentry when a DSN is configured. Returns whether it was enabled."""
    settings = get_settings()
    if not settings.SENTRY_DSN.strip():
        logger.warning(
            "Sentry DSN not configured - error tracking disabled",
            extra={"hint": "Set SENTRY_DSN in .env file or environment variable to enable"},
        )
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        sample_rate=1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        release=settings.APP_VERSION,
    )
    logger.info(
        "Sentry error tracking initialized",
        extra={"environment": settings.ENVIRONMENT, "release": settings.APP_VERSION},
    )
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_sentry()

    await connect_db()

    yield

    logger.info("Shutting down application...")
    await disconnect_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_exception_handler(FitTrackError, fittrack_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PrismaError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    @app.get("/")
    async def root(settings: SettingsDep) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    @app.get("/health")
    async def health(db_client: Annotated[Any, Depends(get_db_client)]) -> dict[str, str]:
        """
        Health check: verifies the database answers a trivial query.

        Returns 503 with details when it does not.
        """
        try:
            result = await db_client.query_raw("SELECT 1 as test")
        except Exception as e:
            logger.warning("Health check database query failed", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"status": "unhealthy", "db": "disconnected"},
            )

        if not result:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"status": "unhealthy", "db": "no response"},
            )

        return {"status": "healthy", "db": "connected"}

    @app.get("/ready")
    async def ready() -> dict[str, Any]:
        """Readiness check endpoint."""
        return {
            "status": "ready",
            "database": await check_db_health(),
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics exposition."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(goals_router)
    app.include_router(progress_router)

    return app


# Create app instance
app = create_app()
