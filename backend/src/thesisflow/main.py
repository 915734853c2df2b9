"""ThesisFlow Backend - Main FastAPI Application

Supervised thesis workflow: documents, collaborators and approvals.

This module creates and configures the main FastAPI application, including:
- API routers (documents, collaborators, live editing, admin)
- Middleware (request ID correlation, CORS)
- Exception handlers (domain error taxonomy to HTTP)
- Shared state (presence tracker, notification publisher, decision audit sink)
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .audit.decisions import DecisionAuditSink, LoggingDecisionAuditSink
from .config import get_settings
from .domain.errors import ThesisFlowError
from .editing.presence import EditingPresenceTracker
from .notifications.ports import NotificationPublisher
from .notifications.publishers import LoggingNotificationPublisher

# Observability
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

# Domain Routers
from .documents.router import router as documents_router
from .collaborators.router import router as collaborators_router
from .collaborators.router import admin_router as collaborators_admin_router
from .editing.router import router as editing_router

settings = get_settings()

# Configure logging
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: start the idle-editor cleanup thread
    - Shutdown: stop it
    """
    logger.info("ThesisFlow API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    app.state.presence.start_cleanup(settings.EDITING_CLEANUP_INTERVAL_SECONDS)

    yield

    app.state.presence.stop_cleanup()
    logger.info("ThesisFlow API shutting down...")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def domain_exception_handler(request: Request, exc: ThesisFlowError) -> JSONResponse:
    """Translate the domain error taxonomy to HTTP responses."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"errors": exc.errors()}
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
        },
    )


async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
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


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    publisher: Optional[NotificationPublisher] = None,
    decision_sink: Optional[DecisionAuditSink] = None,
    presence: Optional[EditingPresenceTracker] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        publisher: Notification consumer (defaults to the logging adapter)
        decision_sink: Authorization decision audit sink (defaults to logging)
        presence: Shared editing presence tracker

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(
        title="ThesisFlow API",
        description="Collaborative thesis workflow with supervised approval",
        version="0.1.0",
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
        lifespan=lifespan,
    )

    app.state.publisher = publisher or LoggingNotificationPublisher()
    app.state.decision_sink = decision_sink or LoggingDecisionAuditSink()
    app.state.presence = presence or EditingPresenceTracker(
        timeout_seconds=settings.EDITING_TIMEOUT_SECONDS
    )

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    app.add_exception_handler(ThesisFlowError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)

    # =========================================================================
    # ROUTERS
    # =========================================================================

    app.include_router(observability_router)
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(collaborators_router, prefix="/api/v1")
    app.include_router(editing_router, prefix="/api/v1")
    app.include_router(collaborators_admin_router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": "ThesisFlow API",
            "version": "0.1.0",
            "docs": "/docs" if settings.docs_enabled else None,
        }

    return app


app = create_app()
