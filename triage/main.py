"""FastAPI application wiring for Triage Desk.

- Configures logging, optional CORS, Prometheus metrics and rate limiting.
- Exposes the message/conversation routes plus health and version probes.
- Maps triage errors to HTTP responses with an ``{"error": ...}`` body.

``create_app`` accepts a prebuilt :class:`TriageService` so tests can inject
in-memory stores and scripted classifiers; otherwise the service is built on
first use from environment settings.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .classifier.providers import ProviderRegistry
from .conversations.errors import (
    ConflictError,
    ConversationNotFoundError,
    ConversationStateError,
    TriageError,
    ValidationError,
)
from .conversations.service import TriageService
from .core.limits import limiter
from .core.settings import get_settings
from .routers import messages

logger = logging.getLogger(__name__)


def _status_for(exc: TriageError) -> int:
    if isinstance(exc, ConversationNotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, (ValidationError, ConversationStateError)):
        return 400
    return 500


async def _triage_error_handler(request: Request, exc: TriageError) -> JSONResponse:
    return JSONResponse(status_code=_status_for(exc), content={"error": str(exc)})


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(problems) or "Invalid request"},
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    service: TriageService | None = None, *, enable_metrics: bool = True
) -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Triage Desk API",
        description=(
            "Conversational triage that answers customers and hands them to "
            "Sales, Support or Finance when a human is needed."
        ),
        version=__version__,
    )
    init_logging(app)
    app.state.limiter = limiter
    app.state.triage_service = service
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TriageError, _triage_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.add_middleware(SlowAPIMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.include_router(messages.router)

    @app.get("/")
    async def root():
        return {"message": "Triage Desk API", "docs": "/docs", "health": "/health"}

    @app.get("/health")
    async def health():
        """Liveness probe; also reports whether the classifier has credentials."""
        try:
            credentials = ProviderRegistry().get_credentials(get_settings().llm_provider)
        except ValueError:
            classifier = "misconfigured"
        else:
            classifier = "enabled" if credentials.configured else "fallback"
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "classifier": classifier,
        }

    @app.get("/version")
    async def version():
        return {
            "version": __version__,
            "build_date": __build_date__,
            "commit_sha": __commit_sha__,
        }

    if enable_metrics:
        Instrumentator().instrument(app).expose(
            app, include_in_schema=False, endpoint="/metrics"
        )
    return app


app = create_app()
