"""FastAPI application main module.

This module builds the GroupBuy API: it wires configuration, the document
store, token service, scoring services and middleware onto a FastAPI
instance, maps errors to the response envelope and serves the health check.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from groupbuy import __version__
from groupbuy.api.exceptions import GroupBuyException
from groupbuy.api.logging_config import RequestLoggingMiddleware, request_context, setup_logging
from groupbuy.api.metrics import ScoringMetrics
from groupbuy.api.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from groupbuy.api.responses import failure
from groupbuy.api.routes import ai, analytics, auth, chat, groups, purchase_requests, suppliers, users
from groupbuy.api.security import TokenService
from groupbuy.config import Settings, get_settings
from groupbuy.recommender.group_metrics import GroupMetricsProvider, RandomGroupMetricsProvider
from groupbuy.recommender.scoring import GroupRecommender
from groupbuy.store.database import Store, connect

# Configure module logger
logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"

# Request-location prefixes stripped from validation error field names
_LOCATION_PREFIXES = ("body", "query", "path", "header")


def _validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        location = loc[0] if loc and loc[0] in _LOCATION_PREFIXES else None
        field = ".".join(loc[1:] if location else loc)
        errors.append({
            "field": field,
            "location": location,
            "message": error.get("msg"),
            "type": error.get("type"),
        })
    return errors


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Convert every error to the response envelope.

    Failure bodies carry the request id so clients can quote it; the same
    id and the caller's user id go into the handler logs.
    """

    @app.exception_handler(GroupBuyException)
    async def groupbuy_exception_handler(request: Request, exc: GroupBuyException):
        context = request_context(request)
        extra = {**context, "path": str(request.url.path), "status_code": exc.status_code}
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}", extra=extra, exc_info=True)
        else:
            logger.warning(f"{type(exc).__name__}: {exc.message}", extra=extra)
        return failure(
            exc.message,
            exc.status_code,
            exc.error_code,
            exc.details,
            request_id=context["request_id"],
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        context = request_context(request)
        errors = _validation_errors(exc)
        logger.warning(
            "Request validation failed",
            extra={**context, "path": str(request.url.path), "fields": [e["field"] for e in errors]},
        )
        return failure(
            "Validation errors",
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            {"errors": errors},
            request_id=context["request_id"],
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return failure(
            message,
            exc.status_code,
            "http_error",
            headers=getattr(exc, "headers", None),
            request_id=request_context(request)["request_id"],
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        context = request_context(request)
        logger.error(
            "Unhandled error",
            extra={**context, "path": str(request.url.path), "error_type": type(exc).__name__},
            exc_info=exc,
        )
        details = {"detail": str(exc)} if settings.is_development else None
        return failure(
            "Something went wrong!",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            details,
            request_id=context["request_id"],
        )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    group_metrics_provider: Optional[GroupMetricsProvider] = None,
) -> FastAPI:
    """Build the GroupBuy API.

    Args:
        settings: Application settings; read from the environment if omitted.
        store: Document store; a MongoDB client is created from
            ``settings.mongo`` if omitted.
        group_metrics_provider: Source of new groups' AI metrics; defaults to
            uniform random draws.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    client = None
    if store is None:
        client, store = connect(settings.mongo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.logging.level, settings.logging.format)
        logger.info(
            "Application starting up",
            extra={"environment": settings.environment.value, "version": settings.version},
        )
        try:
            store.ensure_indexes()
        except PyMongoError as e:
            logger.warning(f"Could not ensure indexes: {e}")

        yield

        logger.info("Application shutting down")
        if client is not None:
            client.close()

    app = FastAPI(
        title=settings.app_name,
        description="Group-buying marketplace with heuristic matching and recommendations",
        version=settings.version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.token_service = TokenService(settings.auth)
    app.state.scoring_metrics = ScoringMetrics()
    app.state.group_metrics_provider = group_metrics_provider or RandomGroupMetricsProvider()
    app.state.recommender = GroupRecommender()
    app.state.started_at = time.monotonic()

    if settings.rate_limit.enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=FixedWindowRateLimiter(
                settings.rate_limit.max_requests,
                settings.rate_limit.window_seconds,
            ),
            exempt_paths=[HEALTH_PATH],
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app, settings)

    # Include routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(groups.router)
    app.include_router(purchase_requests.router)
    app.include_router(suppliers.router)
    app.include_router(ai.router)
    app.include_router(chat.router)
    app.include_router(analytics.router)

    @app.get(HEALTH_PATH)
    def health(request: Request) -> Dict[str, Any]:
        """Health check endpoint.

        Returns:
            Dictionary with status, current UTC timestamp and process uptime
            in seconds.

        Example:
            >>> response = client.get("/health")
            >>> assert response.json()["status"] == "OK"
        """
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        }

    @app.get("/metrics")
    def metrics(request: Request) -> Dict[str, Any]:
        """Scoring call counts and latencies since startup."""
        return {
            "version": __version__,
            "scoring": request.app.state.scoring_metrics.get_metrics(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "groupbuy.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
