"""
Main FastAPI application.

Payment webhook aggregator API with:
- Webhook ingestion for every registered processor
- Processor comparison analytics
- Live transaction stream over WebSocket
- Request ID tracking and structured logging
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings, get_settings
from ..context import AggregatorContext, build_context
from ..monitoring.logging import setup_logging

from .routes import analytics_router, monitoring_router, stream_router, webhook_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """
    Application lifespan manager.

    Starts the Stripe poller (when configured) and stops it on shutdown.
    """
    context: AggregatorContext = app.state.context
    settings = context.settings

    # Startup
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        env=settings.app_env,
        unverified_processors=settings.unverified_processors,
    )
    context.poller.start()

    yield

    # Shutdown
    logger.info("application_shutdown")
    try:
        await context.poller.stop()
    except Exception as e:
        logger.error("stripe_poller_shutdown_error", error=str(e))


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AggregatorContext] = None,
) -> FastAPI:
    """
    Create the FastAPI application around an aggregator context.

    Args:
        settings: Application settings (cached settings if omitted)
        context: Pre-built context; built from settings if omitted

    Returns:
        FastAPI: Configured application
    """
    if context is None:
        settings = settings or get_settings()
        setup_logging(settings)
        context = build_context(settings)
    settings = context.settings

    app = FastAPI(
        title="Payment Webhook Aggregator",
        description=(
            "Ingests webhooks from Stripe, Bluefin, WorldPay Integrated, Gravity and "
            "Covetrus, normalizes them into one transaction model, and serves "
            "comparison analytics and a live transaction stream."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.context = context

    # CORS configuration
    origins = settings.get_allowed_origins_list()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
        """
        Add request ID to all requests for tracing.

        Also adds timing information and structured logging context.
        """
        request_id = str(uuid.uuid4())
        start_time = time.time()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.info(
            "request_started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "request_completed",
                request_id=request_id,
                status_code=response.status_code,
                duration_seconds=time.time() - start_time,
            )
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                request_id=request_id,
                error=str(e),
                duration_seconds=time.time() - start_time,
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            },
        )

    # Include routers
    app.include_router(webhook_router)
    app.include_router(analytics_router)
    app.include_router(stream_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": __version__,
            "status": "operational",
            "environment": settings.app_env,
            "processors": [p.value for p in context.registry],
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
            "stream": "/stream",
        }

    return app


def run() -> None:
    """Run the API with uvicorn (console script entry point)."""
    import uvicorn

    settings = get_settings()
    # In-memory state: a single worker process only
    uvicorn.run(
        "payment_aggregator.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
