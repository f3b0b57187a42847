"""
API routes for webhook ingestion, analytics and live streaming.
"""
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..context import AggregatorContext
from ..core.exceptions import AuthenticationError, MalformedPayloadError
from ..core.models import NotApplicable
from ..core.registry import resolve_processor
from ..integrations.broadcaster import WebSocketConnection
from ..monitoring.health import HealthCheck

from .schemas import (
    HealthCheckResponse,
    StatisticsResponse,
    SystemStatusResponse,
    WebhookResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])
analytics_router = APIRouter(prefix="/analytics", tags=["analytics"])
stream_router = APIRouter(tags=["stream"])
monitoring_router = APIRouter(tags=["monitoring"])


def get_context(request: Request) -> AggregatorContext:
    """Aggregator context attached to the application at startup."""
    return request.app.state.context


def get_health_check(context: AggregatorContext = Depends(get_context)) -> HealthCheck:
    return HealthCheck(context)


@webhook_router.post(
    "/{processor_name}",
    response_model=WebhookResponse,
    response_model_exclude_none=True,
    summary="Payment processor webhook endpoint",
    description="Verify, normalize and broadcast a processor webhook event",
)
async def receive_webhook(
    processor_name: str,
    request: Request,
    context: AggregatorContext = Depends(get_context),
) -> Dict[str, Any]:
    """
    Handle a webhook from one of the registered payment processors.

    The raw body is passed through untouched so signatures can be checked
    against the exact bytes the processor signed.
    """
    config = resolve_processor(context.registry, processor_name)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown payment processor: {processor_name}",
        )

    body = await request.body()
    signature = request.headers.get(config.signature_header)

    try:
        result = context.engine.ingest(config.processor_id, body, signature)

    except (AuthenticationError, MalformedPayloadError) as e:
        logger.warning(
            "api_webhook_rejected",
            processor=config.processor_id.value,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.error(
            "api_webhook_unexpected_error",
            processor=config.processor_id.value,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )

    if isinstance(result, NotApplicable):
        return {"received": True, "message": "Event type not tracked"}

    return {"received": True, "transactionId": result.tx_id}


@analytics_router.get(
    "/comparison",
    response_model=StatisticsResponse,
    summary="Processor comparison",
    description="Per-processor metrics and a 24-hour traffic series",
)
async def processor_comparison(
    context: AggregatorContext = Depends(get_context),
) -> Dict[str, Any]:
    """Statistics for the dashboard comparison view."""
    return context.analytics.compute_statistics()


@stream_router.websocket("/stream")
async def live_stream(websocket: WebSocket) -> None:
    """Push every new transaction to the connected client as JSON."""
    context: AggregatorContext = websocket.app.state.context
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    context.broadcaster.attach(connection)
    await connection.run()


@monitoring_router.get(
    "/system/status",
    response_model=SystemStatusResponse,
    summary="System status",
)
async def system_status() -> Dict[str, Any]:
    """Lightweight status check used by the dashboard."""
    return {
        "systemState": "running",
        "checkedAt": datetime.now(timezone.utc).isoformat(),
    }


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Liveness probe endpoint."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Kubernetes readiness probe endpoint",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Readiness probe endpoint."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,  # Don't include in OpenAPI docs
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
