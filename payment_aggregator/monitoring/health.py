"""
Health checks for liveness/readiness probes.

Checks:
- Processor registry completeness and signature trust mode
- Live subscriber set
- Stripe poller state (when enabled)
"""
from typing import TYPE_CHECKING, Any, Dict

import structlog

if TYPE_CHECKING:
    from ..context import AggregatorContext

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for the aggregator pipeline.

    Provides:
    - Processor registry check
    - Live broadcaster check
    - Stripe poller check
    - Overall system health status
    """

    def __init__(self, context: "AggregatorContext") -> None:
        """Initialize health check service."""
        self.context = context

    def check_processors(self) -> Dict[str, Any]:
        """
        Check that every processor is registered and report trust mode.

        Returns:
            Dict[str, Any]: Registry health status

        Raises:
            HealthCheckError: If the registry is empty
        """
        registry = self.context.registry
        if not registry:
            raise HealthCheckError("No payment processors registered")

        return {
            "status": "healthy",
            "service": "processors",
            "processors": {
                config.processor_id.value: {
                    "signature_verification": (
                        "enabled" if config.verification_enabled else "bypassed"
                    ),
                    "transactions": self.context.store.count(config.processor_id),
                }
                for config in registry.values()
            },
        }

    def check_broadcaster(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "live_stream",
            "subscribers": self.context.broadcaster.subscriber_count,
        }

    def check_stripe_poller(self) -> Dict[str, Any]:
        """
        Check the Stripe poller.

        Raises:
            HealthCheckError: If the poller is enabled and its last poll failed
        """
        poller = self.context.poller
        if not poller.enabled:
            return {"status": "healthy", "service": "stripe_poller", "message": "disabled"}

        if poller.last_error:
            raise HealthCheckError(f"Stripe poll failed: {poller.last_error}")

        return {
            "status": "healthy",
            "service": "stripe_poller",
            "running": poller.running,
            "last_poll_at": poller.last_poll_at.isoformat() if poller.last_poll_at else None,
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health status
        """
        checks = {}
        all_healthy = True

        for name, check in (
            ("processors", self.check_processors),
            ("live_stream", self.check_broadcaster),
            ("stripe_poller", self.check_stripe_poller),
        ):
            try:
                checks[name] = check()
            except HealthCheckError as e:
                logger.error("health_check_failed", check=name, error=str(e))
                checks[name] = {
                    "status": "unhealthy",
                    "service": name,
                    "error": str(e),
                }
                all_healthy = False

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """
        Liveness probe endpoint.

        Simple check that the application is running.

        Returns:
            Dict[str, Any]: Liveness status
        """
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness probe endpoint.

        Returns:
            Dict[str, Any]: Readiness status
        """
        return await self.check_all()
