"""
Application context: the single place where the pipeline is wired together.

Built once at startup and attached to the FastAPI app; nothing here is a
module-level singleton, so tests can build as many independent contexts as
they need.
"""
import random
from dataclasses import dataclass
from typing import Optional

import structlog

from .config import Settings, get_settings
from .core.analytics import AnalyticsEngine
from .core.ingestion import IngestionEngine
from .core.registry import ProcessorRegistry, build_registry
from .core.store import TransactionStore
from .integrations.broadcaster import LiveBroadcaster
from .integrations.stripe_poller import StripeChargePoller

logger = structlog.get_logger(__name__)


@dataclass
class AggregatorContext:
    """Long-lived collaborators shared by the transport layer."""

    settings: Settings
    registry: ProcessorRegistry
    store: TransactionStore
    broadcaster: LiveBroadcaster
    analytics: AnalyticsEngine
    engine: IngestionEngine
    poller: StripeChargePoller


def build_context(
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> AggregatorContext:
    """
    Build and wire the ingestion pipeline.

    The transaction store is registered before the live broadcaster, so a
    transaction is always stored before subscribers see it.

    Args:
        settings: Application settings (cached settings if omitted)
        rng: Random source for the simulated time series

    Returns:
        AggregatorContext: Fully wired context
    """
    settings = settings or get_settings()

    registry = build_registry(settings)
    store = TransactionStore()
    broadcaster = LiveBroadcaster()
    analytics = AnalyticsEngine(
        store,
        base_min=settings.time_series_base_min,
        base_max=settings.time_series_base_max,
        floor=settings.time_series_floor,
        ceiling=settings.time_series_ceiling,
        center_noon=settings.time_series_center_noon,
        rng=rng,
    )

    engine = IngestionEngine(registry)
    engine.register_listener(store.add)
    engine.register_listener(broadcaster.push)

    poller = StripeChargePoller(engine, settings)

    unverified = settings.unverified_processors
    if unverified:
        logger.warning(
            "webhook_trust_mode_active",
            processors=unverified,
            allow_unverified_webhooks=settings.allow_unverified_webhooks,
        )

    logger.info(
        "aggregator_context_built",
        processors=[p.value for p in registry],
        stripe_polling=poller.enabled,
    )

    return AggregatorContext(
        settings=settings,
        registry=registry,
        store=store,
        broadcaster=broadcaster,
        analytics=analytics,
        engine=engine,
        poller=poller,
    )
