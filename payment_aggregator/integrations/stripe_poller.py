"""
Stripe charge poller.

Pulls recent charges from the Stripe API and feeds new or changed ones through
the same normalization and fan-out as webhooks. Runs only when a Stripe secret
key is configured.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import stripe
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings
from ..core.ingestion import IngestionEngine
from ..core.models import Outcome
from ..core.normalizers import normalize_stripe_charge
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

CHARGE_PAGE_SIZE = 100

TRANSIENT_STRIPE_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
)


class StripeChargePoller:
    """
    Periodically lists Stripe charges and publishes the ones not seen before.

    A charge is published again when its outcome changes between polls
    (e.g. pending -> succeeded); the store replaces it by id.
    """

    def __init__(self, engine: IngestionEngine, settings: Settings):
        """
        Initialize the poller.

        Args:
            engine: Ingestion engine used for fan-out
            settings: Application settings (API key and interval)
        """
        self.engine = engine
        self.settings = settings
        self.interval_seconds = settings.stripe_poll_interval_seconds
        self._seen: Dict[str, Outcome] = {}
        self._task: Optional[asyncio.Task] = None
        self.last_poll_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

        if self.enabled:
            stripe.api_key = settings.stripe_secret_key
            stripe.api_version = settings.stripe_api_version
            logger.info(
                "stripe_poller_initialized",
                api_version=settings.stripe_api_version,
                interval_seconds=self.interval_seconds,
            )
        else:
            logger.warning(
                "stripe_poller_disabled",
                reason="STRIPE_SECRET_KEY not configured",
            )

    @property
    def enabled(self) -> bool:
        return self.settings.stripe_polling_enabled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @retry(
        retry=retry_if_exception_type(TRANSIENT_STRIPE_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def _fetch_charges(self) -> List[Dict[str, Any]]:
        """List the most recent charges as plain dicts, newest first (blocking SDK call)."""
        response = stripe.Charge.list(limit=CHARGE_PAGE_SIZE)
        return [charge.to_dict() for charge in response.data]

    def _record_failure(self, error: Exception) -> None:
        self.last_error = str(error)
        logger.error("stripe_poll_failed", error=str(error), error_type=type(error).__name__)
        metrics.record_stripe_poll("failed")

    async def poll_once(self) -> int:
        """
        Run a single poll.

        Only the charges of the latest page are remembered; a charge that drops
        off the page is never listed again.

        Returns:
            int: Number of transactions published
        """
        try:
            charges = await asyncio.to_thread(self._fetch_charges)
        except Exception as e:
            self._record_failure(e)
            return 0

        received_at = datetime.now(timezone.utc)
        published = 0
        current: Dict[str, Outcome] = {}

        try:
            # Oldest first so the store keeps arrival order
            for charge in reversed(charges):
                transaction = normalize_stripe_charge(charge, received_at)
                current[transaction.tx_id] = transaction.outcome
                if self._seen.get(transaction.tx_id) is transaction.outcome:
                    continue
                self.engine.publish(transaction)
                published += 1
        except Exception as e:
            self._seen = current
            self._record_failure(e)
            return published

        self._seen = current
        self.last_poll_at = received_at
        self.last_error = None
        metrics.record_stripe_poll("success", published)

        if published:
            logger.info("stripe_poll_new_transactions", count=published)
        return published

    async def _run(self) -> None:
        logger.info("stripe_poller_started", interval_seconds=self.interval_seconds)
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start polling in the background (no-op when disabled)."""
        if not self.enabled or self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("stripe_poller_stopped")
