"""
Prometheus metrics for the webhook aggregator.

Tracks:
- Webhooks received and their ingestion result per processor
- Ingestion duration
- Normalized transactions by outcome
- Live subscriber count and broadcast volume
- Signature verification trust mode per processor
- Stripe poller runs and errors
"""
from prometheus_client import Counter, Gauge, Histogram

# Webhook metrics
webhook_events_received_total = Counter(
    "webhook_events_received_total",
    "Total webhook calls received",
    ["processor"],
)

webhook_events_processed_total = Counter(
    "webhook_events_processed_total",
    "Total webhook calls by ingestion result",
    ["processor", "result"],  # accepted, not_applicable, auth_failed, malformed
)

webhook_processing_duration_seconds = Histogram(
    "webhook_processing_duration_seconds",
    "Webhook ingestion duration in seconds",
    ["processor"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)

# Transaction metrics
transactions_normalized_total = Counter(
    "transactions_normalized_total",
    "Total canonical transactions produced",
    ["processor", "outcome"],
)

# Signature trust mode (1 = verification bypassed)
webhook_signature_verification_bypassed = Gauge(
    "webhook_signature_verification_bypassed",
    "Whether webhook signatures are accepted unverified",
    ["processor"],
)

# Live stream metrics
live_subscribers = Gauge(
    "live_subscribers",
    "Number of connected live stream subscribers",
)

broadcast_messages_total = Counter(
    "broadcast_messages_total",
    "Total messages handed to live subscribers",
)

# Stripe poller metrics
stripe_poll_runs_total = Counter(
    "stripe_poll_runs_total",
    "Total Stripe charge polls",
    ["status"],  # success, failed
)

stripe_poll_new_transactions_total = Counter(
    "stripe_poll_new_transactions_total",
    "Total new or changed Stripe charges found by polling",
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_webhook_event(processor: str, result: str, duration_seconds: float) -> None:
        """Record a webhook ingestion attempt."""
        webhook_events_received_total.labels(processor=processor).inc()
        webhook_events_processed_total.labels(processor=processor, result=result).inc()
        webhook_processing_duration_seconds.labels(processor=processor).observe(
            duration_seconds
        )

    @staticmethod
    def record_transaction(processor: str, outcome: str) -> None:
        """Record a normalized transaction."""
        transactions_normalized_total.labels(processor=processor, outcome=outcome).inc()

    @staticmethod
    def set_verification_bypassed(processor: str, bypassed: bool) -> None:
        """Expose the signature trust mode for a processor."""
        webhook_signature_verification_bypassed.labels(processor=processor).set(
            1 if bypassed else 0
        )

    @staticmethod
    def set_live_subscribers(count: int) -> None:
        """Set the live subscriber count."""
        live_subscribers.set(count)

    @staticmethod
    def record_broadcast(deliveries: int) -> None:
        """Record messages handed to subscribers."""
        broadcast_messages_total.inc(deliveries)

    @staticmethod
    def record_stripe_poll(status: str, new_transactions: int = 0) -> None:
        """Record a Stripe poll run."""
        stripe_poll_runs_total.labels(status=status).inc()
        if new_transactions:
            stripe_poll_new_transactions_total.inc(new_transactions)


# Export singleton instance
metrics = MetricsCollector()
