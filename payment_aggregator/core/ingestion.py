"""
Webhook ingestion: signature verification, decoding, normalization, fan-out.

Implements:
- Per-processor signature verification with an explicit bypass when no secret
  is configured
- JSON decoding of the raw body
- Normalization into canonical transactions
- Synchronous fan-out to listeners registered at startup
"""
import json
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

import structlog

from ..monitoring.metrics import metrics
from .exceptions import AuthenticationError, MalformedPayloadError, UnknownProcessorError
from .models import NOT_APPLICABLE, NotApplicable, Transaction
from .registry import ProcessorConfig, ProcessorRegistry, resolve_processor
from .signatures import verify_signature

logger = structlog.get_logger(__name__)

Listener = Callable[[Transaction], Any]
IngestResult = Union[Transaction, NotApplicable]


class IngestionEngine:
    """
    Turns raw processor webhooks into canonical transactions.

    Listeners receive every accepted transaction synchronously and in
    registration order. They must hand any slow work off to their own
    asynchronous delivery.
    """

    def __init__(
        self,
        registry: ProcessorRegistry,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize the ingestion engine.

        Args:
            registry: Processor registry built at startup
            clock: Source of ingestion timestamps
        """
        self.registry = registry
        self.clock = clock
        self._listeners: List[Listener] = []
        self._dispatching = False

        for config in registry.values():
            metrics.set_verification_bypassed(
                config.processor_id.value, not config.verification_enabled
            )
            if not config.verification_enabled:
                logger.warning(
                    "webhook_signature_verification_disabled",
                    processor=config.processor_id.value,
                    reason="no webhook secret configured",
                )

        logger.info(
            "ingestion_engine_initialized",
            processors=[p.value for p in registry],
        )

    def register_listener(self, listener: Listener) -> None:
        """
        Register a listener for accepted transactions.

        Only allowed during startup, before the first transaction is dispatched.

        Args:
            listener: Callable invoked with each new Transaction

        Raises:
            RuntimeError: If transactions have already been dispatched
        """
        if self._dispatching:
            raise RuntimeError("Listeners must be registered before ingestion starts")
        self._listeners.append(listener)
        logger.info(
            "ingestion_listener_registered",
            listener=getattr(listener, "__qualname__", repr(listener)),
            position=len(self._listeners),
        )

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _resolve(self, processor_id: str) -> ProcessorConfig:
        config = resolve_processor(self.registry, str(getattr(processor_id, "value", processor_id)))
        if config is None:
            raise UnknownProcessorError(f"Unknown payment processor: {processor_id}")
        return config

    def verify(self, config: ProcessorConfig, payload: bytes, signature: Optional[str]) -> None:
        """
        Verify a webhook signature for a processor.

        Raises:
            AuthenticationError: If the signature is missing or does not match
        """
        processor = config.processor_id.value

        if not config.verification_enabled:
            logger.warning(
                "webhook_signature_verification_skipped",
                processor=processor,
            )
            return

        if not verify_signature(
            config.signature_scheme, payload, signature, config.webhook_secret
        ):
            logger.warning(
                "webhook_signature_invalid",
                processor=processor,
                signature_present=bool(signature),
            )
            raise AuthenticationError(
                f"Invalid {config.display_name} webhook signature", processor
            )

    @staticmethod
    def parse(config: ProcessorConfig, payload: bytes) -> dict:
        """
        Decode a raw webhook body into a JSON object.

        Raises:
            MalformedPayloadError: If the body is not a JSON object
        """
        processor = config.processor_id.value
        try:
            data = json.loads(payload)
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise MalformedPayloadError(
                f"{config.display_name} webhook body is not valid JSON: {e}", processor
            )

        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"{config.display_name} webhook body must be a JSON object", processor
            )
        return data

    def ingest(
        self,
        processor_id: str,
        payload: bytes,
        signature: Optional[str],
    ) -> IngestResult:
        """
        Ingest a raw webhook.

        Args:
            processor_id: Processor id (or route alias) the webhook came from
            payload: Raw request body, exactly as received
            signature: Value of the processor's signature header, if any

        Returns:
            The accepted Transaction, or NOT_APPLICABLE for untracked events

        Raises:
            UnknownProcessorError: If the processor is not registered
            AuthenticationError: If signature verification fails
            MalformedPayloadError: If the body is not a JSON object
        """
        config = self._resolve(processor_id)
        processor = config.processor_id.value
        start_time = time.perf_counter()

        try:
            self.verify(config, payload, signature)
            data = self.parse(config, payload)
        except AuthenticationError:
            metrics.record_webhook_event(
                processor, "auth_failed", time.perf_counter() - start_time
            )
            raise
        except MalformedPayloadError as e:
            logger.warning("webhook_payload_malformed", processor=processor, error=str(e))
            metrics.record_webhook_event(
                processor, "malformed", time.perf_counter() - start_time
            )
            raise

        result = config.normalizer(data, self.clock())

        if isinstance(result, NotApplicable):
            logger.info(
                "webhook_event_not_tracked",
                processor=processor,
                event_type=data.get("type"),
            )
            metrics.record_webhook_event(
                processor, "not_applicable", time.perf_counter() - start_time
            )
            return NOT_APPLICABLE

        self.publish(result)

        metrics.record_webhook_event(processor, "accepted", time.perf_counter() - start_time)
        logger.info(
            "webhook_ingested",
            processor=processor,
            tx_id=result.tx_id,
            outcome=result.outcome.value,
            amount=str(result.amount),
            currency=result.currency,
        )
        return result

    def publish(self, transaction: Transaction) -> None:
        """
        Hand a transaction to every listener in registration order.

        Also used by collaborators that produce already-normalized
        transactions, such as the Stripe poller.
        """
        self._dispatching = True
        metrics.record_transaction(transaction.processor_id.value, transaction.outcome.value)

        for listener in self._listeners:
            try:
                listener(transaction)
            except Exception as e:
                logger.error(
                    "ingestion_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    tx_id=transaction.tx_id,
                    processor=transaction.processor_id.value,
                    error=str(e),
                )
                raise
