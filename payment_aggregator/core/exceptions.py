"""Errors raised by the ingestion pipeline."""


class IngestionError(Exception):
    """Base class for webhooks that must not be stored or broadcast."""

    def __init__(self, message: str, processor_id: str | None = None):
        super().__init__(message)
        self.processor_id = processor_id


class AuthenticationError(IngestionError):
    """Raised when a webhook signature is missing or does not match."""

    pass


class MalformedPayloadError(IngestionError):
    """Raised when a webhook body cannot be decoded into a JSON object."""

    pass


class UnknownProcessorError(IngestionError):
    """Raised when a webhook names a processor that is not registered."""

    pass
