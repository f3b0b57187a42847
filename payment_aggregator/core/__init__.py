"""Core ingestion pipeline: normalization, verification, storage and analytics."""
from .exceptions import (
    AuthenticationError,
    IngestionError,
    MalformedPayloadError,
    UnknownProcessorError,
)
from .models import NOT_APPLICABLE, NotApplicable, Outcome, ProcessorId, Transaction
from .status_mapper import map_status

__all__ = [
    "AuthenticationError",
    "IngestionError",
    "MalformedPayloadError",
    "NOT_APPLICABLE",
    "NotApplicable",
    "Outcome",
    "ProcessorId",
    "Transaction",
    "UnknownProcessorError",
    "map_status",
]
