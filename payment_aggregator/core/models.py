"""
Canonical transaction model shared by every processor integration.

Every normalizer produces a ``Transaction``; the store, the analytics engine and
the live broadcaster only ever see this shape. Wire names are camelCase
(``txId``, ``processorId``, ``occurredAt``...) and are emitted verbatim to
subscribers and API clients.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class ProcessorId(str, Enum):
    """Payment processors that deliver webhooks."""

    STRIPE = "stripe"
    BLUEFIN = "bluefin"
    WORLDPAY_INTEGRATED = "worldpay_integrated"
    GRAVITY = "gravity"
    COVETRUS = "covetrus"


class Outcome(str, Enum):
    """Canonical settlement classification."""

    SUCCESS = "success"
    PROCESSING = "processing"
    DECLINED = "declined"


DEFAULT_CURRENCY = "USD"
DEFAULT_VENDOR_CODE = "N/A"

# Largest amount (major units) a transaction may carry; keeps sums exact and
# the float wire value finite.
MAX_AMOUNT = Decimal("1e15")


class Transaction(BaseModel):
    """
    Immutable, processor-agnostic transaction record.

    All fields are mandatory: normalizers resolve missing upstream data to
    defaults before construction, never to ``None``.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    tx_id: str = Field(..., min_length=1, description="Processor-assigned identifier")
    processor_id: ProcessorId = Field(..., description="Originating processor")
    amount: Decimal = Field(
        ..., ge=0, le=MAX_AMOUNT, description="Amount in major currency units"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY, pattern=r"^[A-Z]{3}$", description="ISO-4217 style code"
    )
    outcome: Outcome = Field(..., description="Canonical outcome")
    occurred_at: datetime = Field(..., description="When the payment event happened")
    vendor_code: str = Field(
        default=DEFAULT_VENDOR_CODE, description="Merchant, customer or source identifier"
    )

    @field_validator("occurred_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Store timestamps as timezone-aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    def to_wire(self) -> dict:
        """Canonical JSON-compatible representation with camelCase names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_wire_json(self) -> str:
        """Canonical JSON text, as pushed to live subscribers."""
        return self.model_dump_json(by_alias=True)


class NotApplicable:
    """Marker returned for events that are outside transaction tracking."""

    _instance: NotApplicable | None = None

    def __new__(cls) -> NotApplicable:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = NotApplicable()
