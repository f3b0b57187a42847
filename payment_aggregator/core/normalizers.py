"""
Per-processor mapping of native webhook payloads onto ``Transaction``.

Each normalizer tries a fixed, ordered tuple of candidate field names per
canonical field and falls back to documented defaults, so any JSON object
yields a complete record. Stripe is the only processor with an event envelope;
its untracked event types yield ``NOT_APPLICABLE``.
"""
import hashlib
import json
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .models import (
    DEFAULT_CURRENCY,
    DEFAULT_VENDOR_CODE,
    MAX_AMOUNT,
    NOT_APPLICABLE,
    NotApplicable,
    Outcome,
    ProcessorId,
    Transaction,
)
from .status_mapper import map_status

NormalizeResult = Union[Transaction, NotApplicable]
Normalizer = Callable[[Mapping[str, Any], datetime], NormalizeResult]

MINOR_UNIT_DIVISOR = Decimal(100)

STRIPE_CHARGE_EVENTS = frozenset(
    {"charge.succeeded", "charge.failed", "charge.pending", "charge.updated"}
)
STRIPE_PAYMENT_INTENT_EVENTS = frozenset(
    {
        "payment_intent.succeeded",
        "payment_intent.payment_failed",
        "payment_intent.processing",
        "payment_intent.canceled",
    }
)
STRIPE_PAYMENT_INTENT_PENDING = frozenset(
    {"processing", "requires_action", "requires_confirmation", "requires_capture"}
)


# === Field extraction helpers ===


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Resolve a dotted key such as ``source.id``."""
    value: Any = data
    for part in key.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def first_present(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first candidate value that is neither None nor an empty string."""
    for key in keys:
        value = _lookup(data, key)
        if value is None or value == "":
            continue
        return value
    return None


def parse_amount(value: Any, minor_units: bool = False) -> Decimal:
    """
    Convert a native amount to a non-negative major-unit Decimal.

    Args:
        value: Amount as sent by the processor (number or numeric string)
        minor_units: True if the processor reports cents

    Returns:
        Decimal: Amount in major units, 0 when missing, unusable or above
        ``MAX_AMOUNT``
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, float) and not math.isfinite(value):
        return Decimal(0)

    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or amount < 0:
            return Decimal(0)
        if minor_units:
            amount = amount / MINOR_UNIT_DIVISOR
    except (ArithmeticError, ValueError):
        return Decimal(0)

    if amount > MAX_AMOUNT:
        return Decimal(0)
    return amount


def parse_currency(value: Any) -> str:
    """Uppercase 3-letter currency code, USD when absent or invalid."""
    if not isinstance(value, str):
        return DEFAULT_CURRENCY
    code = value.strip().upper()
    if len(code) == 3 and code.isalpha() and code.isascii():
        return code
    return DEFAULT_CURRENCY


def parse_timestamp(value: Any, received_at: datetime) -> datetime:
    """
    Parse epoch seconds or an ISO-8601 string into an aware UTC datetime.

    Args:
        value: Timestamp field from the payload
        received_at: Ingestion time, used when the value is missing or invalid

    Returns:
        datetime: Parsed timestamp in UTC
    """
    if value is None or isinstance(value, bool):
        return received_at

    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            try:
                value = int(text)
            except ValueError:
                return received_at
        else:
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=timezone.utc)
                return parsed.astimezone(timezone.utc)
            except (OverflowError, ValueError):
                return received_at

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return received_at

    return received_at


def parse_text(value: Any, default: str = DEFAULT_VENDOR_CODE) -> str:
    """Stringify an identifier, falling back to a default."""
    if value is None or value == "":
        return default
    return str(value)


def fallback_tx_id(processor_id: ProcessorId, data: Mapping[str, Any]) -> str:
    """Deterministic identifier for payloads that carry no id of their own."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
    return f"{processor_id.value}_{digest}"


def _tx_id(processor_id: ProcessorId, data: Mapping[str, Any], *keys: str) -> str:
    value = first_present(data, *keys)
    if value is None:
        return fallback_tx_id(processor_id, data)
    return str(value)


# === Stripe ===


def _stripe_charge_outcome(charge: Mapping[str, Any]) -> Outcome:
    status = charge.get("status")
    paid = bool(charge.get("paid"))
    if paid and status == "succeeded":
        return Outcome.SUCCESS
    if status == "pending":
        return Outcome.PROCESSING
    if status == "failed" or not paid:
        return Outcome.DECLINED
    return map_status(status)


def _stripe_payment_intent_outcome(intent: Mapping[str, Any]) -> Outcome:
    status = intent.get("status")
    if status == "succeeded":
        return Outcome.SUCCESS
    if isinstance(status, str) and status in STRIPE_PAYMENT_INTENT_PENDING:
        return Outcome.PROCESSING
    return Outcome.DECLINED


def normalize_stripe_charge(charge: Mapping[str, Any], received_at: datetime) -> Transaction:
    """Map a Stripe Charge object (webhook or API listing) to a Transaction."""
    return Transaction(
        tx_id=_tx_id(ProcessorId.STRIPE, charge, "id"),
        processor_id=ProcessorId.STRIPE,
        amount=parse_amount(charge.get("amount"), minor_units=True),
        currency=parse_currency(charge.get("currency")),
        outcome=_stripe_charge_outcome(charge),
        occurred_at=parse_timestamp(charge.get("created"), received_at),
        vendor_code=parse_text(first_present(charge, "customer", "source.id")),
    )


def normalize_stripe_payment_intent(
    intent: Mapping[str, Any], received_at: datetime
) -> Transaction:
    """Map a Stripe PaymentIntent object to a Transaction."""
    return Transaction(
        tx_id=_tx_id(ProcessorId.STRIPE, intent, "id"),
        processor_id=ProcessorId.STRIPE,
        amount=parse_amount(intent.get("amount"), minor_units=True),
        currency=parse_currency(intent.get("currency")),
        outcome=_stripe_payment_intent_outcome(intent),
        occurred_at=parse_timestamp(intent.get("created"), received_at),
        vendor_code=parse_text(intent.get("customer")),
    )


def normalize_stripe(event: Mapping[str, Any], received_at: datetime) -> NormalizeResult:
    """Route a Stripe event envelope to the charge or payment intent mapping."""
    event_type = event.get("type")
    obj = _lookup(event, "data.object")
    if not isinstance(event_type, str) or not isinstance(obj, Mapping):
        return NOT_APPLICABLE

    if event_type in STRIPE_CHARGE_EVENTS:
        return normalize_stripe_charge(obj, received_at)
    if event_type in STRIPE_PAYMENT_INTENT_EVENTS:
        return normalize_stripe_payment_intent(obj, received_at)
    return NOT_APPLICABLE


# === Bluefin ===


def normalize_bluefin(data: Mapping[str, Any], received_at: datetime) -> Transaction:
    """Bluefin reports major units and a free-form ``status``."""
    return Transaction(
        tx_id=_tx_id(ProcessorId.BLUEFIN, data, "transactionId", "id"),
        processor_id=ProcessorId.BLUEFIN,
        amount=parse_amount(data.get("amount")),
        currency=parse_currency(data.get("currency")),
        outcome=map_status(data.get("status")),
        occurred_at=parse_timestamp(data.get("timestamp"), received_at),
        vendor_code=parse_text(first_present(data, "merchantId", "customerId")),
    )


# === WorldPay Integrated ===


def normalize_worldpay(data: Mapping[str, Any], received_at: datetime) -> Transaction:
    """WorldPay reports amounts in minor units."""
    return Transaction(
        tx_id=_tx_id(ProcessorId.WORLDPAY_INTEGRATED, data, "orderCode", "transactionId", "id"),
        processor_id=ProcessorId.WORLDPAY_INTEGRATED,
        amount=parse_amount(data.get("amount"), minor_units=True),
        currency=parse_currency(data.get("currencyCode")),
        outcome=map_status(first_present(data, "paymentStatus", "status")),
        occurred_at=parse_timestamp(first_present(data, "orderDate", "timestamp"), received_at),
        vendor_code=parse_text(first_present(data, "merchantCode", "customerId")),
    )


# === Gravity ===


def normalize_gravity(data: Mapping[str, Any], received_at: datetime) -> Transaction:
    return Transaction(
        tx_id=_tx_id(ProcessorId.GRAVITY, data, "transaction_id", "id"),
        processor_id=ProcessorId.GRAVITY,
        amount=parse_amount(first_present(data, "total", "amount")),
        currency=parse_currency(data.get("currency")),
        outcome=map_status(first_present(data, "payment_status", "status")),
        occurred_at=parse_timestamp(first_present(data, "created_at", "timestamp"), received_at),
        vendor_code=parse_text(first_present(data, "customer_id", "merchant_id")),
    )


# === Covetrus ===


def normalize_covetrus(data: Mapping[str, Any], received_at: datetime) -> Transaction:
    return Transaction(
        tx_id=_tx_id(ProcessorId.COVETRUS, data, "paymentId", "transactionId", "id"),
        processor_id=ProcessorId.COVETRUS,
        amount=parse_amount(first_present(data, "paymentAmount", "amount")),
        currency=parse_currency(data.get("currency")),
        outcome=map_status(first_present(data, "paymentStatus", "status")),
        occurred_at=parse_timestamp(
            first_present(data, "paymentDate", "timestamp"), received_at
        ),
        vendor_code=parse_text(first_present(data, "clinicId", "customerId")),
    )


NORMALIZERS: Dict[ProcessorId, Normalizer] = {
    ProcessorId.STRIPE: normalize_stripe,
    ProcessorId.BLUEFIN: normalize_bluefin,
    ProcessorId.WORLDPAY_INTEGRATED: normalize_worldpay,
    ProcessorId.GRAVITY: normalize_gravity,
    ProcessorId.COVETRUS: normalize_covetrus,
}


def normalize(
    processor_id: ProcessorId,
    payload: Mapping[str, Any],
    received_at: Optional[datetime] = None,
) -> NormalizeResult:
    """
    Normalize a parsed payload for the given processor.

    Args:
        processor_id: Processor that sent the payload
        payload: Decoded JSON object
        received_at: Ingestion time (defaults to now, UTC)

    Returns:
        Transaction, or NOT_APPLICABLE for untracked event types
    """
    if received_at is None:
        received_at = datetime.now(timezone.utc)
    return NORMALIZERS[ProcessorId(processor_id)](payload, received_at)

