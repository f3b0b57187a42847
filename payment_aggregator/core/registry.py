"""
Processor registry: the fixed table of supported webhook senders.

Built once from settings at startup and exposed read-only.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..config import Settings
from .models import ProcessorId
from .normalizers import (
    Normalizer,
    normalize_bluefin,
    normalize_covetrus,
    normalize_gravity,
    normalize_stripe,
    normalize_worldpay,
)
from .signatures import SignatureScheme


@dataclass(frozen=True)
class ProcessorConfig:
    """Static integration details for one processor."""

    processor_id: ProcessorId
    display_name: str
    webhook_secret: str
    normalizer: Normalizer
    signature_header: str
    signature_scheme: SignatureScheme
    route_aliases: Tuple[str, ...] = field(default=())

    @property
    def verification_enabled(self) -> bool:
        """False when no secret is configured and signatures are not checked."""
        return bool(self.webhook_secret)


ProcessorRegistry = Mapping[ProcessorId, ProcessorConfig]


def build_registry(settings: Settings) -> ProcessorRegistry:
    """
    Build the processor registry from settings.

    Args:
        settings: Application settings holding the webhook secrets

    Returns:
        ProcessorRegistry: Read-only mapping of processor id to config
    """
    secrets = settings.webhook_secrets
    entries = (
        ProcessorConfig(
            processor_id=ProcessorId.STRIPE,
            display_name="Stripe",
            webhook_secret=secrets[ProcessorId.STRIPE.value],
            normalizer=normalize_stripe,
            signature_header="stripe-signature",
            signature_scheme=SignatureScheme.STRIPE_TIMESTAMPED,
        ),
        ProcessorConfig(
            processor_id=ProcessorId.BLUEFIN,
            display_name="Bluefin",
            webhook_secret=secrets[ProcessorId.BLUEFIN.value],
            normalizer=normalize_bluefin,
            signature_header="x-bluefin-signature",
            signature_scheme=SignatureScheme.HMAC_SHA256_HEX,
        ),
        ProcessorConfig(
            processor_id=ProcessorId.WORLDPAY_INTEGRATED,
            display_name="WorldPay Integrated",
            webhook_secret=secrets[ProcessorId.WORLDPAY_INTEGRATED.value],
            normalizer=normalize_worldpay,
            signature_header="x-worldpay-signature",
            signature_scheme=SignatureScheme.HMAC_SHA256_HEX,
            route_aliases=("worldpay",),
        ),
        ProcessorConfig(
            processor_id=ProcessorId.GRAVITY,
            display_name="Gravity",
            webhook_secret=secrets[ProcessorId.GRAVITY.value],
            normalizer=normalize_gravity,
            signature_header="x-gravity-signature",
            signature_scheme=SignatureScheme.HMAC_SHA256_HEX,
        ),
        ProcessorConfig(
            processor_id=ProcessorId.COVETRUS,
            display_name="Covetrus",
            webhook_secret=secrets[ProcessorId.COVETRUS.value],
            normalizer=normalize_covetrus,
            signature_header="x-covetrus-signature",
            signature_scheme=SignatureScheme.HMAC_SHA256_HEX,
        ),
    )
    return MappingProxyType({entry.processor_id: entry for entry in entries})


def resolve_processor(registry: ProcessorRegistry, name: str) -> Optional[ProcessorConfig]:
    """Find a processor by id or route alias (case-insensitive)."""
    key = name.strip().lower()
    for config in registry.values():
        if key == config.processor_id.value or key in config.route_aliases:
            return config
    return None
