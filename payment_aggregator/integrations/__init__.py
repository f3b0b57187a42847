"""Integrations with subscribers and external payment APIs."""
from .broadcaster import LiveBroadcaster, WebSocketConnection
from .stripe_poller import StripeChargePoller

__all__ = ["LiveBroadcaster", "StripeChargePoller", "WebSocketConnection"]
