"""HTTP and WebSocket surface of the payment aggregator."""
from .main import create_app

__all__ = ["create_app"]
