"""Configuration package for the payment aggregator."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
