"""Multi-processor payment webhook aggregator."""

__version__ = "1.0.0"
