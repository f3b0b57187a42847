"""
Unit tests for processor status classification.
"""
import pytest

from payment_aggregator.core.models import Outcome
from payment_aggregator.core.status_mapper import map_status


class TestMapStatus:
    """Test keyword-based status mapping."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        ["success", "Approved", "COMPLETED", "paid", "AUTHORISED", "  payment_success  "],
    )
    def test_success_statuses(self, raw: str) -> None:
        assert map_status(raw) is Outcome.SUCCESS

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        ["declined", "FAILED", "Rejected", "cancelled", "processor_error"],
    )
    def test_declined_statuses(self, raw: str) -> None:
        assert map_status(raw) is Outcome.DECLINED

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "   ", "pending", "in_review", "authorized"])
    def test_unknown_statuses_are_processing(self, raw) -> None:
        assert map_status(raw) is Outcome.PROCESSING

    @pytest.mark.unit
    def test_success_wins_over_decline(self) -> None:
        """A status matching both groups resolves to success."""
        assert map_status("paid_after_failed_attempt") is Outcome.SUCCESS

    @pytest.mark.unit
    def test_non_string_status(self) -> None:
        assert map_status(200) is Outcome.PROCESSING
