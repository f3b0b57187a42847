"""
Unit tests for the Stripe charge poller.

``stripe.Charge.list`` is mocked with SDK objects; no network access is needed.
"""
from typing import Any, Dict, List

import pytest
import stripe

from payment_aggregator.config import Settings
from payment_aggregator.context import AggregatorContext, build_context
from payment_aggregator.core.models import Outcome, ProcessorId

API_KEY = "sk_test_fake_key_for_testing"


def charge(charge_id: str, status: str = "succeeded", paid: bool = True) -> Dict[str, Any]:
    return {
        "id": charge_id,
        "object": "charge",
        "amount": 1000,
        "currency": "usd",
        "status": status,
        "paid": paid,
        "created": 1736170200,
    }


def charge_page(*charges: Dict[str, Any]) -> stripe.ListObject:
    """Charge listing as the SDK returns it; the dicts become Charge objects."""
    return stripe.ListObject.construct_from(
        {"object": "list", "url": "/v1/charges", "has_more": False, "data": list(charges)},
        API_KEY,
    )


@pytest.fixture
def polling_settings(test_settings: Settings) -> Settings:
    return test_settings.model_copy(update={"stripe_secret_key": API_KEY})


@pytest.fixture
def polling_context(polling_settings: Settings) -> AggregatorContext:
    return build_context(polling_settings)


class TestStripeChargePoller:
    """Test polling, de-duplication and failure handling."""

    @pytest.mark.unit
    def test_disabled_without_secret_key(self, context: AggregatorContext) -> None:
        assert context.poller.enabled is False
        context.poller.start()
        assert context.poller.running is False

    @pytest.mark.unit
    def test_fetch_returns_plain_dicts(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        page = charge_page(charge("ch_1"))
        assert isinstance(page.data[0], stripe.Charge)
        list_charges = mocker.patch.object(stripe.Charge, "list", return_value=page)

        charges = polling_context.poller._fetch_charges()

        list_charges.assert_called_once_with(limit=100)
        assert isinstance(charges[0], dict)
        assert charges[0]["id"] == "ch_1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publishes_new_charges_oldest_first(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        # Stripe lists newest first
        mocker.patch.object(
            stripe.Charge, "list", return_value=charge_page(charge("ch_2"), charge("ch_1"))
        )

        published = await polling_context.poller.poll_once()

        assert published == 2
        stored = polling_context.store.transactions(ProcessorId.STRIPE)
        assert [tx.tx_id for tx in stored] == ["ch_1", "ch_2"]
        assert polling_context.poller.last_poll_at is not None
        assert polling_context.poller.last_error is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unchanged_charges_not_republished(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        pages: List[stripe.ListObject] = [
            charge_page(charge("ch_1", status="pending", paid=False)),
            charge_page(charge("ch_1", status="pending", paid=False)),
            charge_page(charge("ch_1")),
        ]
        mocker.patch.object(stripe.Charge, "list", side_effect=pages)

        assert await polling_context.poller.poll_once() == 1
        assert await polling_context.poller.poll_once() == 0
        assert await polling_context.poller.poll_once() == 1

        stored = polling_context.store.transactions(ProcessorId.STRIPE)
        assert len(stored) == 1
        assert stored[0].outcome is Outcome.SUCCESS

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remembers_only_latest_page(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        mocker.patch.object(
            stripe.Charge,
            "list",
            side_effect=[charge_page(charge("ch_1"), charge("ch_2")), charge_page(charge("ch_3"))],
        )

        await polling_context.poller.poll_once()
        await polling_context.poller.poll_once()

        assert set(polling_context.poller._seen) == {"ch_3"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_failure_recorded(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        mocker.patch.object(
            polling_context.poller,
            "_fetch_charges",
            side_effect=stripe.AuthenticationError("invalid api key"),
        )

        assert await polling_context.poller.poll_once() == 0
        assert "invalid api key" in polling_context.poller.last_error
        assert len(polling_context.store) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_publish_failure_recorded(
        self, polling_context: AggregatorContext, mocker: Any
    ) -> None:
        mocker.patch.object(stripe.Charge, "list", return_value=charge_page(charge("ch_1")))
        mocker.patch(
            "payment_aggregator.integrations.stripe_poller.normalize_stripe_charge",
            side_effect=RuntimeError("bad charge"),
        )

        assert await polling_context.poller.poll_once() == 0
        assert polling_context.poller.last_error == "bad charge"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_start_and_stop(self, polling_context: AggregatorContext, mocker: Any) -> None:
        mocker.patch.object(stripe.Charge, "list", return_value=charge_page())

        polling_context.poller.start()
        assert polling_context.poller.running is True

        await polling_context.poller.stop()
        assert polling_context.poller.running is False
