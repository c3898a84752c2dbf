"""Tests for delivery fee resolution and delivery time estimates."""

from datetime import UTC, datetime, timedelta, time
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from checkout._errors import Section
from checkout.delivery import (
    TIME_SLOTS,
    DeliveryOption,
    DeliverySettings,
    TimeSlot,
    estimated_delivery,
    fetch_settings,
    resolve_delivery_fee,
)

amounts = st.decimals(min_value=0, max_value=5_000, places=2)


class TestResolveDeliveryFee:
    def test_below_threshold_pays_base_fee(self):
        settings = DeliverySettings(Decimal("40"), free_delivery_enabled=True, free_delivery_threshold=Decimal("500"))

        fee = resolve_delivery_fee(settings, Decimal("400"))

        assert fee.is_free is False
        assert fee.fee == Decimal("40")

    def test_above_threshold_is_free(self):
        settings = DeliverySettings(Decimal("40"), free_delivery_enabled=True, free_delivery_threshold=Decimal("500"))

        fee = resolve_delivery_fee(settings, Decimal("600"))

        assert fee.is_free is True
        assert fee.fee == Decimal("0")

    def test_exactly_at_threshold_is_free(self):
        settings = DeliverySettings(Decimal("40"), free_delivery_enabled=True, free_delivery_threshold=Decimal("500"))

        assert resolve_delivery_fee(settings, Decimal("500")).is_free is True

    def test_disabled_free_delivery_ignores_threshold(self):
        settings = DeliverySettings(Decimal("40"), free_delivery_enabled=False, free_delivery_threshold=Decimal("100"))

        assert resolve_delivery_fee(settings, Decimal("900")).fee == Decimal("40")

    def test_negative_base_fee_rejected(self):
        with pytest.raises(ValueError):
            DeliverySettings(Decimal("-1"))

    @given(amounts, amounts, st.booleans(), st.one_of(st.none(), amounts))
    def test_free_iff_enabled_and_threshold_met(self, subtotal, base_fee, enabled, threshold):
        settings = DeliverySettings(base_fee, enabled, threshold)

        fee = resolve_delivery_fee(settings, subtotal)

        expected_free = enabled and threshold is not None and subtotal >= threshold
        assert fee.is_free == expected_free
        assert fee.fee == (Decimal("0") if expected_free else base_fee)


class _Settings:
    def __init__(self, settings=None, error=None):
        self.settings = settings
        self.error = error

    async def fetch_delivery_settings(self):
        if self.error is not None:
            raise self.error
        return self.settings


class TestFetchSettings:
    async def test_returns_stored_settings(self):
        stored = DeliverySettings(Decimal("25"), True, Decimal("300"))

        result = await fetch_settings(_Settings(stored), Decimal("40"))

        assert result.unwrap() == stored

    async def test_missing_settings_use_default_fee(self):
        result = await fetch_settings(_Settings(None), Decimal("40"))

        assert result.unwrap() == DeliverySettings(base_fee=Decimal("40"))

    async def test_failure_is_a_delivery_network_error(self):
        result = await fetch_settings(_Settings(error=ConnectionError("timed out")), Decimal("40"))

        error = result.unwrap_err()
        assert error.section is Section.DELIVERY
        assert error.message == "timed out"


class TestEstimatedDelivery:
    NOW = datetime(2026, 3, 2, 11, 0, tzinfo=UTC)

    def test_asap_is_minutes_from_now(self):
        assert estimated_delivery(DeliveryOption.ASAP, None, self.NOW) == self.NOW + timedelta(minutes=45)
        assert estimated_delivery(DeliveryOption.ASAP, None, self.NOW, 30) == self.NOW + timedelta(minutes=30)

    def test_today_slot_starts_today(self):
        slot = TIME_SLOTS[0]

        assert estimated_delivery(DeliveryOption.SCHEDULED, slot, self.NOW) == datetime(2026, 3, 2, 14, 0, tzinfo=UTC)

    def test_tomorrow_slot_starts_tomorrow(self):
        slot = TimeSlot("x", "Tomorrow, 10:00 AM - 11:00 AM", "tomorrow", time(10), time(11))

        assert estimated_delivery(DeliveryOption.SCHEDULED, slot, self.NOW) == datetime(2026, 3, 3, 10, 0, tzinfo=UTC)

    def test_scheduled_without_slot_falls_back_to_one_hour(self):
        assert estimated_delivery(DeliveryOption.SCHEDULED, None, self.NOW) == self.NOW + timedelta(hours=1)

    def test_slots_are_unique(self):
        assert len({slot.id for slot in TIME_SLOTS}) == len(TIME_SLOTS) == 6
