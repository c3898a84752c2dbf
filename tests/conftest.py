import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from checkout import CheckoutConfig, CheckoutSession, UserId
from checkout._types import CouponId
from checkout.coupon import CouponRecord, DiscountKind
from checkout.delivery import DeliverySettings
from checkout.remote import MemoryBackend

NOW = datetime(2026, 3, 2, 11, 0, tzinfo=UTC)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def user_id():
    return UserId("user-1")


@pytest.fixture
def config():
    return CheckoutConfig()


@pytest.fixture
def backend(clock):
    return MemoryBackend(settings=DeliverySettings(base_fee=Decimal("40")), clock=clock)


@pytest.fixture
def session(backend, user_id, config, clock):
    return CheckoutSession(backend, user_id, config=config, clock=clock)


@pytest.fixture
def make_coupon():
    """Factory for coupon records valid for a week from NOW."""

    def _make(
        code="SAVE10",
        discount="10",
        kind=DiscountKind.PERCENT,
        **overrides,
    ) -> CouponRecord:
        return CouponRecord(
            id=CouponId(f"coupon-{code.lower()}"),
            code=code,
            discount=discount,
            kind=kind,
            valid_until=overrides.pop("valid_until", NOW + timedelta(days=7)),
            **overrides,
        )

    return _make


@pytest.fixture
def wait_for_call(backend):
    """Yield to the loop until the backend has seen `operation` `times` times."""

    async def _wait(operation: str, times: int = 1) -> None:
        for _ in range(100):
            if backend.calls.count(operation) >= times:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"{operation} was never called")

    return _wait
