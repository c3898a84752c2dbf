"""Tests for coupon validation against the coupon authority."""

from datetime import timedelta
from decimal import Decimal

import pytest

from checkout._errors import NetworkError, Section
from checkout._types import CouponId
from checkout.coupon import (
    AppliedCoupon,
    BelowMinimumPurchase,
    CouponValidator,
    DiscountKind,
    EmptyCode,
    Invalid,
    describe_minimum,
    normalize_discount,
)


@pytest.fixture
def coupons(backend, user_id):
    return CouponValidator(backend, user_id)


class TestApplyCoupon:
    async def test_below_minimum_purchase_reports_shortfall(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("BIG50", min_purchase_amount=Decimal("500")))

        result = await coupons.apply_coupon("BIG50", Decimal("350"))

        error = result.unwrap_err()
        assert isinstance(error, BelowMinimumPurchase)
        assert error.shortfall == Decimal("150")
        assert error.minimum == Decimal("500")
        assert error.message == (
            "This coupon requires a minimum purchase of ₹500.00. Add ₹150.00 more to your cart."
        )
        assert error.section is Section.COUPON
        assert coupons.applied is None

    async def test_empty_code_never_reaches_the_server(self, backend, coupons):
        result = await coupons.apply_coupon("   ", Decimal("100"))

        assert isinstance(result.unwrap_err(), EmptyCode)
        assert backend.calls == []

    async def test_code_is_trimmed_and_uppercased(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("SAVE10"))

        applied = (await coupons.apply_coupon("  save10 ", Decimal("200"))).unwrap()

        assert applied.code == "SAVE10"
        assert applied.kind is DiscountKind.PERCENT
        assert applied.value == Decimal("10")
        assert applied.display == "10% off"
        assert coupons.applied == applied

    async def test_unknown_code_is_invalid(self, coupons):
        error = (await coupons.apply_coupon("NOPE", Decimal("200"))).unwrap_err()

        assert error == Invalid("Invalid coupon code")

    async def test_expired_coupon_carries_server_reason(self, backend, coupons, make_coupon, now):
        backend.add_coupon(make_coupon("OLD", valid_until=now - timedelta(seconds=1)))

        error = (await coupons.apply_coupon("OLD", Decimal("200"))).unwrap_err()

        assert error == Invalid("This coupon has expired")

    async def test_usage_limit_reached(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("LIMITED", usage_limit=5, used_count=5))

        error = (await coupons.apply_coupon("LIMITED", Decimal("200"))).unwrap_err()

        assert error == Invalid("This coupon has reached its usage limit")

    async def test_network_failure_is_classified_as_coupon(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon())
        backend.fail_next("validate_coupon_for_user", ConnectionError("connection reset"))

        error = (await coupons.apply_coupon("SAVE10", Decimal("200"))).unwrap_err()

        assert isinstance(error, NetworkError)
        assert error.section is Section.COUPON

    async def test_remove_then_reapply_is_idempotent(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("FLAT50", "₹50", DiscountKind.FIXED, min_purchase_amount=Decimal("100")))

        first = (await coupons.apply_coupon("FLAT50", Decimal("250"))).unwrap()
        coupons.remove_coupon()
        assert coupons.applied is None
        second = (await coupons.apply_coupon("FLAT50", Decimal("250"))).unwrap()

        assert first == second


class TestRevalidate:
    async def test_drops_coupon_once_below_minimum(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("BIG50", min_purchase_amount=Decimal("500")))
        await coupons.apply_coupon("BIG50", Decimal("600"))

        result = await coupons.revalidate(Decimal("450"))

        assert isinstance(result.unwrap_err(), BelowMinimumPurchase)
        assert coupons.applied is None

    async def test_keeps_coupon_when_still_eligible(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon("BIG50", min_purchase_amount=Decimal("500")))
        await coupons.apply_coupon("BIG50", Decimal("600"))

        result = await coupons.revalidate(Decimal("550"))

        assert result.unwrap() == coupons.applied
        assert coupons.applied.validated_subtotal == Decimal("550")

    async def test_unchanged_subtotal_skips_the_server(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon())
        await coupons.apply_coupon("SAVE10", Decimal("200"))
        calls = len(backend.calls)

        await coupons.revalidate(Decimal("200"))

        assert len(backend.calls) == calls

    async def test_nothing_applied_is_a_no_op(self, coupons):
        assert (await coupons.revalidate(Decimal("10"))).unwrap() is None

    async def test_network_failure_drops_coupon(self, backend, coupons, make_coupon):
        backend.add_coupon(make_coupon())
        await coupons.apply_coupon("SAVE10", Decimal("200"))
        backend.fail_next("validate_coupon_for_user")

        result = await coupons.revalidate(Decimal("150"))

        assert isinstance(result.unwrap_err(), NetworkError)
        assert coupons.applied is None


class TestNormalizeDiscount:
    @pytest.mark.parametrize("raw,kind,value,display", [
        ("10%", None, Decimal("10"), "10% off"),
        ("12.5", DiscountKind.PERCENT, Decimal("12.5"), "12.5% off"),
        (Decimal("15"), DiscountKind.PERCENT, Decimal("15"), "15% off"),
        ("₹50", DiscountKind.FIXED, Decimal("50"), "₹50 off"),
        ("₹1,000", DiscountKind.FIXED, Decimal("1000"), "₹1000 off"),
    ])
    def test_stored_forms(self, make_coupon, raw, kind, value, display):
        record = make_coupon("X", raw, kind)

        assert normalize_discount(record).unwrap() == (kind or DiscountKind.PERCENT, value, display)

    @pytest.mark.parametrize("raw,kind", [
        ("free", DiscountKind.FIXED),
        ("0", DiscountKind.FIXED),
        ("150%", DiscountKind.PERCENT),
        ("-10%", DiscountKind.PERCENT),
        ("₹-50", DiscountKind.FIXED),
    ])
    def test_unusable_discounts(self, make_coupon, raw, kind):
        assert isinstance(normalize_discount(make_coupon("X", raw, kind)).unwrap_err(), Invalid)


def test_describe_minimum():
    applied = AppliedCoupon(
        coupon_id=CouponId("c"),
        code="BIG50",
        kind=DiscountKind.PERCENT,
        value=Decimal("5"),
        display="5% off",
        min_purchase_amount=Decimal("500"),
    )

    assert describe_minimum(applied) == "Minimum purchase of ₹500.00 required"
    assert describe_minimum(AppliedCoupon(CouponId("c"), "A", DiscountKind.FIXED, Decimal("1"), "₹1 off")) is None
