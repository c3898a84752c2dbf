"""
Coupon — validation against the coupon authority.

    from checkout import coupon as Cp

    coupons = Cp.CouponValidator(authority, user_id)
    result = await coupons.apply_coupon("SAVE10", totals.subtotal)
"""

from checkout.coupon._types import (
    DiscountKind,
    CouponRecord,
    CouponVerdict,
    AppliedCoupon,
    EmptyCode,
    Invalid,
    BelowMinimumPurchase,
    CouponError,
)
from checkout.coupon._validate import (
    CouponAuthority,
    normalize_code,
    normalize_discount,
    CouponValidator,
    describe_minimum,
)

__all__ = (
    "DiscountKind",
    "CouponRecord",
    "CouponVerdict",
    "AppliedCoupon",
    "EmptyCode",
    "Invalid",
    "BelowMinimumPurchase",
    "CouponError",
    "CouponAuthority",
    "normalize_code",
    "normalize_discount",
    "CouponValidator",
    "describe_minimum",
)
