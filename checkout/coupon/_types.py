"""
Coupon types — remote records, applied snapshot, errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from checkout._errors import Section
from checkout._types import CouponId, ProductId, format_money

# ═══════════════════════════════════════════════════════════════════════════════
# Discount Kind
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountKind(Enum):
    PERCENT = "percent"
    FIXED = "fixed"


# ═══════════════════════════════════════════════════════════════════════════════
# CouponRecord — as held by the coupon authority
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CouponRecord:
    """
    Coupon row as returned by the server-side check.

    discount is the raw stored value: a number, or a display string such
    as "10%" or "₹50". kind is None for legacy rows, which are percent.
    """

    id: CouponId
    code: str
    discount: Decimal | str
    valid_until: datetime
    kind: DiscountKind | None = None
    min_purchase_amount: Decimal | None = None
    max_discount_amount: Decimal | None = None
    usage_limit: int | None = None
    used_count: int = 0
    applicable_product_ids: frozenset[ProductId] | None = None
    applicable_category_ids: frozenset[str] | None = None


@dataclass(frozen=True, slots=True)
class CouponVerdict:
    """Answer of the coupon authority for one (code, user) pair."""

    valid: bool
    reason: str | None = None
    coupon: CouponRecord | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# AppliedCoupon — in-session snapshot after validation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AppliedCoupon:
    coupon_id: CouponId
    code: str
    kind: DiscountKind
    value: Decimal
    display: str
    min_purchase_amount: Decimal | None = None
    max_discount_amount: Decimal | None = None
    validated_subtotal: Decimal = field(default=Decimal("0"), compare=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class EmptyCode:
    section: Section = Section.COUPON

    @property
    def message(self) -> str:
        return "Please enter a coupon code"


@dataclass(frozen=True, slots=True)
class Invalid:
    """Rejected by the coupon authority; reason is the server's text."""

    reason: str
    section: Section = Section.COUPON

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class BelowMinimumPurchase:
    minimum: Decimal
    shortfall: Decimal
    currency_symbol: str = "₹"
    section: Section = Section.COUPON

    @property
    def message(self) -> str:
        return (
            f"This coupon requires a minimum purchase of "
            f"{format_money(self.minimum, self.currency_symbol)}. "
            f"Add {format_money(self.shortfall, self.currency_symbol)} more to your cart."
        )


type CouponError = EmptyCode | Invalid | BelowMinimumPurchase


__all__ = (
    "DiscountKind",
    "CouponRecord",
    "CouponVerdict",
    "AppliedCoupon",
    "EmptyCode",
    "Invalid",
    "BelowMinimumPurchase",
    "CouponError",
)
