"""
Pricing — subtotal, discount and discounted subtotal.

Pure and synchronous. Recompute on every cart or coupon change; nothing
here is cached.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from checkout._types import ZERO
from checkout.cart._types import CartLine
from checkout.coupon._types import AppliedCoupon, DiscountKind


@dataclass(frozen=True, slots=True)
class CartTotals:
    subtotal: Decimal
    discount_amount: Decimal
    discounted_subtotal: Decimal
    item_count: int


def subtotal_of(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), ZERO)


def discount_for(coupon: AppliedCoupon | None, subtotal: Decimal) -> Decimal:
    """
    Discount a coupon grants on a subtotal.

    Fixed discounts are capped at the subtotal, percent discounts are a share
    of it. max_discount_amount caps either kind.
    """
    if coupon is None or subtotal <= 0:
        return ZERO

    match coupon.kind:
        case DiscountKind.FIXED:
            discount = min(coupon.value, subtotal)
        case DiscountKind.PERCENT:
            discount = subtotal * coupon.value / 100

    if coupon.max_discount_amount is not None:
        discount = min(discount, coupon.max_discount_amount)
    return max(ZERO, min(discount, subtotal))


def compute_totals(
    lines: Iterable[CartLine],
    coupon: AppliedCoupon | None = None,
) -> CartTotals:
    """
    Totals for a cart snapshot.

    Example:
        totals = compute_totals(cart.lines, session.coupon)
        totals.discounted_subtotal
    """
    snapshot = tuple(lines)
    subtotal = subtotal_of(snapshot)
    discount = discount_for(coupon, subtotal)
    return CartTotals(
        subtotal=subtotal,
        discount_amount=discount,
        discounted_subtotal=max(ZERO, subtotal - discount),
        item_count=sum(line.quantity for line in snapshot),
    )


__all__ = ("CartTotals", "subtotal_of", "discount_for", "compute_totals")
