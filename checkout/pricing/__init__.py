"""
Pricing — pure cart totals.

    from checkout import pricing as P

    totals = P.compute_totals(lines, applied_coupon)
"""

from checkout.pricing._compute import (
    CartTotals,
    subtotal_of,
    discount_for,
    compute_totals,
)

__all__ = (
    "CartTotals",
    "subtotal_of",
    "discount_for",
    "compute_totals",
)
