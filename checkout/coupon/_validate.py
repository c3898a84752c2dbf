"""
Coupon validation.

Existence, expiry, usage limit and per-user one-time use are decided by
the coupon authority in a single server-side call: usage counters are
shared across clients. Only the minimum-purchase rule is checked here,
since it depends on the live cart.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Protocol

from kungfu import Result, Ok, Error

from checkout import lift as L
from checkout._errors import NetworkError, Section
from checkout._types import UserId, format_money, to_money
from checkout.coupon._types import (
    AppliedCoupon,
    BelowMinimumPurchase,
    CouponError,
    CouponRecord,
    CouponVerdict,
    DiscountKind,
    EmptyCode,
    Invalid,
)

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


class CouponAuthority(Protocol):
    async def validate_coupon_for_user(self, code: str, user_id: UserId) -> CouponVerdict:
        """Atomically check expiry, usage limit and per-user use for a code."""
        ...


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _parse_discount(raw: Decimal | int | float | str) -> Decimal | None:
    if isinstance(raw, str):
        found = _NUMBER.search(raw.replace(",", ""))
        return Decimal(found.group()) if found else None
    try:
        return to_money(raw)
    except InvalidOperation:
        return None


def _plain(value: Decimal) -> str:
    return f"{value.normalize():f}"


def normalize_discount(
    record: CouponRecord,
    currency_symbol: str = "₹",
) -> Result[tuple[DiscountKind, Decimal, str], Invalid]:
    """
    Canonical (kind, value, display) for a stored discount.

    Stored discounts may be numbers or strings like "10%" / "₹50"; a
    missing kind means percent.
    """
    kind = record.kind or DiscountKind.PERCENT
    value = _parse_discount(record.discount)
    if value is None or value <= 0:
        return Error(Invalid(f"Coupon {record.code} has no usable discount"))

    match kind:
        case DiscountKind.PERCENT:
            if value > 100:
                return Error(Invalid(f"Coupon {record.code} has no usable discount"))
            display = f"{_plain(value)}% off"
        case DiscountKind.FIXED:
            display = f"{currency_symbol}{_plain(value)} off"
    return Ok((kind, value, display))


# ═══════════════════════════════════════════════════════════════════════════════
# CouponValidator
# ═══════════════════════════════════════════════════════════════════════════════


class CouponValidator:
    """
    Holds the applied coupon for one user session.

    Example:
        coupons = CouponValidator(authority, user_id)
        match await coupons.apply_coupon(" save10 ", totals.subtotal):
            case Ok(applied):
                ...
            case Error(BelowMinimumPurchase(shortfall=short)):
                ...
    """

    def __init__(
        self,
        authority: CouponAuthority,
        user_id: UserId,
        *,
        currency_symbol: str = "₹",
    ) -> None:
        self._authority = authority
        self._user_id = user_id
        self._currency_symbol = currency_symbol
        self._applied: AppliedCoupon | None = None

    @property
    def applied(self) -> AppliedCoupon | None:
        return self._applied

    async def apply_coupon(
        self,
        code: str,
        current_subtotal: Decimal,
    ) -> Result[AppliedCoupon, CouponError | NetworkError]:
        """Validate from scratch and, on success, make it the applied coupon."""
        result = await self._check(code, current_subtotal)
        match result:
            case Ok(applied):
                self._applied = applied
                logger.info("Coupon %s applied (%s)", applied.code, applied.display)
            case Error(error):
                logger.info("Coupon %r rejected: %s", code, error.message)
        return result

    def remove_coupon(self) -> None:
        self._applied = None

    async def revalidate(
        self,
        current_subtotal: Decimal,
    ) -> Result[AppliedCoupon | None, CouponError | NetworkError]:
        """
        Re-run the remote check and minimum-purchase rule after a subtotal change.

        A coupon that no longer passes is removed and the error returned.
        """
        applied = self._applied
        if applied is None or applied.validated_subtotal == current_subtotal:
            return Ok(applied)

        result = await self._check(applied.code, current_subtotal)
        match result:
            case Ok(fresh):
                self._applied = fresh
                return Ok(fresh)
            case Error(error):
                self._applied = None
                logger.info("Coupon %s removed after cart change: %s", applied.code, error.message)
                return Error(error)

    async def _check(
        self,
        code: str,
        current_subtotal: Decimal,
    ) -> Result[AppliedCoupon, CouponError | NetworkError]:
        normalized = normalize_code(code)
        if not normalized:
            return Error(EmptyCode())

        verdict_result = await L.remote(
            lambda: self._authority.validate_coupon_for_user(normalized, self._user_id),
            Section.COUPON,
        )
        match verdict_result:
            case Error(network):
                return Error(network)
            case Ok(verdict):
                pass

        if not verdict.valid or verdict.coupon is None:
            return Error(Invalid(verdict.reason or "Invalid coupon code"))
        record = verdict.coupon

        minimum = record.min_purchase_amount
        if minimum is not None and current_subtotal < minimum:
            return Error(BelowMinimumPurchase(
                minimum=minimum,
                shortfall=minimum - current_subtotal,
                currency_symbol=self._currency_symbol,
            ))

        match normalize_discount(record, self._currency_symbol):
            case Error(invalid):
                return Error(invalid)
            case Ok((kind, value, display)):
                return Ok(AppliedCoupon(
                    coupon_id=record.id,
                    code=normalize_code(record.code),
                    kind=kind,
                    value=value,
                    display=display,
                    min_purchase_amount=minimum,
                    max_discount_amount=record.max_discount_amount,
                    validated_subtotal=current_subtotal,
                ))


def describe_minimum(applied: AppliedCoupon, currency_symbol: str = "₹") -> str | None:
    """Short "Minimum purchase of ₹500 required" line, if the coupon has one."""
    if applied.min_purchase_amount is None:
        return None
    return f"Minimum purchase of {format_money(applied.min_purchase_amount, currency_symbol)} required"


__all__ = (
    "CouponAuthority",
    "normalize_code",
    "normalize_discount",
    "CouponValidator",
    "describe_minimum",
)
