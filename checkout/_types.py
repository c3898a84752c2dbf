"""
Core types for checkout.

Re-exports from kungfu + identifiers and money helpers shared by every module.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Remote[T, E] = LazyCoroResult[T, E]
"""Lazy remote call that may fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class UserId:
    value: str


@dataclass(frozen=True, slots=True)
class ProductId:
    value: str


@dataclass(frozen=True, slots=True)
class LineId:
    value: str


@dataclass(frozen=True, slots=True)
class OrderId:
    value: str


@dataclass(frozen=True, slots=True)
class AddressId:
    value: str


@dataclass(frozen=True, slots=True)
class PaymentMethodId:
    value: str


@dataclass(frozen=True, slots=True)
class CouponId:
    value: str


# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce to Decimal. Floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(amount: Decimal) -> Decimal:
    """Round to two places using banker's rounding."""
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)


def format_money(amount: Decimal, symbol: str = "₹") -> str:
    return f"{symbol}{round_money(amount):,.2f}"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "Remote",
    # Identity
    "UserId",
    "ProductId",
    "LineId",
    "OrderId",
    "AddressId",
    "PaymentMethodId",
    "CouponId",
    # Money
    "ZERO",
    "CENT",
    "to_money",
    "round_money",
    "format_money",
)
