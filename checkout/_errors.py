"""
Error taxonomy shared across checkout.

Errors are plain values carried inside Result. They are never raised
across the core boundary; remote exceptions are converted at the call
site (see checkout.lift).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ═══════════════════════════════════════════════════════════════════════════════
# Section — where an error is surfaced
# ═══════════════════════════════════════════════════════════════════════════════


class Section(Enum):
    """
    Checkout screen section an error belongs to.

    Declaration order is the on-screen order; auto-focus goes to the
    earliest section with an error.
    """

    ADDRESS = "address"
    PAYMENT = "payment"
    DELIVERY = "delivery"
    COUPON = "coupon"
    ORDER = "order"


_KEYWORDS: tuple[tuple[tuple[str, ...], Section], ...] = (
    (("address", "delivery"), Section.ADDRESS),
    (("payment", "card"), Section.PAYMENT),
    (("coupon", "discount"), Section.COUPON),
)


def classify(message: str) -> Section:
    """Route a remote error message to the section that caused it."""
    lowered = message.lower()
    for keywords, section in _KEYWORDS:
        if any(word in lowered for word in keywords):
            return section
    return Section.ORDER


# ═══════════════════════════════════════════════════════════════════════════════
# NetworkError — transport / remote failure
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class NetworkError:
    """Remote call failed. `section` is where the UI should show it."""

    message: str
    section: Section = Section.ORDER
    cause: Exception | None = None

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        section: Section | None = None,
    ) -> NetworkError:
        message = str(exc) or type(exc).__name__
        return cls(
            message=message,
            section=section if section is not None else classify(message),
            cause=exc,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ValidationError — field-scoped, blocks submission
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ValidationError:
    section: Section
    message: str


__all__ = (
    "Section",
    "classify",
    "NetworkError",
    "ValidationError",
)
