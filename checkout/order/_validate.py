"""
Checkout readiness — synchronous, no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from kungfu import Result, Ok, Error

from checkout._errors import Section, ValidationError
from checkout._types import AddressId, PaymentMethodId
from checkout.delivery import DeliveryOption
from checkout.order._types import CheckoutBlocked, CheckoutSelection


def validate_selection(
    selection: CheckoutSelection,
) -> Result[CheckoutSelection, CheckoutBlocked]:
    """
    Check every requirement and report all violations at once.

    Errors come out in on-screen order, so `blocked.first` is where to focus.
    """
    errors: list[ValidationError] = []

    if selection.address_id is None:
        errors.append(ValidationError(Section.ADDRESS, "Please select a delivery address"))

    if not selection.cash_on_delivery and selection.payment_method_id is None:
        errors.append(ValidationError(Section.PAYMENT, "Please select a payment method"))

    if selection.delivery is DeliveryOption.SCHEDULED and selection.time_slot is None:
        errors.append(ValidationError(Section.DELIVERY, "Please select a delivery time slot"))

    if errors:
        return Error(CheckoutBlocked(tuple(errors)))
    return Ok(selection)


# ═══════════════════════════════════════════════════════════════════════════════
# Defaults from saved addresses / payment methods
# ═══════════════════════════════════════════════════════════════════════════════


class Defaultable[T](Protocol):
    @property
    def id(self) -> T: ...

    @property
    def is_default(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class SavedAddress:
    id: AddressId
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class SavedPaymentMethod:
    id: PaymentMethodId
    is_default: bool = False


def _pick[T](records: Iterable[Defaultable[T]]) -> T | None:
    records = list(records)
    for record in records:
        if record.is_default:
            return record.id
    return records[0].id if records else None


def preselect(
    addresses: Iterable[Defaultable[AddressId]],
    payment_methods: Iterable[Defaultable[PaymentMethodId]],
) -> CheckoutSelection:
    """Initial selection: the default address and payment method, else the first."""
    payment_method_id = _pick(payment_methods)
    return CheckoutSelection(
        address_id=_pick(addresses),
        payment_method_id=payment_method_id,
        cash_on_delivery=payment_method_id is None,
    )


__all__ = (
    "validate_selection",
    "Defaultable",
    "SavedAddress",
    "SavedPaymentMethod",
    "preselect",
)
