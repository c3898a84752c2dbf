"""
Order types — records, checkout selection, attempt state, errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from checkout._errors import NetworkError, Section, ValidationError
from checkout._types import (
    AddressId,
    CouponId,
    OrderId,
    PaymentMethodId,
    ProductId,
    UserId,
)
from checkout.coupon import CouponError
from checkout.delivery import DeliveryOption, TimeSlot

# ═══════════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Order row as written; amounts already rounded for storage."""

    user_id: UserId
    delivery_address_id: AddressId
    payment_method_id: PaymentMethodId | None
    is_cash_on_delivery: bool
    subtotal: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    applied_coupon_id: CouponId | None
    estimated_delivery: datetime
    status: OrderStatus = OrderStatus.PENDING


@dataclass(frozen=True, slots=True)
class Order:
    id: OrderId
    user_id: UserId
    delivery_address_id: AddressId
    payment_method_id: PaymentMethodId | None
    is_cash_on_delivery: bool
    status: OrderStatus
    subtotal: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    applied_coupon_id: CouponId | None
    estimated_delivery: datetime
    created_at: datetime


@dataclass(frozen=True, slots=True)
class OrderItem:
    order_id: OrderId
    product_id: ProductId
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class OrderWithItems:
    order: Order
    items: tuple[OrderItem, ...]


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout selection — what the user picked on the checkout screen
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutSelection:
    address_id: AddressId | None = None
    payment_method_id: PaymentMethodId | None = None
    cash_on_delivery: bool = False
    delivery: DeliveryOption = DeliveryOption.ASAP
    time_slot: TimeSlot | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Attempt state
# ═══════════════════════════════════════════════════════════════════════════════


class AttemptState(Enum):
    """
    State of one checkout attempt.

    Lifecycle:
        IDLE → VALIDATING → SUBMITTING → SUCCEEDED
                          → BLOCKED       (missing selections)
                          SUBMITTING → FAILED
        IDLE | VALIDATING | BLOCKED → CANCELLED
    """

    IDLE = "idle"
    VALIDATING = "validating"
    BLOCKED = "blocked"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    order_id: OrderId
    subtotal: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    is_free_delivery: bool
    cart_cleared: bool = True


@dataclass(frozen=True, slots=True)
class ResumedOrder:
    """
    Outcome of re-attempting item creation.

    already_complete means the order had items and nothing was written.
    """

    order_id: OrderId
    items_written: int
    already_complete: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutBlocked:
    """All unmet checkout requirements, in on-screen order."""

    errors: tuple[ValidationError, ...]

    @property
    def first(self) -> ValidationError:
        """Where the UI should scroll to."""
        return self.errors[0]

    @property
    def message(self) -> str:
        return "; ".join(error.message for error in self.errors)

    def for_section(self, section: Section) -> ValidationError | None:
        for error in self.errors:
            if error.section is section:
                return error
        return None


@dataclass(frozen=True, slots=True)
class OrderCreationError:
    """The order row was not written. Nothing persisted; safe to retry."""

    message: str
    section: Section = Section.ORDER
    cause: NetworkError | None = None


@dataclass(frozen=True, slots=True)
class PartialOrderError:
    """
    The order row exists but its items do not.

    Needs an explicit recovery (resume) and must not be retried
    automatically. items are exactly the rows the order was priced from.
    """

    order_id: OrderId
    message: str
    items: tuple[OrderItem, ...] = ()
    cause: NetworkError | None = None
    section: Section = Section.ORDER


@dataclass(frozen=True, slots=True)
class AttemptCancelled:
    section: Section = Section.ORDER

    @property
    def message(self) -> str:
        return "Checkout was cancelled"


type CheckoutFailure = OrderCreationError | PartialOrderError | CouponError | NetworkError


__all__ = (
    "OrderStatus",
    "OrderDraft",
    "Order",
    "OrderItem",
    "OrderWithItems",
    "CheckoutSelection",
    "AttemptState",
    "PlacedOrder",
    "ResumedOrder",
    "CheckoutBlocked",
    "OrderCreationError",
    "PartialOrderError",
    "AttemptCancelled",
    "CheckoutFailure",
)
