"""
Cart types — lines and their write state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from checkout._types import LineId, ProductId


class LineState(Enum):
    """
    Write state of a cart line.

    Lifecycle:
        PENDING_WRITE → CONFIRMED (remote write succeeded)
                      → reverted to last CONFIRMED copy (remote write failed)
    """

    PENDING_WRITE = "pending_write"
    CONFIRMED = "confirmed"


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One product in the cart.

    unit_price is the product price captured when the line was read; it is
    the price the order is placed at.
    """

    line_id: LineId
    product_id: ProductId
    quantity: int
    unit_price: Decimal
    state: LineState = LineState.CONFIRMED

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be >= 0, got {self.unit_price}")

    @property
    def is_confirmed(self) -> bool:
        return self.state == LineState.CONFIRMED

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def pending(self, quantity: int | None = None) -> CartLine:
        return replace(
            self,
            quantity=self.quantity if quantity is None else quantity,
            state=LineState.PENDING_WRITE,
        )

    def confirmed(self) -> CartLine:
        return replace(self, state=LineState.CONFIRMED)


__all__ = ("LineState", "CartLine")
