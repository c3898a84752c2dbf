"""
Checkout session — one user's cart, coupon and order placement.

Every cart mutation is followed by pricing and then coupon re-validation
against the new subtotal, in that order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol

from kungfu import Result, Ok, Error

from checkout._config import CheckoutConfig
from checkout._errors import NetworkError
from checkout._types import LineId, OrderId, ProductId, UserId
from checkout.cart import CartLine, CartPersistence, CartStore
from checkout.coupon import AppliedCoupon, CouponAuthority, CouponError, CouponValidator
from checkout.delivery import DeliverySettingsStore
from checkout.order import (
    AttemptCancelled,
    CheckoutAttempt,
    CheckoutBlocked,
    CheckoutFailure,
    CheckoutQuote,
    CheckoutSelection,
    OrderItem,
    OrderPersistence,
    OrderPlacement,
    OrderWithItems,
    PlacedOrder,
    ResumedOrder,
    order_history,
)
from checkout.pricing import CartTotals, compute_totals


class Backend(CartPersistence, CouponAuthority, DeliverySettingsStore, OrderPersistence, Protocol):
    """Everything a session talks to remotely."""


@dataclass(frozen=True, slots=True)
class CartChange[T]:
    """
    Outcome of one cart mutation.

    coupon_error is set when the applied coupon was dropped because it no
    longer holds for the new subtotal.
    """

    result: Result[T, NetworkError]
    totals: CartTotals
    coupon_error: CouponError | NetworkError | None = None


class CheckoutSession:
    """
    Example:
        session = CheckoutSession(backend, UserId("u1"))
        await session.open()
        await session.add_item(ProductId("milk"), 2, unit_price=Decimal("30"))
        await session.apply_coupon("SAVE10")
        summary = await session.summary()
        placed = await session.place_order(selection)
    """

    def __init__(
        self,
        backend: Backend,
        user_id: UserId,
        *,
        config: CheckoutConfig | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._backend = backend
        self._config = config or CheckoutConfig()
        self.cart = CartStore(backend, user_id)
        self.coupons = CouponValidator(
            backend,
            user_id,
            currency_symbol=self._config.currency_symbol,
        )
        self.placement = OrderPlacement(
            self.cart,
            self.coupons,
            backend,
            backend,
            config=self._config,
            clock=clock,
        )

    @property
    def user_id(self) -> UserId:
        return self.cart.user_id

    @property
    def coupon(self) -> AppliedCoupon | None:
        return self.coupons.applied

    @property
    def totals(self) -> CartTotals:
        return compute_totals(self.cart.lines, self.coupons.applied)

    async def open(self) -> Result[CartTotals, NetworkError]:
        """Load the remote cart."""
        loaded = await self.cart.load()
        return loaded.map(lambda _: self.totals)

    # ───────────────────────────────────────────────────────────────────────────
    # Cart
    # ───────────────────────────────────────────────────────────────────────────

    async def add_item(
        self,
        product_id: ProductId,
        quantity: int = 1,
        *,
        unit_price: Decimal,
    ) -> CartChange[CartLine]:
        result = await self.cart.add_item(product_id, quantity, unit_price=unit_price)
        return await self._after_mutation(result)

    async def update_quantity(self, line_id: LineId, quantity: int) -> CartChange[CartLine | None]:
        result = await self.cart.update_quantity(line_id, quantity)
        return await self._after_mutation(result)

    async def remove_item(self, line_id: LineId) -> CartChange[None]:
        result = await self.cart.remove_item(line_id)
        return await self._after_mutation(result)

    async def _after_mutation[T](self, result: Result[T, NetworkError]) -> CartChange[T]:
        subtotal = self.totals.subtotal
        match await self.coupons.revalidate(subtotal):
            case Ok(_):
                coupon_error = None
            case Error(error):
                coupon_error = error
        return CartChange(result=result, totals=self.totals, coupon_error=coupon_error)

    # ───────────────────────────────────────────────────────────────────────────
    # Coupon
    # ───────────────────────────────────────────────────────────────────────────

    async def apply_coupon(self, code: str) -> Result[AppliedCoupon, CouponError | NetworkError]:
        return await self.coupons.apply_coupon(code, self.totals.subtotal)

    def remove_coupon(self) -> CartTotals:
        self.coupons.remove_coupon()
        return self.totals

    # ───────────────────────────────────────────────────────────────────────────
    # Checkout
    # ───────────────────────────────────────────────────────────────────────────

    async def summary(self) -> Result[CheckoutQuote, NetworkError]:
        """Subtotal, discount, delivery fee and total for the confirmed cart."""
        return await self.placement.current_quote()

    def attempt(self, selection: CheckoutSelection) -> CheckoutAttempt:
        return self.placement.attempt(selection)

    async def place_order(
        self,
        selection: CheckoutSelection,
    ) -> Result[PlacedOrder, CheckoutBlocked | CheckoutFailure | AttemptCancelled]:
        return await self.placement.place(selection)

    async def resume(
        self,
        order_id: OrderId,
        items: Sequence[OrderItem] | None = None,
    ) -> Result[ResumedOrder, CheckoutFailure]:
        return await self.placement.resume(order_id, items)

    async def history(self) -> Result[list[OrderWithItems], NetworkError]:
        return await order_history(self._backend, self.user_id)


__all__ = ("Backend", "CartChange", "CheckoutSession")
