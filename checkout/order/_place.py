"""
Order placement — validate, price, then write order and items.

The write is two-phase: the order row first, the item rows only after the
order row exists. A failure between the two leaves an order without items;
that is reported as PartialOrderError and repaired with resume(), never
retried automatically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol

from kungfu import Result, Ok, Error

from checkout import lift as L
from checkout._config import CheckoutConfig
from checkout._errors import NetworkError
from checkout._types import OrderId, UserId, round_money
from checkout.cart import CartLine, CartStore
from checkout.coupon import AppliedCoupon, CouponValidator
from checkout.delivery import (
    DeliveryFee,
    DeliverySettings,
    DeliverySettingsStore,
    estimated_delivery,
    fetch_settings,
    resolve_delivery_fee,
)
from checkout.order._types import (
    AttemptCancelled,
    AttemptState,
    CheckoutBlocked,
    CheckoutFailure,
    CheckoutSelection,
    OrderCreationError,
    OrderDraft,
    OrderItem,
    OrderWithItems,
    PartialOrderError,
    PlacedOrder,
    ResumedOrder,
)
from checkout.order._validate import validate_selection
from checkout.pricing import CartTotals, compute_totals, subtotal_of

logger = logging.getLogger(__name__)


class OrderPersistence(Protocol):
    async def create_order(self, draft: OrderDraft) -> OrderId: ...

    async def create_order_items(self, order_id: OrderId, items: Sequence[OrderItem]) -> None:
        """Write all items at once. Raises if the order is unknown or already has items."""
        ...

    async def fetch_order(self, order_id: OrderId) -> OrderWithItems | None: ...

    async def count_order_items(self, order_id: OrderId) -> int: ...

    async def list_orders(self, user_id: UserId) -> list[OrderWithItems]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Quote — summary figures, shared by the summary view and the order write
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutQuote:
    totals: CartTotals
    delivery: DeliveryFee

    @property
    def total_amount(self) -> Decimal:
        return self.totals.subtotal - self.totals.discount_amount + self.delivery.fee


def quote(
    lines: Sequence[CartLine],
    coupon: AppliedCoupon | None,
    settings: DeliverySettings,
) -> CheckoutQuote:
    totals = compute_totals(lines, coupon)
    return CheckoutQuote(totals=totals, delivery=resolve_delivery_fee(settings, totals.subtotal))


def order_items(order_id: OrderId, lines: Sequence[CartLine]) -> tuple[OrderItem, ...]:
    """One item per line, at the price captured in the cart."""
    return tuple(
        OrderItem(
            order_id=order_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in lines
    )


# ═══════════════════════════════════════════════════════════════════════════════
# OrderPlacement
# ═══════════════════════════════════════════════════════════════════════════════


class OrderPlacement:
    """
    Places orders for one user's cart.

    Example:
        placement = OrderPlacement(cart, coupons, backend, backend)
        attempt = placement.attempt(selection)
        match await attempt.submit():
            case Ok(placed):
                ...
            case Error(PartialOrderError(order_id=order_id)):
                await placement.resume(order_id)
    """

    def __init__(
        self,
        cart: CartStore,
        coupons: CouponValidator,
        orders: OrderPersistence,
        settings: DeliverySettingsStore,
        *,
        config: CheckoutConfig | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._cart = cart
        self._coupons = coupons
        self._orders = orders
        self._settings = settings
        self._config = config or CheckoutConfig()
        self._clock = clock
        self._unwritten: dict[OrderId, tuple[CartLine, ...]] = {}
        self._resume_lock = asyncio.Lock()

    def attempt(self, selection: CheckoutSelection) -> CheckoutAttempt:
        return CheckoutAttempt(self, selection)

    async def place(
        self,
        selection: CheckoutSelection,
    ) -> Result[PlacedOrder, CheckoutBlocked | CheckoutFailure | AttemptCancelled]:
        """Validate and submit in one call."""
        return await self.attempt(selection).submit()

    async def current_quote(self) -> Result[CheckoutQuote, NetworkError]:
        """Summary figures for the current confirmed cart."""
        lines = await self._cart.confirmed_snapshot()
        settings = await fetch_settings(self._settings, self._config.default_delivery_fee)
        return settings.map(lambda s: quote(lines, self._coupons.applied, s))

    # ───────────────────────────────────────────────────────────────────────────
    # Submitting
    # ───────────────────────────────────────────────────────────────────────────

    async def _submit(self, selection: CheckoutSelection) -> Result[PlacedOrder, CheckoutFailure]:
        lines = await self._cart.confirmed_snapshot()
        if not lines:
            return Error(OrderCreationError("Your cart is empty"))

        match await self._coupons.revalidate(subtotal_of(lines)):
            case Error(coupon_error):
                return Error(coupon_error)
            case Ok(coupon):
                pass

        match await fetch_settings(self._settings, self._config.default_delivery_fee):
            case Error(network):
                return Error(network)
            case Ok(settings):
                pass

        figures = quote(lines, coupon, settings)
        draft = self._draft(selection, figures, coupon)

        match await L.remote(lambda: self._orders.create_order(draft)):
            case Error(network):
                logger.warning("Order creation failed for %s: %s", draft.user_id.value, network.message)
                return Error(OrderCreationError(network.message, network.section, network))
            case Ok(order_id):
                pass

        match await self._write_items(order_id, order_items(order_id, lines)):
            case Error(partial):
                self._unwritten[order_id] = lines
                return Error(partial)
            case Ok(_):
                pass

        cart_cleared = await self._clear_cart(order_id, lines)
        self._coupons.remove_coupon()

        logger.info(
            "Order %s placed: %d items, total %s",
            order_id.value,
            len(lines),
            draft.total_amount,
        )
        return Ok(PlacedOrder(
            order_id=order_id,
            subtotal=draft.subtotal,
            discount_amount=draft.discount_amount,
            delivery_fee=draft.delivery_fee,
            total_amount=draft.total_amount,
            is_free_delivery=figures.delivery.is_free,
            cart_cleared=cart_cleared,
        ))

    def _draft(
        self,
        selection: CheckoutSelection,
        figures: CheckoutQuote,
        coupon: AppliedCoupon | None,
    ) -> OrderDraft:
        if selection.address_id is None:
            raise ValueError("cannot draft an order without a delivery address")
        return OrderDraft(
            user_id=self._cart.user_id,
            delivery_address_id=selection.address_id,
            payment_method_id=None if selection.cash_on_delivery else selection.payment_method_id,
            is_cash_on_delivery=selection.cash_on_delivery,
            subtotal=round_money(figures.totals.subtotal),
            discount_amount=round_money(figures.totals.discount_amount),
            delivery_fee=round_money(figures.delivery.fee),
            total_amount=round_money(figures.total_amount),
            applied_coupon_id=coupon.coupon_id if coupon is not None else None,
            estimated_delivery=estimated_delivery(
                selection.delivery,
                selection.time_slot,
                self._clock(),
                self._config.asap_minutes,
            ),
        )

    async def _write_items(
        self,
        order_id: OrderId,
        items: tuple[OrderItem, ...],
    ) -> Result[int, PartialOrderError]:
        match await L.remote(lambda: self._orders.create_order_items(order_id, items)):
            case Ok(_):
                return Ok(len(items))
            case Error(network):
                logger.error(
                    "Order %s created but its items were not: %s",
                    order_id.value,
                    network.message,
                )
                return Error(PartialOrderError(
                    order_id=order_id,
                    message=(
                        "Your order was created but its items could not be saved. "
                        "Please retry before placing a new order."
                    ),
                    items=items,
                    cause=network,
                ))

    async def _clear_cart(self, order_id: OrderId, ordered: Sequence[CartLine]) -> bool:
        match await self._cart.remove_ordered(ordered):
            case Ok(_):
                return True
            case Error(network):
                logger.warning(
                    "Order %s is complete but the cart was not cleared: %s",
                    order_id.value,
                    network.message,
                )
                return False

    # ───────────────────────────────────────────────────────────────────────────
    # Recovery
    # ───────────────────────────────────────────────────────────────────────────

    async def resume(
        self,
        order_id: OrderId,
        items: Sequence[OrderItem] | None = None,
    ) -> Result[ResumedOrder, CheckoutFailure]:
        """
        Write the items of an order left without any.

        An order that already has items is left alone and reported complete,
        so repeated or concurrent calls never duplicate items. Without
        explicit items, the lines the order was priced from are written; an
        order placed elsewhere is rebuilt from the cart only while the cart
        still adds up to the order's subtotal.
        """
        async with self._resume_lock:
            return await self._resume(order_id, items)

    async def _resume(
        self,
        order_id: OrderId,
        items: Sequence[OrderItem] | None,
    ) -> Result[ResumedOrder, CheckoutFailure]:
        match await L.remote(lambda: self._orders.count_order_items(order_id)):
            case Error(network):
                return Error(network)
            case Ok(count) if count > 0:
                logger.info("Order %s already has %d items, nothing to resume", order_id.value, count)
                self._unwritten.pop(order_id, None)
                return Ok(ResumedOrder(order_id, items_written=0, already_complete=True))
            case Ok(_):
                pass

        lines = self._unwritten.get(order_id, ())
        if items is None:
            match await self._recover_lines(order_id, lines):
                case Error(error):
                    return Error(error)
                case Ok(recovered):
                    lines = recovered
            items = order_items(order_id, lines)

        match await self._write_items(order_id, tuple(items)):
            case Error(partial):
                return Error(partial)
            case Ok(written):
                pass

        self._unwritten.pop(order_id, None)
        await self._clear_cart(order_id, lines)
        self._coupons.remove_coupon()
        logger.info("Order %s resumed with %d items", order_id.value, written)
        return Ok(ResumedOrder(order_id, items_written=written, already_complete=False))

    async def _recover_lines(
        self,
        order_id: OrderId,
        known: tuple[CartLine, ...],
    ) -> Result[tuple[CartLine, ...], OrderCreationError | NetworkError]:
        if known:
            return Ok(known)

        match await L.remote(lambda: self._orders.fetch_order(order_id)):
            case Error(network):
                return Error(network)
            case Ok(None):
                return Error(OrderCreationError(f"Order {order_id.value} does not exist"))
            case Ok(found):
                pass

        lines = await self._cart.confirmed_snapshot()
        if not lines:
            return Error(OrderCreationError("Your cart is empty; nothing to add to the order"))
        if round_money(subtotal_of(lines)) != found.order.subtotal:
            return Error(OrderCreationError(
                "Your cart has changed since this order was placed; "
                "its items cannot be rebuilt from it"
            ))
        return Ok(lines)


# ═══════════════════════════════════════════════════════════════════════════════
# CheckoutAttempt
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutAttempt:
    """
    One press of "place order".

    validate() is synchronous. submit() validates, then runs the writes in a
    task of their own: once submitting has started, cancelling the awaiting
    caller does not stop them. cancel() only works before that point.
    """

    def __init__(self, placement: OrderPlacement, selection: CheckoutSelection) -> None:
        self._placement = placement
        self._selection = selection
        self._state = AttemptState.IDLE
        self._blocked: CheckoutBlocked | None = None
        self._failure: CheckoutFailure | None = None
        self._placed: PlacedOrder | None = None
        self._task: asyncio.Task[Result[PlacedOrder, CheckoutFailure]] | None = None

    @property
    def state(self) -> AttemptState:
        return self._state

    @property
    def blocked(self) -> CheckoutBlocked | None:
        return self._blocked

    @property
    def failure(self) -> CheckoutFailure | None:
        return self._failure

    @property
    def placed(self) -> PlacedOrder | None:
        return self._placed

    def validate(self) -> Result[CheckoutSelection, CheckoutBlocked]:
        if self._state not in (AttemptState.IDLE, AttemptState.BLOCKED):
            raise RuntimeError(f"cannot validate a {self._state.value} attempt")

        self._state = AttemptState.VALIDATING
        result = validate_selection(self._selection)
        match result:
            case Ok(_):
                self._blocked = None
            case Error(blocked):
                self._state = AttemptState.BLOCKED
                self._blocked = blocked
        return result

    def cancel(self) -> bool:
        """Cancel before submitting starts. Returns whether the attempt is cancelled."""
        if self._state in (AttemptState.IDLE, AttemptState.VALIDATING, AttemptState.BLOCKED):
            self._state = AttemptState.CANCELLED
        return self._state is AttemptState.CANCELLED

    async def submit(
        self,
    ) -> Result[PlacedOrder, CheckoutBlocked | CheckoutFailure | AttemptCancelled]:
        if self._state is AttemptState.CANCELLED:
            return Error(AttemptCancelled())
        if self._task is not None:
            return await asyncio.shield(self._task)

        match self.validate():
            case Error(blocked):
                return Error(blocked)
            case Ok(selection):
                pass

        self._state = AttemptState.SUBMITTING
        self._task = asyncio.create_task(self._run(selection))
        return await asyncio.shield(self._task)

    async def _run(self, selection: CheckoutSelection) -> Result[PlacedOrder, CheckoutFailure]:
        result = await self._placement._submit(selection)
        match result:
            case Ok(placed):
                self._state = AttemptState.SUCCEEDED
                self._placed = placed
            case Error(failure):
                self._state = AttemptState.FAILED
                self._failure = failure
        return result


__all__ = (
    "OrderPersistence",
    "CheckoutQuote",
    "quote",
    "order_items",
    "OrderPlacement",
    "CheckoutAttempt",
)
