"""
In-memory backend — every remote collaborator in one process.

Used by tests and local development. Failures can be injected per operation
and operations can be held open to observe ordering.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal

from checkout._types import LineId, OrderId, ProductId, UserId
from checkout.cart import CartLine
from checkout.coupon import CouponRecord, CouponVerdict, normalize_code
from checkout.delivery import DeliverySettings
from checkout.order import Order, OrderDraft, OrderItem, OrderWithItems


class RemoteUnavailable(Exception):
    """Default injected failure."""


def coupon_verdict(
    record: CouponRecord | None,
    *,
    already_used: bool,
    now: datetime,
) -> CouponVerdict:
    """Server-side coupon rule: exists, not expired, under its limit, unused by this user."""
    if record is None:
        return CouponVerdict(valid=False, reason="Invalid coupon code")
    if now >= record.valid_until:
        return CouponVerdict(valid=False, reason="This coupon has expired")
    if record.usage_limit is not None and record.used_count >= record.usage_limit:
        return CouponVerdict(valid=False, reason="This coupon has reached its usage limit")
    if already_used:
        return CouponVerdict(valid=False, reason="You have already used this coupon")
    return CouponVerdict(valid=True, coupon=record)


@dataclass(slots=True)
class MemoryBackend:
    """
    Example:
        backend = MemoryBackend(settings=DeliverySettings(base_fee=Decimal("40")))
        backend.add_coupon(record)
        backend.fail_next("create_order_items")
    """

    settings: DeliverySettings | None = None
    prices: dict[ProductId, Decimal] = field(default_factory=dict)
    clock: Callable[[], datetime] = lambda: datetime.now(UTC)

    carts: dict[UserId, dict[LineId, CartLine]] = field(default_factory=dict)
    coupons: dict[str, CouponRecord] = field(default_factory=dict)
    coupon_uses: set[tuple[str, str]] = field(default_factory=set)
    orders: dict[OrderId, Order] = field(default_factory=dict)
    order_items: dict[OrderId, list[OrderItem]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    _failures: dict[str, list[Exception]] = field(default_factory=dict)
    _gates: dict[str, asyncio.Event] = field(default_factory=dict)

    # ───────────────────────────────────────────────────────────────────────────
    # Test controls
    # ───────────────────────────────────────────────────────────────────────────

    def fail_next(
        self,
        operation: str,
        error: Exception | None = None,
        *,
        times: int = 1,
    ) -> None:
        """Make the next `times` calls of `operation` raise."""
        failure = error or RemoteUnavailable(f"{operation} unavailable")
        self._failures.setdefault(operation, []).extend([failure] * times)

    def hold(self, operation: str) -> asyncio.Event:
        """Block `operation` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[operation] = gate
        return gate

    def add_coupon(self, record: CouponRecord) -> None:
        self.coupons[normalize_code(record.code)] = record

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        gate = self._gates.get(operation)
        if gate is not None:
            await gate.wait()
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)
        await asyncio.sleep(0)

    # ───────────────────────────────────────────────────────────────────────────
    # CartPersistence
    # ───────────────────────────────────────────────────────────────────────────

    async def fetch_lines(self, user_id: UserId) -> list[CartLine]:
        await self._enter("fetch_lines")
        return list(self.carts.get(user_id, {}).values())

    async def upsert_line(self, user_id: UserId, line: CartLine) -> CartLine:
        await self._enter("upsert_line")
        price = self.prices.get(line.product_id, line.unit_price)
        stored = replace(line, unit_price=price).confirmed()
        self.carts.setdefault(user_id, {})[stored.line_id] = stored
        return stored

    async def delete_line(self, user_id: UserId, line_id: LineId) -> None:
        await self._enter("delete_line")
        self.carts.get(user_id, {}).pop(line_id, None)

    async def delete_all_lines(self, user_id: UserId) -> None:
        await self._enter("delete_all_lines")
        self.carts.pop(user_id, None)

    # ───────────────────────────────────────────────────────────────────────────
    # CouponAuthority
    # ───────────────────────────────────────────────────────────────────────────

    async def validate_coupon_for_user(self, code: str, user_id: UserId) -> CouponVerdict:
        await self._enter("validate_coupon_for_user")
        record = self.coupons.get(normalize_code(code))
        already_used = record is not None and (record.id.value, user_id.value) in self.coupon_uses
        return coupon_verdict(record, already_used=already_used, now=self.clock())

    # ───────────────────────────────────────────────────────────────────────────
    # DeliverySettingsStore
    # ───────────────────────────────────────────────────────────────────────────

    async def fetch_delivery_settings(self) -> DeliverySettings | None:
        await self._enter("fetch_delivery_settings")
        return self.settings

    # ───────────────────────────────────────────────────────────────────────────
    # OrderPersistence
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(self, draft: OrderDraft) -> OrderId:
        await self._enter("create_order")
        order_id = OrderId(uuid.uuid4().hex)
        self.orders[order_id] = Order(
            id=order_id,
            user_id=draft.user_id,
            delivery_address_id=draft.delivery_address_id,
            payment_method_id=draft.payment_method_id,
            is_cash_on_delivery=draft.is_cash_on_delivery,
            status=draft.status,
            subtotal=draft.subtotal,
            discount_amount=draft.discount_amount,
            delivery_fee=draft.delivery_fee,
            total_amount=draft.total_amount,
            applied_coupon_id=draft.applied_coupon_id,
            estimated_delivery=draft.estimated_delivery,
            created_at=self.clock(),
        )
        if draft.applied_coupon_id is not None:
            self._record_coupon_use(draft.applied_coupon_id.value, draft.user_id)
        return order_id

    def _record_coupon_use(self, coupon_id: str, user_id: UserId) -> None:
        self.coupon_uses.add((coupon_id, user_id.value))
        for code, record in self.coupons.items():
            if record.id.value == coupon_id:
                self.coupons[code] = replace(record, used_count=record.used_count + 1)

    async def create_order_items(self, order_id: OrderId, items: Sequence[OrderItem]) -> None:
        await self._enter("create_order_items")
        if order_id not in self.orders:
            raise LookupError(f"order {order_id.value} does not exist")
        if self.order_items.get(order_id):
            raise ValueError(f"order {order_id.value} already has items")
        self.order_items[order_id] = list(items)

    async def fetch_order(self, order_id: OrderId) -> OrderWithItems | None:
        await self._enter("fetch_order")
        order = self.orders.get(order_id)
        if order is None:
            return None
        return OrderWithItems(order, tuple(self.order_items.get(order_id, ())))

    async def count_order_items(self, order_id: OrderId) -> int:
        await self._enter("count_order_items")
        return len(self.order_items.get(order_id, ()))

    async def list_orders(self, user_id: UserId) -> list[OrderWithItems]:
        await self._enter("list_orders")
        return [
            OrderWithItems(order, tuple(self.order_items.get(order.id, ())))
            for order in self.orders.values()
            if order.user_id == user_id
        ]


__all__ = ("RemoteUnavailable", "coupon_verdict", "MemoryBackend")
