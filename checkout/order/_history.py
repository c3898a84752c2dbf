"""
Order history — reading placed orders back.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from checkout import lift as L
from checkout._errors import NetworkError
from checkout._types import ZERO, OrderId, Remote, UserId
from checkout.order._place import OrderPersistence
from checkout.order._types import OrderStatus, OrderWithItems

_PENDING = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class OrderStats:
    total: int
    completed: int
    pending: int
    savings: Decimal


def summarize_orders(orders: Iterable[OrderWithItems]) -> OrderStats:
    """Completed means delivered; savings is the sum of coupon discounts."""
    records = [entry.order for entry in orders]
    return OrderStats(
        total=len(records),
        completed=sum(1 for order in records if order.status is OrderStatus.DELIVERED),
        pending=sum(1 for order in records if order.status in _PENDING),
        savings=sum((order.discount_amount for order in records), ZERO),
    )


def fetch_order(
    orders: OrderPersistence,
    order_id: OrderId,
) -> Remote[OrderWithItems | None, NetworkError]:
    return L.remote(lambda: orders.fetch_order(order_id))


def order_history(
    orders: OrderPersistence,
    user_id: UserId,
) -> Remote[list[OrderWithItems], NetworkError]:
    """A user's orders, newest first."""
    return L.remote(lambda: orders.list_orders(user_id)).map(
        lambda found: sorted(found, key=lambda entry: entry.order.created_at, reverse=True)
    )


__all__ = ("OrderStats", "summarize_orders", "fetch_order", "order_history")
