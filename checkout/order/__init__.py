"""
Order — readiness checks, placement and history.

    from checkout import order as O

    placement = O.OrderPlacement(cart, coupons, backend, backend)
    match await placement.place(selection):
        case Ok(placed):
            ...
        case Error(O.CheckoutBlocked() as blocked):
            focus(blocked.first.section)
"""

from checkout.order._types import (
    OrderStatus,
    OrderDraft,
    Order,
    OrderItem,
    OrderWithItems,
    CheckoutSelection,
    AttemptState,
    PlacedOrder,
    ResumedOrder,
    CheckoutBlocked,
    OrderCreationError,
    PartialOrderError,
    AttemptCancelled,
    CheckoutFailure,
)
from checkout.order._validate import (
    validate_selection,
    Defaultable,
    SavedAddress,
    SavedPaymentMethod,
    preselect,
)
from checkout.order._place import (
    OrderPersistence,
    CheckoutQuote,
    quote,
    order_items,
    OrderPlacement,
    CheckoutAttempt,
)
from checkout.order._history import (
    OrderStats,
    summarize_orders,
    fetch_order,
    order_history,
)

__all__ = (
    # Types
    "OrderStatus",
    "OrderDraft",
    "Order",
    "OrderItem",
    "OrderWithItems",
    "CheckoutSelection",
    "AttemptState",
    "PlacedOrder",
    "ResumedOrder",
    # Errors
    "CheckoutBlocked",
    "OrderCreationError",
    "PartialOrderError",
    "AttemptCancelled",
    "CheckoutFailure",
    # Validation
    "validate_selection",
    "Defaultable",
    "SavedAddress",
    "SavedPaymentMethod",
    "preselect",
    # Placement
    "OrderPersistence",
    "CheckoutQuote",
    "quote",
    "order_items",
    "OrderPlacement",
    "CheckoutAttempt",
    # History
    "OrderStats",
    "summarize_orders",
    "fetch_order",
    "order_history",
)
