"""
Cart — local-first cart store.

    from checkout import cart as Ct

    store = Ct.CartStore(backend, user_id)
    await store.add_item(product_id, 2, unit_price=Decimal("30"))
"""

from checkout.cart._types import LineState, CartLine
from checkout.cart._store import CartPersistence, new_line_id, CartStore

__all__ = (
    "LineState",
    "CartLine",
    "CartPersistence",
    "new_line_id",
    "CartStore",
)
