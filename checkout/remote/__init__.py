"""
Remote — backends for the cart, coupon, delivery settings and order stores.

    from checkout import remote as R

    backend = R.MemoryBackend()

    session_factory, engine = await R.create_database(config.database_url)
    backend = R.SqlBackend(session_factory)
"""

from checkout.remote._memory import (
    RemoteUnavailable,
    coupon_verdict,
    MemoryBackend,
)
from checkout.remote._sqlalchemy import (
    Base,
    CartItemTable,
    CouponTable,
    CouponUsageTable,
    DeliverySettingsTable,
    OrderTable,
    OrderItemTable,
    create_database,
    SqlBackend,
)

__all__ = (
    # Memory
    "RemoteUnavailable",
    "coupon_verdict",
    "MemoryBackend",
    # SQLAlchemy
    "Base",
    "CartItemTable",
    "CouponTable",
    "CouponUsageTable",
    "DeliverySettingsTable",
    "OrderTable",
    "OrderItemTable",
    "create_database",
    "SqlBackend",
)
