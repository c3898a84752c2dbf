"""
checkout — cart, coupon and order placement core for a grocery storefront.

    from checkout import cart as Ct      # Local-first cart store
    from checkout import coupon as Cp    # Coupon validation
    from checkout import pricing as P    # Pure totals
    from checkout import delivery as D   # Delivery fee and time
    from checkout import order as O      # Order placement and history
    from checkout import remote as R     # Memory / SQLAlchemy backends
"""

from checkout import lift
from checkout import cart
from checkout import coupon
from checkout import pricing
from checkout import delivery
from checkout import order
from checkout import remote
from checkout._types import (
    Remote,
    UserId,
    ProductId,
    LineId,
    OrderId,
    AddressId,
    PaymentMethodId,
    CouponId,
    round_money,
    format_money,
)
from checkout._errors import Section, NetworkError, ValidationError
from checkout._config import CheckoutConfig, load_config
from checkout._session import Backend, CartChange, CheckoutSession

__version__ = "0.1.0"

__all__ = (
    "lift",
    "cart",
    "coupon",
    "pricing",
    "delivery",
    "order",
    "remote",
    "Remote",
    "UserId",
    "ProductId",
    "LineId",
    "OrderId",
    "AddressId",
    "PaymentMethodId",
    "CouponId",
    "round_money",
    "format_money",
    "Section",
    "NetworkError",
    "ValidationError",
    "CheckoutConfig",
    "load_config",
    "Backend",
    "CartChange",
    "CheckoutSession",
)
