"""
Delivery — fee resolution and delivery time estimates.

    from checkout import delivery as D

    fee = D.resolve_delivery_fee(settings, totals.subtotal)
"""

from checkout.delivery._resolve import (
    DeliverySettings,
    DeliveryFee,
    resolve_delivery_fee,
    DeliverySettingsStore,
    fetch_settings,
)
from checkout.delivery._schedule import (
    DeliveryOption,
    TimeSlot,
    TIME_SLOTS,
    estimated_delivery,
)

__all__ = (
    "DeliverySettings",
    "DeliveryFee",
    "resolve_delivery_fee",
    "DeliverySettingsStore",
    "fetch_settings",
    "DeliveryOption",
    "TimeSlot",
    "TIME_SLOTS",
    "estimated_delivery",
)
