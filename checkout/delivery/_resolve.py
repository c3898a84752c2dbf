"""
Delivery fee — settings and the free-delivery rule.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from checkout import lift as L
from checkout._errors import NetworkError, Section
from checkout._types import ZERO, Remote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeliverySettings:
    base_fee: Decimal
    free_delivery_enabled: bool = False
    free_delivery_threshold: Decimal | None = None

    def __post_init__(self) -> None:
        if self.base_fee < 0:
            raise ValueError(f"base_fee must be >= 0, got {self.base_fee}")


@dataclass(frozen=True, slots=True)
class DeliveryFee:
    fee: Decimal
    is_free: bool


def resolve_delivery_fee(settings: DeliverySettings, subtotal: Decimal) -> DeliveryFee:
    """
    Fee for a pre-discount subtotal.

    The single source of the fee shown in the summary and written with the
    order.
    """
    is_free = (
        settings.free_delivery_enabled
        and settings.free_delivery_threshold is not None
        and subtotal >= settings.free_delivery_threshold
    )
    return DeliveryFee(fee=ZERO if is_free else settings.base_fee, is_free=is_free)


# ═══════════════════════════════════════════════════════════════════════════════
# Settings source
# ═══════════════════════════════════════════════════════════════════════════════


class DeliverySettingsStore(Protocol):
    async def fetch_delivery_settings(self) -> DeliverySettings | None:
        """Current settings, or None when none are configured."""
        ...


def fetch_settings(
    store: DeliverySettingsStore,
    default_fee: Decimal,
) -> Remote[DeliverySettings, NetworkError]:
    """Read settings; an unconfigured store yields the default flat fee."""

    def or_default(settings: DeliverySettings | None) -> DeliverySettings:
        if settings is None:
            logger.info("No delivery settings configured, using default fee %s", default_fee)
            return DeliverySettings(base_fee=default_fee)
        return settings

    return L.remote(store.fetch_delivery_settings, Section.DELIVERY).map(or_default)


__all__ = (
    "DeliverySettings",
    "DeliveryFee",
    "resolve_delivery_fee",
    "DeliverySettingsStore",
    "fetch_settings",
)
