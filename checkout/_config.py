"""
Configuration — environment variables, optionally from a .env file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv


@dataclass(frozen=True, slots=True)
class CheckoutConfig:
    """
    Runtime settings.

    default_delivery_fee applies when the remote store holds no delivery
    settings. asap_minutes is the delivery estimate for ASAP orders.
    """

    database_url: str = "sqlite+aiosqlite:///:memory:"
    default_delivery_fee: Decimal = Decimal("40")
    asap_minutes: int = 45
    currency_symbol: str = "₹"


def load_config(env_file: str | None = None) -> CheckoutConfig:
    """
    Build config from the environment.

        CHECKOUT_DATABASE_URL
        CHECKOUT_DEFAULT_DELIVERY_FEE
        CHECKOUT_ASAP_MINUTES
        CHECKOUT_CURRENCY_SYMBOL
    """
    load_dotenv(env_file)
    defaults = CheckoutConfig()
    return CheckoutConfig(
        database_url=os.getenv("CHECKOUT_DATABASE_URL", defaults.database_url),
        default_delivery_fee=Decimal(
            os.getenv("CHECKOUT_DEFAULT_DELIVERY_FEE", str(defaults.default_delivery_fee))
        ),
        asap_minutes=int(os.getenv("CHECKOUT_ASAP_MINUTES", str(defaults.asap_minutes))),
        currency_symbol=os.getenv("CHECKOUT_CURRENCY_SYMBOL", defaults.currency_symbol),
    )


__all__ = ("CheckoutConfig", "load_config")
