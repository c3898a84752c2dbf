import os
from decimal import Decimal

import pytest

from checkout import CheckoutConfig, load_config

VARS = (
    "CHECKOUT_DATABASE_URL",
    "CHECKOUT_DEFAULT_DELIVERY_FEE",
    "CHECKOUT_ASAP_MINUTES",
    "CHECKOUT_CURRENCY_SYMBOL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for name in VARS:
        os.environ.pop(name, None)


def test_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.env"))

    assert config == CheckoutConfig()
    assert config.default_delivery_fee == Decimal("40")
    assert config.asap_minutes == 45


def test_reads_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "CHECKOUT_DATABASE_URL=sqlite+aiosqlite:///shop.db\n"
        "CHECKOUT_DEFAULT_DELIVERY_FEE=25.50\n"
        "CHECKOUT_ASAP_MINUTES=30\n"
        "CHECKOUT_CURRENCY_SYMBOL=$\n",
        encoding="utf-8",
    )

    config = load_config(str(env_file))

    assert config.database_url == "sqlite+aiosqlite:///shop.db"
    assert config.default_delivery_fee == Decimal("25.50")
    assert config.asap_minutes == 30
    assert config.currency_symbol == "$"


def test_environment_wins_over_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("CHECKOUT_ASAP_MINUTES=30\n", encoding="utf-8")
    monkeypatch.setenv("CHECKOUT_ASAP_MINUTES", "60")

    assert load_config(str(env_file)).asap_minutes == 60
