from __future__ import annotations

import os
from decimal import Decimal

import pytest

from counter_pos.config import ConfigError, load_config

ENV_KEYS = (
    "COUNTER_POS_ENV",
    "COUNTER_POS_CURRENCY",
    "COUNTER_POS_TAX_RATE",
    "COUNTER_POS_PAYMENT_TOLERANCE",
    "COUNTER_POS_MINIMUM_AGE",
    "COUNTER_POS_ID_SCANNING_ENABLED",
    "COUNTER_POS_CLAMP_FIXED_DISCOUNT",
    "COUNTER_POS_RESTOCK_ON_VOID",
    "COUNTER_POS_TRANSFER_DEFAULT_QTY",
    "COUNTER_POS_TERMINAL_INIT_SECONDS",
    "COUNTER_POS_TERMINAL_CARD_WAIT_SECONDS",
    "COUNTER_POS_TERMINAL_PROCESSING_SECONDS",
    "COUNTER_POS_SCANNER_DELAY_SECONDS",
    "COUNTER_POS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setattr(os, "environ", os.environ.copy())
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    cfg = load_config()

    assert cfg.currency == "USD"
    assert cfg.tax_rate == Decimal("0.08")
    assert cfg.payment_tolerance == Decimal("0.005")
    assert cfg.minimum_age == 21
    assert cfg.id_scanning_enabled is True
    assert cfg.clamp_fixed_discount is False
    assert cfg.restock_on_void is False
    assert cfg.transfer_default_qty == 1
    assert cfg.terminal_card_wait_seconds == 3.0


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNTER_POS_TAX_RATE", "0.15")
    monkeypatch.setenv("COUNTER_POS_CURRENCY", "eur")
    monkeypatch.setenv("COUNTER_POS_RESTOCK_ON_VOID", "yes")
    monkeypatch.setenv("COUNTER_POS_MINIMUM_AGE", "18")

    cfg = load_config()

    assert cfg.tax_rate == Decimal("0.15")
    assert cfg.currency == "EUR"
    assert cfg.restock_on_void is True
    assert cfg.minimum_age == 18


def test_env_file_is_loaded(tmp_path) -> None:
    env_file = tmp_path / "pos.env"
    env_file.write_text("COUNTER_POS_CLAMP_FIXED_DISCOUNT=true\nCOUNTER_POS_ENV=staging\n")

    cfg = load_config(str(env_file))

    assert cfg.clamp_fixed_discount is True
    assert cfg.normalized_env == "staging"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("COUNTER_POS_TAX_RATE", "1.5"),
        ("COUNTER_POS_TAX_RATE", "abc"),
        ("COUNTER_POS_PAYMENT_TOLERANCE", "-0.01"),
        ("COUNTER_POS_MINIMUM_AGE", "0"),
        ("COUNTER_POS_MINIMUM_AGE", "abc"),
        ("COUNTER_POS_TRANSFER_DEFAULT_QTY", "0"),
        ("COUNTER_POS_TERMINAL_INIT_SECONDS", "-1"),
        ("COUNTER_POS_SCANNER_DELAY_SECONDS", "soon"),
        ("COUNTER_POS_CURRENCY", "DOLLARS"),
        ("COUNTER_POS_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_name_the_variable(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError, match=key):
        load_config()
