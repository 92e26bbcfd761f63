from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class PosConfig:
    env_name: str = "dev"
    currency: str = "USD"
    tax_rate: Decimal = Decimal("0.08")
    payment_tolerance: Decimal = Decimal("0.005")
    minimum_age: int = 21
    id_scanning_enabled: bool = True
    clamp_fixed_discount: bool = False
    restock_on_void: bool = False
    transfer_default_qty: int = 1
    terminal_init_seconds: float = 1.0
    terminal_card_wait_seconds: float = 3.0
    terminal_processing_seconds: float = 2.0
    scanner_delay_seconds: float = 1.5
    log_level: str = "INFO"

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _read_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ConfigError(f"Invalid {name}: expected a decimal, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> PosConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("COUNTER_POS_ENV") or "dev").strip()
    currency = (os.getenv("COUNTER_POS_CURRENCY") or "USD").strip().upper()
    _validate(len(currency) == 3, f"Invalid COUNTER_POS_CURRENCY: expected ISO code, got {currency!r}")

    tax_rate = _read_decimal("COUNTER_POS_TAX_RATE", "0.08")
    _validate(
        Decimal("0") <= tax_rate < Decimal("1"),
        f"Invalid COUNTER_POS_TAX_RATE: expected 0 <= rate < 1, got {tax_rate}",
    )

    payment_tolerance = _read_decimal("COUNTER_POS_PAYMENT_TOLERANCE", "0.005")
    _validate(
        payment_tolerance >= 0,
        f"Invalid COUNTER_POS_PAYMENT_TOLERANCE: expected >= 0, got {payment_tolerance}",
    )

    minimum_age = _read_int("COUNTER_POS_MINIMUM_AGE", "21")
    _validate(minimum_age >= 1, f"Invalid COUNTER_POS_MINIMUM_AGE: expected >= 1, got {minimum_age}")

    transfer_default_qty = _read_int("COUNTER_POS_TRANSFER_DEFAULT_QTY", "1")
    _validate(
        transfer_default_qty >= 1,
        f"Invalid COUNTER_POS_TRANSFER_DEFAULT_QTY: expected >= 1, got {transfer_default_qty}",
    )

    timings = {}
    for name, default in (
        ("COUNTER_POS_TERMINAL_INIT_SECONDS", "1.0"),
        ("COUNTER_POS_TERMINAL_CARD_WAIT_SECONDS", "3.0"),
        ("COUNTER_POS_TERMINAL_PROCESSING_SECONDS", "2.0"),
        ("COUNTER_POS_SCANNER_DELAY_SECONDS", "1.5"),
    ):
        value = _read_float(name, default)
        _validate(value >= 0, f"Invalid {name}: expected >= 0, got {value}")
        timings[name] = value

    log_level = (os.getenv("COUNTER_POS_LOG_LEVEL") or "INFO").strip().upper()
    _validate(
        log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
        f"Invalid COUNTER_POS_LOG_LEVEL: got {log_level!r}",
    )

    return PosConfig(
        env_name=env_name,
        currency=currency,
        tax_rate=tax_rate,
        payment_tolerance=payment_tolerance,
        minimum_age=minimum_age,
        id_scanning_enabled=_coerce_bool(os.getenv("COUNTER_POS_ID_SCANNING_ENABLED"), True),
        clamp_fixed_discount=_coerce_bool(os.getenv("COUNTER_POS_CLAMP_FIXED_DISCOUNT"), False),
        restock_on_void=_coerce_bool(os.getenv("COUNTER_POS_RESTOCK_ON_VOID"), False),
        transfer_default_qty=transfer_default_qty,
        terminal_init_seconds=timings["COUNTER_POS_TERMINAL_INIT_SECONDS"],
        terminal_card_wait_seconds=timings["COUNTER_POS_TERMINAL_CARD_WAIT_SECONDS"],
        terminal_processing_seconds=timings["COUNTER_POS_TERMINAL_PROCESSING_SECONDS"],
        scanner_delay_seconds=timings["COUNTER_POS_SCANNER_DELAY_SECONDS"],
        log_level=log_level,
    )
