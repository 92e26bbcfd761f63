from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_FORBIDDEN_CONTEXT_KEYS = {
    "email",
    "customer_email",
    "passport_number",
    "nationality",
    "card_number",
    "birth_date",
    "date_of_birth",
    "token",
    "client_secret",
}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format="%(message)s")


def log_json(logger: logging.Logger, payload: dict, level: int = logging.INFO) -> None:
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str, sort_keys=True))


def log_event(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    *,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    illegal = sorted(key for key in context if key.lower() in _FORBIDDEN_CONTEXT_KEYS)
    if illegal:
        raise ValueError(f"PII-like keys are forbidden in log context: {illegal}")
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "module": module,
        "action": action,
        "outcome": outcome,
    }
    payload.update({key: value for key, value in context.items() if value is not None})
    log_json(logger, payload, level)
