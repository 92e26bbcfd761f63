from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

POS_ACCESS = "sell:pos"
POS_APPLY_DISCOUNT = "pos:apply_discount"
POS_CHANGE_PRICE = "pos:change_price"
POS_PROCESS_RETURN = "pos:process_return"
POS_VOID_SALE = "pos:void_sale"


class CapabilityChecker(Protocol):
    def has_capability(self, capability: str) -> bool: ...


class PermissionEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str
    allowed: bool = True


class PermissionGate:
    """Default deny permission gate with deny-overrides-allow semantics."""

    def __init__(self, entries: Iterable[PermissionEntry | Mapping[str, object] | str]) -> None:
        self._decisions = self._normalize(entries)

    @staticmethod
    def _normalize(entries: Iterable[PermissionEntry | Mapping[str, object] | str]) -> dict[str, bool]:
        decisions: dict[str, bool] = {}
        for raw_entry in entries:
            if isinstance(raw_entry, str):
                raw_entry = {"key": raw_entry, "allowed": True}
            entry = PermissionEntry.model_validate(raw_entry)
            key = entry.key.strip()
            previous = decisions.get(key)
            if previous is False:
                continue
            decisions[key] = bool(entry.allowed)
        return decisions

    @classmethod
    def allow_all(cls) -> "PermissionGate":
        return cls([POS_ACCESS, POS_APPLY_DISCOUNT, POS_CHANGE_PRICE, POS_PROCESS_RETURN, POS_VOID_SALE])

    def has_capability(self, capability: str) -> bool:
        allowed = self._decisions.get(capability, False)
        if not allowed:
            logger.info("capability_denied", extra={"capability": capability})
        return allowed

    def allows_any(self, *capabilities: str) -> bool:
        return any(self._decisions.get(key, False) for key in capabilities)

    def allowed_keys(self) -> set[str]:
        return {key for key, allowed in self._decisions.items() if allowed}
