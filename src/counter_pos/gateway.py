from __future__ import annotations

import asyncio
import random
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from .exceptions import GatewayError


class PaymentGateway(Protocol):
    async def create_intent(self, amount: Decimal, currency: str) -> str: ...

    async def capture(self, intent: str) -> bool: ...


@dataclass
class ScriptedGateway:
    """Deterministic gateway: approves unless told otherwise.

    ``outcomes`` is consumed one entry per capture; once exhausted every
    capture uses ``default_outcome``.
    """

    outcomes: list[bool] = field(default_factory=list)
    default_outcome: bool = True
    fail_intent: Exception | None = None
    intents: list[tuple[Decimal, str]] = field(default_factory=list)
    captured: list[str] = field(default_factory=list)

    async def create_intent(self, amount: Decimal, currency: str) -> str:
        if self.fail_intent is not None:
            raise self.fail_intent
        self.intents.append((amount, currency))
        return f"pi_{uuid.uuid4().hex[:16]}"

    async def capture(self, intent: str) -> bool:
        self.captured.append(intent)
        if self.outcomes:
            return self.outcomes.pop(0)
        return self.default_outcome


class RandomizedGateway:
    """Demo gateway with a configurable approval probability."""

    def __init__(
        self,
        success_probability: float = 0.9,
        *,
        latency_seconds: float = 0.3,
        seed: int | None = None,
    ) -> None:
        if not 0.0 <= success_probability <= 1.0:
            raise GatewayError(code="INVALID_PROBABILITY", message="success_probability must be within [0, 1]")
        self.success_probability = success_probability
        self.latency_seconds = latency_seconds
        self._rng = random.Random(seed)

    async def create_intent(self, amount: Decimal, currency: str) -> str:
        await asyncio.sleep(self.latency_seconds)
        return f"pi_{uuid.uuid4().hex[:16]}_secret_{self._rng.getrandbits(32):08x}"

    async def capture(self, intent: str) -> bool:
        return self._rng.random() < self.success_probability
