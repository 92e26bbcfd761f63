from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable

from .exceptions import AgeVerificationError, ValidationError
from .logging import log_event
from .models_cart import SaleMode
from .models_catalog import Product

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    IDLE = "idle"
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class IdScanOutcome(str, Enum):
    VALID = "valid"
    UNDERAGE = "underage"
    EXPIRED = "expired"
    FAKE = "fake"


@dataclass(frozen=True)
class PendingAddRequest:
    product: Product
    mode: SaleMode = SaleMode.SALE
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def product_id(self) -> str:
        return self.product.id


@dataclass(frozen=True)
class GateOutcome:
    state: GateState
    request: PendingAddRequest | None
    reason: str | None = None
    age: int | None = None

    @property
    def verified(self) -> bool:
        return self.state == GateState.VERIFIED


def compute_age(birth_date: date, today: date) -> int:
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def parse_birth_date(year: int | str, month: int | str, day: int | str) -> date:
    try:
        year_num, month_num, day_num = int(year), int(month), int(day)
    except (TypeError, ValueError) as exc:
        raise AgeVerificationError(code="INVALID_BIRTH_DATE", message="birth date must be numeric") from exc
    if year_num < 1000:
        raise AgeVerificationError(code="INVALID_BIRTH_DATE", message="year must have four digits")
    try:
        return date(year_num, month_num, day_num)
    except ValueError as exc:
        raise AgeVerificationError(code="INVALID_BIRTH_DATE", message=str(exc)) from exc


class AgeVerificationGate:
    """Holds back restricted products until the customer's age is verified.

    Only one request can be pending at a time. ``on_verified`` receives the
    pending request exactly once, after a successful verification; a cancel or
    rejection drops the request without calling it.
    """

    def __init__(
        self,
        *,
        minimum_age: int = 21,
        id_scanning_enabled: bool = True,
        scanner_delay_seconds: float = 1.5,
        on_verified: Callable[[PendingAddRequest], object] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.minimum_age = minimum_age
        self.id_scanning_enabled = id_scanning_enabled
        self.scanner_delay_seconds = scanner_delay_seconds
        self.on_verified = on_verified
        self._today = today
        self.state = GateState.IDLE
        self.pending: PendingAddRequest | None = None
        self.last_outcome: GateOutcome | None = None

    @staticmethod
    def requires_verification(product: Product, mode: SaleMode) -> bool:
        return product.is_age_restricted and mode != SaleMode.RETURN

    def request(self, product: Product, mode: SaleMode = SaleMode.SALE) -> PendingAddRequest | None:
        if not self.requires_verification(product, mode):
            return None
        if self.pending is not None:
            raise ValidationError(code="AGE_VERIFICATION_PENDING", message="Age verification already in progress")
        self.pending = PendingAddRequest(product=product, mode=mode)
        self.state = GateState.AWAITING_VERIFICATION
        log_event(
            logger,
            "age_gate",
            "request",
            "awaiting_verification",
            product_id=product.id,
            request_id=self.pending.request_id,
        )
        return self.pending

    def verify_birth_date(
        self,
        year: int | str,
        month: int | str,
        day: int | str,
        *,
        today: date | None = None,
    ) -> GateOutcome:
        self._require_pending()
        birth_date = parse_birth_date(year, month, day)
        age = compute_age(birth_date, today or self._today())
        if age < 0:
            raise AgeVerificationError(code="INVALID_BIRTH_DATE", message="birth date is in the future")
        if age >= self.minimum_age:
            return self._resolve(GateState.VERIFIED, age=age)
        return self._resolve(GateState.REJECTED, reason=f"Underage ({age} years old)", age=age)

    def verify_id_scan(self, outcome: IdScanOutcome | str) -> GateOutcome:
        self._require_pending()
        self._require_scanning()
        scan = IdScanOutcome(outcome)
        if scan == IdScanOutcome.VALID:
            return self._resolve(GateState.VERIFIED)
        return self._resolve(GateState.REJECTED, reason=f"ID check failed: {scan.value}")

    async def verify_with_scanner(self) -> GateOutcome:
        request = self._require_pending()
        self._require_scanning()
        await asyncio.sleep(self.scanner_delay_seconds)
        if self.pending is None or self.pending.request_id != request.request_id:
            return GateOutcome(state=GateState.CANCELLED, request=request, reason="Verification was cancelled")
        return self._resolve(GateState.VERIFIED)

    def cancel(self) -> GateOutcome:
        if self.pending is None:
            return GateOutcome(state=GateState.IDLE, request=None)
        return self._resolve(GateState.CANCELLED)

    def _require_pending(self) -> PendingAddRequest:
        if self.pending is None or self.state != GateState.AWAITING_VERIFICATION:
            raise ValidationError(code="NO_PENDING_VERIFICATION", message="No product is awaiting age verification")
        return self.pending

    def _require_scanning(self) -> None:
        if not self.id_scanning_enabled:
            raise ValidationError(code="ID_SCANNING_DISABLED", message="ID scanning is disabled")

    def _resolve(self, state: GateState, *, reason: str | None = None, age: int | None = None) -> GateOutcome:
        request = self.pending
        self.state = state
        outcome = GateOutcome(state=state, request=request, reason=reason, age=age)
        self.last_outcome = outcome
        self.pending = None
        log_event(
            logger,
            "age_gate",
            "resolve",
            state.value,
            product_id=request.product_id if request else None,
            request_id=request.request_id if request else None,
            reason=reason,
        )
        try:
            if state == GateState.VERIFIED and request is not None and self.on_verified is not None:
                self.on_verified(request)
        finally:
            self.state = GateState.IDLE
        return outcome
