from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from .exceptions import PaymentIncompleteError, SaleStateError, TerminalCancelledError, ValidationError
from .logging import log_event
from .models_catalog import DEFAULT_PAYMENT_METHODS, PaymentMethod
from .models_payments import Tender, TerminalResult, TerminalStatus
from .pricing import ZERO, money
from .terminal import MSG_CANCELLED, TerminalSession

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.005")

TENDER_SHORTCUTS: Mapping[str, str] = {
    "alt+c": "pay_cash",
    "alt+r": "pay_card",
    "alt+q": "pay_qr",
}


def resolve_shortcut(key: str) -> str | None:
    return TENDER_SHORTCUTS.get(key.strip().lower())


@dataclass(frozen=True)
class PaymentTotals:
    total_due: Decimal
    paid_total: Decimal
    missing_amount: Decimal
    change_due: Decimal
    cash_total: Decimal


def compute_payment_totals(
    total_due: Decimal,
    tenders: Sequence[Tender],
    methods: Iterable[PaymentMethod] = DEFAULT_PAYMENT_METHODS,
) -> PaymentTotals:
    cash_ids = {method.id for method in methods if method.is_cash}
    paid_total = sum((tender.amount for tender in tenders), ZERO)
    cash_total = sum((tender.amount for tender in tenders if tender.method_id in cash_ids), ZERO)
    return PaymentTotals(
        total_due=total_due,
        paid_total=paid_total,
        missing_amount=max(total_due - paid_total, ZERO),
        change_due=max(paid_total - total_due, ZERO),
        cash_total=cash_total,
    )


class PaymentReconciler:
    """Collects tenders against a fixed total.

    Tenders keep the order they were accepted in. Non-cash tenders are capped
    to the remaining balance, so only cash produces change. Integrated
    tenders go through a ``TerminalSession`` and are recorded only after the
    terminal approves.
    """

    def __init__(
        self,
        total: Decimal,
        methods: Iterable[PaymentMethod] = DEFAULT_PAYMENT_METHODS,
        *,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ) -> None:
        self.total = money(total)
        self.methods = {method.id: method for method in methods}
        self.tolerance = Decimal(str(tolerance))
        self._tenders: list[Tender] = []
        self.confirmed = False

    @property
    def tenders(self) -> tuple[Tender, ...]:
        return tuple(self._tenders)

    @property
    def paid_total(self) -> Decimal:
        return sum((tender.amount for tender in self._tenders), ZERO)

    @property
    def remaining(self) -> Decimal:
        return self.total - self.paid_total

    @property
    def change_due(self) -> Decimal:
        return max(self.paid_total - self.total, ZERO)

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining <= self.tolerance

    def totals(self) -> PaymentTotals:
        return compute_payment_totals(self.total, self._tenders, self.methods.values())

    def method(self, method_id: str) -> PaymentMethod:
        method = self.methods.get(method_id)
        if method is None:
            raise ValidationError(code="UNKNOWN_PAYMENT_METHOD", message=f"Unknown payment method {method_id!r}")
        return method

    def add_tender(self, method_id: str, amount: Decimal | float | str | None = None) -> Tender | None:
        """Accept a cash or manual tender; returns None when the amount is ignored."""
        self._require_open()
        method = self.method(method_id)
        if method.is_integrated:
            raise ValidationError(
                code="TERMINAL_REQUIRED",
                message=f"{method.name} payments must be taken on the terminal",
            )
        value = self._tender_amount(method, amount)
        if value is None:
            return None
        return self._append(method, value)

    async def add_integrated_tender(
        self,
        method_id: str,
        amount: Decimal | float | str | None = None,
        *,
        terminal: TerminalSession,
        currency: str = "USD",
    ) -> TerminalResult | None:
        self._require_open()
        method = self.method(method_id)
        if not method.is_integrated:
            raise ValidationError(code="NOT_AN_INTEGRATED_METHOD", message=f"{method.name} is not a terminal method")
        value = self._tender_amount(method, amount)
        if value is None:
            return None
        try:
            result = await terminal.run(value, currency)
        except TerminalCancelledError as exc:
            log_event(logger, "payments", "integrated_tender", "cancelled", method_id=method_id)
            return TerminalResult(status=TerminalStatus.CANCELLED, message=exc.message or MSG_CANCELLED)
        if result.approved:
            self._append(method, value, reference=result.transaction_id)
        else:
            log_event(logger, "payments", "integrated_tender", "failed", method_id=method_id, message=result.message)
        return result

    def remove_tender(self, tender_id: str) -> bool:
        self._require_open()
        before = len(self._tenders)
        self._tenders = [tender for tender in self._tenders if tender.id != tender_id]
        return len(self._tenders) != before

    def confirm(self) -> tuple[Tender, ...]:
        self._require_open()
        if not self.is_fully_paid:
            raise PaymentIncompleteError(
                code="PAYMENT_INCOMPLETE",
                message=f"Remaining balance {money(self.remaining)} must be paid before confirming",
                details={"remaining": str(money(self.remaining))},
            )
        self.confirmed = True
        log_event(
            logger,
            "payments",
            "confirm",
            "success",
            total=str(self.total),
            paid_total=str(self.paid_total),
            change_due=str(self.change_due),
            tender_count=len(self._tenders),
        )
        return self.tenders

    def reopen(self) -> None:
        """Undo ``confirm`` when the sale could not be committed."""
        self.confirmed = False

    def _tender_amount(self, method: PaymentMethod, amount: Decimal | float | str | None) -> Decimal | None:
        raw = self.remaining if amount is None else Decimal(str(amount))
        if raw <= self.tolerance:
            return None
        value = money(raw)
        if not method.is_cash:
            value = min(value, money(self.remaining))
            if value <= self.tolerance:
                return None
        return value

    def _append(self, method: PaymentMethod, amount: Decimal, *, reference: str | None = None) -> Tender:
        tender = Tender(id=uuid.uuid4().hex, method_id=method.id, amount=amount, reference=reference)
        self._tenders.append(tender)
        log_event(logger, "payments", "add_tender", "accepted", method_id=method.id, amount=str(amount))
        return tender

    def _require_open(self) -> None:
        if self.confirmed:
            raise SaleStateError(code="PAYMENT_CONFIRMED", message="Payment already confirmed")
