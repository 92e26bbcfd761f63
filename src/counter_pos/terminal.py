from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable

from .config import PosConfig
from .exceptions import TerminalCancelledError, ValidationError
from .gateway import PaymentGateway
from .logging import log_event
from .models_payments import TerminalResult, TerminalStatus

logger = logging.getLogger(__name__)

TerminalObserver = Callable[[TerminalStatus, str], None]

MSG_INITIALIZING = "Initializing terminal..."
MSG_PRESENT_CARD = "Please tap, swipe, or insert card."
MSG_PROCESSING = "Processing payment..."
MSG_APPROVED = "Payment Approved"
MSG_DECLINED = "Payment Declined"
MSG_CONNECTION_ERROR = "A connection error occurred."
MSG_CANCELLED = "Payment cancelled by user."


@dataclass(frozen=True)
class TerminalTimings:
    init_seconds: float = 1.0
    card_wait_seconds: float = 3.0
    processing_seconds: float = 2.0

    @classmethod
    def from_config(cls, config: PosConfig) -> "TerminalTimings":
        return cls(
            init_seconds=config.terminal_init_seconds,
            card_wait_seconds=config.terminal_card_wait_seconds,
            processing_seconds=config.terminal_processing_seconds,
        )

    @classmethod
    def instant(cls) -> "TerminalTimings":
        return cls(init_seconds=0.0, card_wait_seconds=0.0, processing_seconds=0.0)


class TerminalSession:
    """One card-present payment attempt.

    ``run`` walks processing -> waiting -> processing -> success|failed and
    reports every transition to ``observer``. ``cancel`` may be called at any
    point before a terminal state; ``run`` then raises
    ``TerminalCancelledError`` and never reports success or failure.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        observer: TerminalObserver | None = None,
        timings: TerminalTimings | None = None,
    ) -> None:
        self.gateway = gateway
        self.observer = observer
        self.timings = timings or TerminalTimings()
        self.status: TerminalStatus | None = None
        self.message: str = ""
        self.history: list[tuple[TerminalStatus, str]] = []
        self._cancelled = asyncio.Event()
        self._started = False

    @property
    def is_finished(self) -> bool:
        return self.status is not None and self.status.is_terminal

    async def run(self, amount: Decimal, currency: str = "USD") -> TerminalResult:
        if self._started:
            raise ValidationError(code="TERMINAL_SESSION_USED", message="Terminal session already used")
        self._started = True
        self._raise_if_cancelled()

        self._transition(TerminalStatus.PROCESSING, MSG_INITIALIZING)
        try:
            intent = await self._interruptible(self.gateway.create_intent(amount, currency))
        except TerminalCancelledError:
            raise
        except Exception as exc:
            logger.warning("terminal_intent_failed", extra={"error": exc.__class__.__name__})
            return self._finish(TerminalStatus.FAILED, MSG_CONNECTION_ERROR)

        await self._interruptible(asyncio.sleep(self.timings.init_seconds))
        self._transition(TerminalStatus.WAITING, MSG_PRESENT_CARD)

        await self._interruptible(asyncio.sleep(self.timings.card_wait_seconds))
        self._transition(TerminalStatus.PROCESSING, MSG_PROCESSING)

        await self._interruptible(asyncio.sleep(self.timings.processing_seconds))
        try:
            approved = await self._interruptible(self.gateway.capture(intent))
        except TerminalCancelledError:
            raise
        except Exception as exc:
            logger.warning("terminal_capture_failed", extra={"error": exc.__class__.__name__})
            return self._finish(TerminalStatus.FAILED, MSG_CONNECTION_ERROR)

        if approved:
            return self._finish(TerminalStatus.SUCCESS, MSG_APPROVED, transaction_id=f"txn_{uuid.uuid4().hex[:12]}")
        return self._finish(TerminalStatus.FAILED, MSG_DECLINED)

    def cancel(self) -> bool:
        if self.is_finished or self._cancelled.is_set():
            return False
        self._cancelled.set()
        self._transition(TerminalStatus.CANCELLED, MSG_CANCELLED)
        return True

    async def _interruptible(self, awaitable: Awaitable[Any]) -> Any:
        if self._cancelled.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self._raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancelled.wait())
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if self._cancelled.is_set():
            work.cancel()
            waiter.cancel()
            self._raise_if_cancelled()
        waiter.cancel()
        return work.result()

    def _raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise TerminalCancelledError(code="TERMINAL_CANCELLED", message=MSG_CANCELLED)

    def _finish(self, status: TerminalStatus, message: str, *, transaction_id: str | None = None) -> TerminalResult:
        self._transition(status, message)
        return TerminalResult(status=status, message=message, transaction_id=transaction_id)

    def _transition(self, status: TerminalStatus, message: str) -> None:
        self.status = status
        self.message = message
        self.history.append((status, message))
        log_event(logger, "terminal", "transition", status.value, message=message)
        if self.observer is not None:
            self.observer(status, message)
