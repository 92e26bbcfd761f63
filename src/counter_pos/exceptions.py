from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PosError(Exception):
    code: str
    message: str
    details: object | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(PosError):
    """Input rejected before any state change."""


class PaymentIncompleteError(ValidationError):
    pass


class TerminalError(PosError):
    pass


class TerminalCancelledError(TerminalError):
    """Terminal attempt cancelled by the operator."""


class AgeVerificationError(ValidationError):
    pass


class InsufficientStockError(PosError):
    """Conditional stock decrement failed at the store boundary."""


class HeldOrderNotFoundError(PosError):
    pass


class SaleNotFoundError(PosError):
    pass


class SaleStateError(ValidationError):
    pass


class GatewayError(PosError):
    """Payment gateway could not be reached or rejected the request."""
