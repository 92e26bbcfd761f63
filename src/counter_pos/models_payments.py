from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Tender(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    method_id: str
    amount: Decimal = Field(gt=0)
    reference: str | None = None


class TerminalStatus(str, Enum):
    WAITING = "waiting"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {TerminalStatus.SUCCESS, TerminalStatus.FAILED, TerminalStatus.CANCELLED}


class TerminalResult(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    status: TerminalStatus
    message: str
    transaction_id: str | None = None

    @property
    def approved(self) -> bool:
        return self.status == TerminalStatus.SUCCESS
