from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models_cart import CartLine, CartTotals, Discount
from .models_catalog import CustomerRef
from .models_payments import Tender


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    VOIDED = "voided"
    RETURN = "return"


class HeldOrder(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    lines: list[CartLine]
    customer_id: str
    customer_name: str
    passport_number: str | None = None
    nationality: str | None = None
    held_at: datetime

    def estimated_total(self, tax_rate: Decimal) -> Decimal:
        subtotal = sum((line.pricing_unit_price * line.quantity for line in self.lines), Decimal("0.00"))
        return (subtotal * (Decimal("1") + tax_rate)).quantize(Decimal("0.01"))


class Sale(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    created_at: datetime
    customer: CustomerRef
    lines: list[CartLine]
    totals: CartTotals
    total: Decimal
    tenders: list[Tender] = Field(default_factory=list)
    discount: Discount | None = None
    status: SaleStatus = SaleStatus.COMPLETED
    is_queued: bool = False
    offline_id: str | None = None
    location_id: str | None = None
    passport_number: str | None = None
    nationality: str | None = None
    customer_email_for_docs: str | None = None

    @property
    def paid_total(self) -> Decimal:
        return sum((tender.amount for tender in self.tenders), Decimal("0.00"))
