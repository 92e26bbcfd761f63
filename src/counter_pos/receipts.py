from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from .models_cart import DiscountType
from .models_catalog import DEFAULT_PAYMENT_METHODS, PaymentMethod
from .models_sales import Sale, SaleStatus
from .payments import DEFAULT_TOLERANCE
from .pricing import DEFAULT_TAX_RATE, ZERO, money


class ReceiptLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    original_price: Decimal | None = None
    annotation: str | None = None


class ReceiptPayment(BaseModel):
    model_config = ConfigDict(extra="allow")

    method_id: str
    method_name: str
    amount: Decimal


class Receipt(BaseModel):
    model_config = ConfigDict(extra="allow")

    sale_id: str
    title: str
    created_at: datetime
    customer_name: str
    lines: list[ReceiptLine] = Field(default_factory=list)
    subtotal: Decimal
    discount_label: str | None = None
    discount_amount: Decimal = ZERO
    tax_label: str
    tax: Decimal
    total: Decimal
    payments: list[ReceiptPayment] = Field(default_factory=list)
    change_due: Decimal = ZERO
    pending_sync: bool = False
    voided: bool = False


def _format_money(value: Decimal) -> str:
    return f"${money(value):,.2f}"


def _format_rate(tax_rate: Decimal) -> str:
    percent = (tax_rate * 100).normalize()
    return f"{percent:f}%"


def build_receipt(
    sale: Sale,
    methods: Iterable[PaymentMethod] = DEFAULT_PAYMENT_METHODS,
    *,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> Receipt:
    names = {method.id: method.name for method in methods}
    lines = []
    for line in sale.lines:
        annotation = None
        if line.original_price is not None:
            annotation = f"Orig. {_format_money(line.original_price)}"
        lines.append(
            ReceiptLine(
                name=line.product.name,
                quantity=line.quantity,
                unit_price=line.price,
                line_total=money(line.price * line.quantity),
                original_price=line.original_price,
                annotation=annotation,
            )
        )

    discount_label = None
    if sale.discount is not None:
        if sale.discount.type == DiscountType.PERCENTAGE:
            discount_label = f"Discount ({sale.discount.value.normalize():f}%)"
        else:
            discount_label = "Discount (fixed)"

    change_due = max(sale.paid_total - sale.total, ZERO)
    return Receipt(
        sale_id=sale.id,
        title="Return Receipt" if sale.status == SaleStatus.RETURN else "Sale Receipt",
        created_at=sale.created_at,
        customer_name=sale.customer.name,
        lines=lines,
        subtotal=sale.totals.subtotal,
        discount_label=discount_label,
        discount_amount=sale.totals.discount_amount,
        tax_label=f"Tax ({_format_rate(tax_rate)})",
        tax=sale.totals.tax,
        total=sale.total,
        payments=[
            ReceiptPayment(method_id=tender.method_id, method_name=names.get(tender.method_id, "Unknown"), amount=tender.amount)
            for tender in sale.tenders
        ],
        change_due=change_due if change_due > DEFAULT_TOLERANCE else ZERO,
        pending_sync=sale.is_queued,
        voided=sale.status == SaleStatus.VOIDED,
    )
