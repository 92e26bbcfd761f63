from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from .config import PosConfig
from .exceptions import InsufficientStockError, PaymentIncompleteError, SaleNotFoundError, SaleStateError, ValidationError
from .ids import MonotonicIdSource
from .logging import log_event
from .models_cart import CartLine, Discount, SaleMode
from .models_catalog import Customer, CustomerRef
from .models_payments import Tender
from .models_sales import Sale, SaleStatus
from .payments import DEFAULT_TOLERANCE, compute_payment_totals
from .pricing import DEFAULT_TAX_RATE, compute_totals
from .stores import Connectivity, ProductStore, SaleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleFinalized:
    sale: Sale
    documents_available: bool

    @property
    def pending_sync(self) -> bool:
        return self.sale.is_queued


class TransactionFinalizer:
    """Turns a confirmed cart into a Sale.

    A Sale is a commit point: once ``finalize`` returns, stock has been
    decremented and the sale persisted, or the sale sits in the offline queue
    with stock untouched until it is replayed through ``commit``.
    """

    def __init__(
        self,
        products: ProductStore,
        sales: SaleStore,
        connectivity: Connectivity,
        *,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        clamp_fixed_discount: bool = False,
        restock_on_void: bool = False,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        ids: MonotonicIdSource | None = None,
    ) -> None:
        self.products = products
        self.sales = sales
        self.connectivity = connectivity
        self.tax_rate = tax_rate
        self.clamp_fixed_discount = clamp_fixed_discount
        self.restock_on_void = restock_on_void
        self.tolerance = tolerance
        self._ids = ids or MonotonicIdSource()

    @classmethod
    def from_config(
        cls,
        config: PosConfig,
        products: ProductStore,
        sales: SaleStore,
        connectivity: Connectivity,
    ) -> "TransactionFinalizer":
        return cls(
            products,
            sales,
            connectivity,
            tax_rate=config.tax_rate,
            clamp_fixed_discount=config.clamp_fixed_discount,
            restock_on_void=config.restock_on_void,
            tolerance=config.payment_tolerance,
        )

    def finalize(
        self,
        lines: Sequence[CartLine],
        customer: Customer | CustomerRef | None,
        tenders: Sequence[Tender],
        discount: Discount | None = None,
        mode: SaleMode = SaleMode.SALE,
        *,
        passport_number: str | None = None,
        nationality: str | None = None,
        location_id: str | None = None,
    ) -> SaleFinalized:
        if not lines:
            raise ValidationError(code="EMPTY_CART", message="Cart is empty")
        if customer is None:
            raise ValidationError(code="CUSTOMER_REQUIRED", message="Select a customer before completing the sale")

        totals = compute_totals(
            lines,
            discount,
            tax_rate=self.tax_rate,
            clamp_fixed_discount=self.clamp_fixed_discount,
        )
        payment = compute_payment_totals(totals.total, tenders)
        if payment.missing_amount > self.tolerance:
            raise PaymentIncompleteError(
                code="PAYMENT_INCOMPLETE",
                message="Tenders do not cover the sale total",
                details={"missing_amount": str(payment.missing_amount)},
            )

        sale = Sale(
            id="",
            created_at=datetime.now(timezone.utc),
            customer=CustomerRef(id=customer.id, name=customer.name),
            lines=[line.model_copy(deep=True) for line in lines],
            totals=totals,
            total=totals.total,
            tenders=list(tenders),
            discount=discount,
            status=SaleStatus.RETURN if mode == SaleMode.RETURN else SaleStatus.COMPLETED,
            location_id=location_id,
            passport_number=passport_number,
            nationality=nationality,
        )

        if not self.connectivity.is_online:
            offline_id = self._ids.next_token("OFFLINE-")
            queued = self.connectivity.enqueue_sale(sale.model_copy(update={"id": offline_id, "offline_id": offline_id}))
            log_event(logger, "finalizer", "finalize", "queued", sale_id=queued.id, total=str(queued.total))
            return SaleFinalized(sale=queued, documents_available=False)

        committed = self.commit(sale)
        return SaleFinalized(sale=committed, documents_available=True)

    def commit(self, sale: Sale) -> Sale:
        """Decrement stock and persist; all-or-nothing on the stock side."""
        if sale.status == SaleStatus.COMPLETED:
            self._decrement(sale.lines)
        committed = sale.model_copy(update={"id": self._ids.next_token("SALE"), "is_queued": False})
        self.sales.add_sale(committed)
        log_event(
            logger,
            "finalizer",
            "finalize",
            "success",
            sale_id=committed.id,
            offline_id=committed.offline_id,
            status=committed.status.value,
            total=str(committed.total),
        )
        return committed

    def void(self, sale_id: str) -> Sale:
        sale = self._require_sale(sale_id)
        if sale.status != SaleStatus.COMPLETED:
            raise SaleStateError(
                code="INVALID_SALE_STATE",
                message=f"Only completed sales can be voided (sale is {sale.status.value})",
            )
        if self.restock_on_void:
            for line in sale.lines:
                self.products.adjust_stock(line.product_id, line.quantity)
        voided = self.sales.update_sale(sale.model_copy(update={"status": SaleStatus.VOIDED}))
        log_event(logger, "finalizer", "void", "success", sale_id=sale_id, restocked=self.restock_on_void)
        return voided

    def attach_customer_email(self, sale_id: str, email: str) -> Sale:
        value = (email or "").strip()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValidationError(code="INVALID_EMAIL", message="A valid email address is required")
        sale = self._require_sale(sale_id)
        updated = self.sales.update_sale(sale.model_copy(update={"customer_email_for_docs": value}))
        log_event(logger, "finalizer", "attach_email", "success", sale_id=sale_id)
        return updated

    def _decrement(self, lines: Sequence[CartLine]) -> None:
        done: list[CartLine] = []
        try:
            for line in lines:
                self.products.decrement_stock(line.product_id, line.quantity)
                done.append(line)
        except InsufficientStockError:
            for line in done:
                self.products.adjust_stock(line.product_id, line.quantity)
            log_event(logger, "finalizer", "finalize", "insufficient_stock", level=logging.WARNING)
            raise

    def _require_sale(self, sale_id: str) -> Sale:
        sale = self.sales.get_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(code="SALE_NOT_FOUND", message=f"Sale {sale_id} not found")
        return sale
