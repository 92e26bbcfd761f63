from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as ModelValidationError

from .age_gate import AgeVerificationGate, GateOutcome, IdScanOutcome, PendingAddRequest
from .cart import Cart, CartResult
from .config import PosConfig
from .exceptions import PosError
from .finalizer import TransactionFinalizer
from .gateway import PaymentGateway
from .holds import HeldOrderRegistry
from .locations import StockLocationCoordinator, availability, visible_products
from .logging import log_event
from .models_cart import CartTotals, Discount, DiscountType, SaleMode
from .models_catalog import DEFAULT_PAYMENT_METHODS, Customer, CustomerRef, PaymentMethod, Product, resolve_walk_in
from .models_sales import Sale
from .offline import OfflineSaleQueue
from .payments import PaymentReconciler, resolve_shortcut
from .permissions import (
    POS_ACCESS,
    POS_APPLY_DISCOUNT,
    POS_PROCESS_RETURN,
    POS_VOID_SALE,
    CapabilityChecker,
)
from .pricing import compute_totals, money
from .receipts import build_receipt
from .stores import CustomerDirectory, InMemoryTransferSink, LocationDirectory, ProductStore, TransferRequestSink
from .terminal import TerminalObserver, TerminalSession, TerminalTimings

logger = logging.getLogger(__name__)

TERMINAL_BUSY_MESSAGE = "Card payment in progress on the terminal"


@dataclass
class PosSession:
    """One cashier's sale screen.

    Every public method returns ``{"ok": bool, "error": str | None, ...}``;
    validation and permission problems are reported, never raised.
    """

    products: ProductStore
    finalizer: TransactionFinalizer
    gate: CapabilityChecker
    customers: CustomerDirectory
    location_id: str
    user_id: str = "cashier"
    config: PosConfig = field(default_factory=PosConfig)
    methods: tuple[PaymentMethod, ...] = DEFAULT_PAYMENT_METHODS
    gateway: PaymentGateway | None = None
    transfer_sink: TransferRequestSink | None = None
    location_directory: LocationDirectory | None = None
    cart: Cart = field(init=False)
    holds: HeldOrderRegistry = field(init=False)
    age_gate: AgeVerificationGate = field(init=False)
    locations: StockLocationCoordinator = field(init=False)
    mode: SaleMode = field(init=False, default=SaleMode.SALE)
    discount: Discount | None = field(init=False, default=None)
    customer: Customer | CustomerRef | None = field(init=False, default=None)
    passport_number: str | None = field(init=False, default=None)
    nationality: str | None = field(init=False, default=None)
    reconciler: PaymentReconciler | None = field(init=False, default=None)
    terminal: TerminalSession | None = field(init=False, default=None)
    last_sale: Sale | None = field(init=False, default=None)
    error_message: str | None = field(init=False, default=None)
    _verified_add: CartResult | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.cart = Cart()
        self.holds = HeldOrderRegistry()
        self.age_gate = AgeVerificationGate(
            minimum_age=self.config.minimum_age,
            id_scanning_enabled=self.config.id_scanning_enabled,
            scanner_delay_seconds=self.config.scanner_delay_seconds,
            on_verified=self._add_verified,
        )
        self.locations = StockLocationCoordinator(
            self.transfer_sink if self.transfer_sink is not None else InMemoryTransferSink(),
            default_quantity=self.config.transfer_default_qty,
        )
        self.customer = resolve_walk_in(self.customers.list_customers())

    # catalog

    def visible_products(self, search: str | None = None) -> list[Product]:
        return visible_products(self.products.list_products(), self.location_id, search)

    # cart

    def add_product(self, product_id: str) -> dict[str, Any]:
        if not self.gate.has_capability(POS_ACCESS):
            return {"ok": False, "error": "You do not have permission to use the POS"}
        if self.terminal is not None:
            return self._terminal_busy()
        product = self.products.get_product(product_id)
        if product is None:
            return {"ok": False, "error": f"Unknown product {product_id}"}
        if product.is_not_for_sale:
            return {"ok": False, "error": f"{product.name} is not for sale", "code": "NOT_FOR_SALE"}
        if product.location_id != self.location_id:
            payload: dict[str, Any] = {
                "ok": False,
                "error": f"{product.name} is stocked at {self._location_name(product.location_id)}",
                "code": "OTHER_LOCATION",
                "cart": self.cart.lines,
            }
            self._offer_transfer(payload, product)
            return payload
        try:
            request = self.age_gate.request(product, self.mode)
        except PosError as exc:
            return self._fail(exc)
        if request is not None:
            return {"ok": True, "error": None, "pending_verification": True, "request_id": request.request_id}

        result = self.cart.add_line(product, self.mode)
        if result.ok:
            self._invalidate_payment()
        payload = self._cart_result(result)
        if not result.ok and product.stock <= 0:
            self._offer_transfer(payload, product)
        return payload

    def set_quantity(self, product_id: str, quantity: int) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        current = self.products.get_product(product_id)
        stock = current.stock if current is not None else None
        result = self.cart.set_quantity(product_id, quantity, self.mode, stock=stock)
        self._invalidate_payment()
        return self._cart_result(result)

    def remove_line(self, product_id: str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        result = self.cart.remove_line(product_id)
        self._invalidate_payment()
        return self._cart_result(result)

    def override_price(self, product_id: str, new_price: Decimal | float | str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        try:
            result = self.cart.override_price(product_id, new_price, gate=self.gate)
        except (InvalidOperation, ValueError):
            return {"ok": False, "error": "price must be a number"}
        if result.ok:
            self._invalidate_payment()
        return self._cart_result(result)

    def apply_discount(self, discount_type: DiscountType | str, value: Decimal | float | str) -> dict[str, Any]:
        if not self.gate.has_capability(POS_APPLY_DISCOUNT):
            return {"ok": False, "error": "You do not have permission to apply discounts"}
        if self.terminal is not None:
            return self._terminal_busy()
        try:
            discount = Discount(type=DiscountType(discount_type), value=Decimal(str(value)))
        except (ModelValidationError, InvalidOperation, ValueError):
            return {"ok": False, "error": "Discount must be a non-negative number"}
        if discount.type == DiscountType.PERCENTAGE and discount.value > 100:
            return {"ok": False, "error": "Percentage discount cannot exceed 100"}
        self.discount = discount
        self._invalidate_payment()
        return {"ok": True, "error": None, "totals": self._totals()}

    def clear_discount(self) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        self.discount = None
        self._invalidate_payment()
        return {"ok": True, "error": None, "totals": self._totals()}

    def set_mode(self, mode: SaleMode | str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        try:
            target = SaleMode(mode)
        except ValueError:
            return {"ok": False, "error": f"Unknown mode {mode!r}"}
        if target == SaleMode.RETURN and not self.gate.has_capability(POS_PROCESS_RETURN):
            return {"ok": False, "error": "You do not have permission to process returns"}
        self.mode = target
        self._invalidate_payment()
        return {"ok": True, "error": None, "mode": self.mode}

    def select_customer(self, customer_id: str) -> dict[str, Any]:
        for customer in self.customers.list_customers():
            if customer.id == customer_id:
                self.customer = customer
                return {"ok": True, "error": None, "customer": CustomerRef(id=customer.id, name=customer.name)}
        return {"ok": False, "error": f"Unknown customer {customer_id}"}

    def set_traveller_details(self, passport_number: str | None, nationality: str | None) -> dict[str, Any]:
        self.passport_number = (passport_number or "").strip() or None
        self.nationality = (nationality or "").strip() or None
        return {"ok": True, "error": None}

    def totals(self) -> dict[str, Any]:
        return {"ok": True, "error": None, "totals": self._totals(), "errors": dict(self.cart.errors)}

    # age verification

    def verify_age_birth_date(self, year: int | str, month: int | str, day: int | str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        try:
            outcome = self.age_gate.verify_birth_date(year, month, day)
        except PosError as exc:
            return self._fail(exc)
        return self._gate_result(outcome)

    def verify_age_id_scan(self, outcome: IdScanOutcome | str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        try:
            result = self.age_gate.verify_id_scan(outcome)
        except PosError as exc:
            return self._fail(exc)
        except ValueError:
            return {"ok": False, "error": f"Unknown scan outcome {outcome!r}"}
        return self._gate_result(result)

    async def verify_age_with_scanner(self) -> dict[str, Any]:
        try:
            outcome = await self.age_gate.verify_with_scanner()
        except PosError as exc:
            return self._fail(exc)
        return self._gate_result(outcome)

    def cancel_age_verification(self) -> dict[str, Any]:
        outcome = self.age_gate.cancel()
        return {"ok": True, "error": None, "state": outcome.state, "cart": self.cart.lines}

    def _add_verified(self, request: PendingAddRequest) -> None:
        if self.terminal is not None:
            self._verified_add = CartResult(ok=False, error=TERMINAL_BUSY_MESSAGE)
            return
        current = self.products.get_product(request.product_id) or request.product
        self._verified_add = self.cart.add_line(current, request.mode)
        if self._verified_add.ok:
            self._invalidate_payment()

    def _gate_result(self, outcome: GateOutcome) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": outcome.verified,
            "error": outcome.reason,
            "state": outcome.state,
            "cart": self.cart.lines,
        }
        if outcome.verified and self._verified_add is not None:
            payload["ok"] = self._verified_add.ok
            payload["error"] = self._verified_add.error
            self._verified_add = None
        return payload

    # payment

    def start_payment(self) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if self.cart.is_empty:
            return {"ok": False, "error": "Cart is empty"}
        if self.customer is None:
            return {"ok": False, "error": "Select a customer before taking payment"}
        totals = self._totals()
        self.reconciler = PaymentReconciler(totals.total, self.methods, tolerance=self.config.payment_tolerance)
        return self._payment_payload()

    def add_tender(self, method_id: str, amount: Decimal | float | str | None = None) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if self.reconciler is None:
            return {"ok": False, "error": "Payment has not been started"}
        try:
            tender = self.reconciler.add_tender(method_id, amount)
        except PosError as exc:
            return self._fail(exc)
        except (InvalidOperation, ValueError):
            return {"ok": False, "error": "amount must be a number"}
        payload = self._payment_payload()
        payload["tender"] = tender
        return payload

    def press_shortcut(self, key: str, amount: Decimal | float | str | None = None) -> dict[str, Any]:
        method_id = resolve_shortcut(key)
        if method_id is None:
            return {"ok": False, "error": f"No payment method bound to {key!r}"}
        method = next((candidate for candidate in self.methods if candidate.id == method_id), None)
        if method is not None and method.is_integrated:
            return {"ok": False, "error": f"{method.name} payments must be taken on the terminal", "method_id": method_id}
        return self.add_tender(method_id, amount)

    async def add_terminal_tender(
        self,
        method_id: str = "pay_card",
        amount: Decimal | float | str | None = None,
        *,
        observer: TerminalObserver | None = None,
    ) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if self.reconciler is None:
            return {"ok": False, "error": "Payment has not been started"}
        if self.gateway is None:
            return {"ok": False, "error": "No payment terminal configured"}
        self.terminal = TerminalSession(
            self.gateway,
            observer=observer,
            timings=TerminalTimings.from_config(self.config),
        )
        try:
            result = await self.reconciler.add_integrated_tender(
                method_id,
                amount,
                terminal=self.terminal,
                currency=self.config.currency,
            )
        except PosError as exc:
            return self._fail(exc)
        finally:
            self.terminal = None
        payload = self._payment_payload()
        if result is None:
            return payload
        payload["ok"] = result.approved
        payload["error"] = None if result.approved else result.message
        payload["terminal"] = result
        return payload

    def cancel_terminal(self) -> dict[str, Any]:
        if self.terminal is None or not self.terminal.cancel():
            return {"ok": False, "error": "No terminal payment in progress"}
        return {"ok": True, "error": None}

    def remove_tender(self, tender_id: str) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if self.reconciler is None:
            return {"ok": False, "error": "Payment has not been started"}
        try:
            removed = self.reconciler.remove_tender(tender_id)
        except PosError as exc:
            return self._fail(exc)
        payload = self._payment_payload()
        if not removed:
            payload["ok"] = False
            payload["error"] = f"Unknown tender {tender_id}"
        return payload

    def checkout(self) -> dict[str, Any]:
        if not self.gate.has_capability(POS_ACCESS):
            return {"ok": False, "error": "You do not have permission to use the POS"}
        if self.terminal is not None:
            return self._terminal_busy()
        if self.reconciler is None:
            return {"ok": False, "error": "Payment has not been started"}
        try:
            tenders = self.reconciler.confirm()
        except PosError as exc:
            return self._fail(exc)
        try:
            outcome = self.finalizer.finalize(
                self.cart.lines,
                self.customer,
                tenders,
                self.discount,
                self.mode,
                passport_number=self.passport_number,
                nationality=self.nationality,
                location_id=self.location_id,
            )
        except PosError as exc:
            self.reconciler.reopen()
            return self._fail(exc)

        change_due = self.reconciler.change_due
        self.last_sale = outcome.sale
        self._reset_transaction()
        return {
            "ok": True,
            "error": None,
            "sale_id": outcome.sale.id,
            "sale": outcome.sale,
            "change_due": change_due,
            "pending_sync": outcome.pending_sync,
            "documents_available": outcome.documents_available,
            "receipt": build_receipt(outcome.sale, self.methods, tax_rate=self.config.tax_rate),
        }

    # holds

    def hold(self) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if self.customer is None:
            return {"ok": False, "error": "Select a customer before holding the order"}
        try:
            order = self.holds.hold(
                self.cart,
                self.customer,
                passport_number=self.passport_number,
                nationality=self.nationality,
            )
        except PosError as exc:
            return self._fail(exc)
        self._reset_transaction()
        return {"ok": True, "error": None, "order_id": order.id}

    def held_orders(self) -> list[dict[str, Any]]:
        return [
            {
                "id": order.id,
                "customer_name": order.customer_name,
                "items": sum(line.quantity for line in order.lines),
                "estimated_total": order.estimated_total(self.config.tax_rate),
                "held_at": order.held_at,
            }
            for order in self.holds.list()
        ]

    def resume(self, order_id: int, *, discard_current: bool = False) -> dict[str, Any]:
        if self.terminal is not None:
            return self._terminal_busy()
        if not self.cart.is_empty and not discard_current:
            return {
                "ok": False,
                "error": "Current cart is not empty; hold or clear it before resuming",
                "code": "CART_NOT_EMPTY",
            }
        try:
            order = self.holds.resume(order_id)
        except PosError as exc:
            return self._fail(exc)
        self._reset_transaction()
        self.cart.restore(order.lines)
        known = next((c for c in self.customers.list_customers() if c.id == order.customer_id), None)
        self.customer = known or CustomerRef(id=order.customer_id, name=order.customer_name)
        self.passport_number = order.passport_number
        self.nationality = order.nationality
        return {"ok": True, "error": None, "cart": self.cart.lines, "customer": self.customer}

    # locations

    def request_transfer(
        self,
        product_id: str,
        from_location_id: str,
        quantity: int | None = None,
    ) -> dict[str, Any]:
        product = self.products.get_product(product_id)
        if product is None:
            return {"ok": False, "error": f"Unknown product {product_id}"}
        try:
            request = self.locations.request_transfer(
                product,
                from_location_id,
                self.location_id,
                self.user_id,
                quantity,
            )
        except PosError as exc:
            return self._fail(exc)
        return {"ok": True, "error": None, "request": request}

    # completed sales

    def void_sale(self, sale_id: str) -> dict[str, Any]:
        if not self.gate.has_capability(POS_VOID_SALE):
            return {"ok": False, "error": "You do not have permission to void sales"}
        try:
            sale = self.finalizer.void(sale_id)
        except PosError as exc:
            return self._fail(exc)
        return {"ok": True, "error": None, "sale": sale}

    def attach_customer_email(self, sale_id: str, email: str) -> dict[str, Any]:
        try:
            sale = self.finalizer.attach_customer_email(sale_id, email)
        except PosError as exc:
            return self._fail(exc)
        return {"ok": True, "error": None, "sale": sale}

    def sync_offline_sales(self) -> dict[str, Any]:
        queue = self.finalizer.connectivity
        if not isinstance(queue, OfflineSaleQueue):
            return {"ok": False, "error": "Offline queue is not available"}
        if not queue.is_online:
            return {"ok": False, "error": "Still offline", "pending": len(queue)}
        try:
            synced = queue.drain(self.finalizer)
        except PosError as exc:
            payload = self._fail(exc)
            payload["pending"] = len(queue)
            return payload
        return {"ok": True, "error": None, "synced": synced, "pending": len(queue)}

    # helpers

    def _totals(self) -> CartTotals:
        return compute_totals(
            self.cart.lines,
            self.discount,
            tax_rate=self.config.tax_rate,
            clamp_fixed_discount=self.config.clamp_fixed_discount,
        )

    def _location_name(self, location_id: str) -> str:
        if self.location_directory is not None:
            for location in self.location_directory.list_locations():
                if location.id == location_id:
                    return location.name
        return location_id

    def _payment_payload(self) -> dict[str, Any]:
        reconciler = self.reconciler
        if reconciler is None:
            return {"ok": False, "error": "Payment has not been started"}
        totals = reconciler.totals()
        return {
            "ok": True,
            "error": None,
            "total": totals.total_due,
            "paid_total": totals.paid_total,
            "remaining": money(totals.missing_amount),
            "change_due": totals.change_due,
            "cash_total": totals.cash_total,
            "is_fully_paid": reconciler.is_fully_paid,
            "tenders": reconciler.tenders,
        }

    def _offer_transfer(self, payload: dict[str, Any], product: Product) -> None:
        info = availability(product, self.products.list_products(), location_id=self.location_id)
        payload["availability"] = info
        payload["transfer_sources"] = [
            {"location_id": entry.location_id, "location_name": self._location_name(entry.location_id), "stock": entry.stock}
            for entry in info.other_locations
        ]

    def _terminal_busy(self) -> dict[str, Any]:
        return {"ok": False, "error": TERMINAL_BUSY_MESSAGE, "code": "TERMINAL_BUSY"}

    def _cart_result(self, result: CartResult) -> dict[str, Any]:
        return {
            "ok": result.ok,
            "error": result.error,
            "cart": self.cart.lines,
            "errors": dict(self.cart.errors),
        }

    def _invalidate_payment(self) -> None:
        if self.reconciler is not None and not self.reconciler.confirmed:
            self.reconciler = None

    def _reset_transaction(self) -> None:
        self.cart.clear()
        self.discount = None
        self.reconciler = None
        self.passport_number = None
        self.nationality = None
        self.mode = SaleMode.SALE
        self.customer = resolve_walk_in(self.customers.list_customers())

    def _fail(self, exc: PosError) -> dict[str, Any]:
        self.error_message = exc.message
        log_event(logger, "session", "operation", "rejected", level=logging.DEBUG, code=exc.code)
        return {"ok": False, "error": exc.message, "code": exc.code, "details": exc.details}
