from .age_gate import AgeVerificationGate, GateOutcome, GateState, IdScanOutcome, PendingAddRequest, compute_age
from .cart import Cart, CartResult
from .config import ConfigError, PosConfig, load_config
from .exceptions import (
    AgeVerificationError,
    GatewayError,
    HeldOrderNotFoundError,
    InsufficientStockError,
    PaymentIncompleteError,
    PosError,
    SaleNotFoundError,
    SaleStateError,
    TerminalCancelledError,
    TerminalError,
    ValidationError,
)
from .finalizer import SaleFinalized, TransactionFinalizer
from .gateway import PaymentGateway, RandomizedGateway, ScriptedGateway
from .holds import HeldOrderRegistry
from .locations import StockLocationCoordinator, availability, is_low_stock, visible_products
from .models_cart import CartLine, CartTotals, Discount, DiscountType, SaleMode
from .models_catalog import (
    DEFAULT_PAYMENT_METHODS,
    BusinessLocation,
    Customer,
    CustomerRef,
    PaymentMethod,
    PaymentMethodKind,
    Product,
)
from .models_payments import Tender, TerminalResult, TerminalStatus
from .models_sales import HeldOrder, Sale, SaleStatus
from .models_transfers import ProductAvailability, StockTransferRequest, TransferRequestStatus
from .offline import OfflineSaleQueue
from .payments import PaymentReconciler, PaymentTotals, compute_payment_totals, resolve_shortcut
from .permissions import PermissionGate
from .pricing import compute_totals, money
from .receipts import Receipt, build_receipt
from .session import PosSession
from .stores import InMemoryDirectory, InMemoryProductStore, InMemorySaleStore, InMemoryTransferSink
from .terminal import TerminalSession, TerminalTimings

__all__ = [
    "AgeVerificationError",
    "AgeVerificationGate",
    "BusinessLocation",
    "Cart",
    "CartLine",
    "CartResult",
    "CartTotals",
    "ConfigError",
    "Customer",
    "CustomerRef",
    "DEFAULT_PAYMENT_METHODS",
    "Discount",
    "DiscountType",
    "GateOutcome",
    "GateState",
    "GatewayError",
    "HeldOrder",
    "HeldOrderNotFoundError",
    "HeldOrderRegistry",
    "IdScanOutcome",
    "InMemoryDirectory",
    "InMemoryProductStore",
    "InMemorySaleStore",
    "InMemoryTransferSink",
    "InsufficientStockError",
    "OfflineSaleQueue",
    "PaymentGateway",
    "PaymentIncompleteError",
    "PaymentMethod",
    "PaymentMethodKind",
    "PaymentReconciler",
    "PaymentTotals",
    "PendingAddRequest",
    "PermissionGate",
    "PosConfig",
    "PosError",
    "PosSession",
    "Product",
    "ProductAvailability",
    "RandomizedGateway",
    "Receipt",
    "Sale",
    "SaleFinalized",
    "SaleMode",
    "SaleNotFoundError",
    "SaleStateError",
    "SaleStatus",
    "ScriptedGateway",
    "StockLocationCoordinator",
    "StockTransferRequest",
    "Tender",
    "TerminalCancelledError",
    "TerminalError",
    "TerminalResult",
    "TerminalSession",
    "TerminalStatus",
    "TerminalTimings",
    "TransactionFinalizer",
    "TransferRequestStatus",
    "ValidationError",
    "availability",
    "build_receipt",
    "compute_age",
    "compute_payment_totals",
    "compute_totals",
    "is_low_stock",
    "load_config",
    "money",
    "resolve_shortcut",
    "visible_products",
]
