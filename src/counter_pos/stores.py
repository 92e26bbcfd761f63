from __future__ import annotations

import threading
from typing import Iterable, Protocol

from .exceptions import InsufficientStockError, SaleNotFoundError, ValidationError
from .models_catalog import BusinessLocation, Customer, Product
from .models_sales import Sale
from .models_transfers import StockTransferRequest


class ProductStore(Protocol):
    def list_products(self) -> list[Product]: ...

    def get_product(self, product_id: str) -> Product | None: ...

    def decrement_stock(self, product_id: str, quantity: int) -> Product: ...

    def adjust_stock(self, product_id: str, delta: int) -> Product: ...


class SaleStore(Protocol):
    def add_sale(self, sale: Sale) -> Sale: ...

    def get_sale(self, sale_id: str) -> Sale | None: ...

    def update_sale(self, sale: Sale) -> Sale: ...

    def list_sales(self) -> list[Sale]: ...


class Connectivity(Protocol):
    @property
    def is_online(self) -> bool: ...

    def enqueue_sale(self, sale: Sale) -> Sale: ...


class TransferRequestSink(Protocol):
    def submit(self, request: StockTransferRequest) -> StockTransferRequest: ...


class CustomerDirectory(Protocol):
    def list_customers(self) -> list[Customer]: ...


class LocationDirectory(Protocol):
    def list_locations(self) -> list[BusinessLocation]: ...


class InMemoryProductStore:
    """Product store whose decrement only succeeds when enough stock is left."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: dict[str, Product] = {product.id: product for product in products}
        self._lock = threading.Lock()

    def list_products(self) -> list[Product]:
        return list(self._products.values())

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def decrement_stock(self, product_id: str, quantity: int) -> Product:
        if quantity <= 0:
            raise ValidationError(code="INVALID_QUANTITY", message="quantity must be greater than 0")
        with self._lock:
            product = self._require(product_id)
            if product.stock < quantity:
                raise InsufficientStockError(
                    code="INSUFFICIENT_STOCK",
                    message=f"Only {product.stock} of {product.sku} left",
                    details={"product_id": product_id, "available": product.stock, "requested": quantity},
                )
            updated = product.model_copy(update={"stock": product.stock - quantity})
            self._products[product_id] = updated
            return updated

    def adjust_stock(self, product_id: str, delta: int) -> Product:
        with self._lock:
            product = self._require(product_id)
            updated = product.model_copy(update={"stock": product.stock + delta})
            self._products[product_id] = updated
            return updated

    def _require(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise ValidationError(code="UNKNOWN_PRODUCT", message=f"Unknown product {product_id!r}")
        return product


class InMemorySaleStore:
    def __init__(self) -> None:
        self._sales: dict[str, Sale] = {}

    def add_sale(self, sale: Sale) -> Sale:
        self._sales[sale.id] = sale
        return sale

    def get_sale(self, sale_id: str) -> Sale | None:
        return self._sales.get(sale_id)

    def update_sale(self, sale: Sale) -> Sale:
        if sale.id not in self._sales:
            raise SaleNotFoundError(code="SALE_NOT_FOUND", message=f"Sale {sale.id} not found")
        self._sales[sale.id] = sale
        return sale

    def list_sales(self) -> list[Sale]:
        return list(self._sales.values())


class InMemoryTransferSink:
    def __init__(self) -> None:
        self.requests: list[StockTransferRequest] = []

    def submit(self, request: StockTransferRequest) -> StockTransferRequest:
        self.requests.append(request)
        return request


class InMemoryDirectory:
    """Read-only customer and location lists for selectors."""

    def __init__(self, customers: Iterable[Customer] = (), locations: Iterable[BusinessLocation] = ()) -> None:
        self._customers = list(customers)
        self._locations = list(locations)

    def list_customers(self) -> list[Customer]:
        return list(self._customers)

    def list_locations(self) -> list[BusinessLocation]:
        return list(self._locations)
