from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .models_cart import CartLine, SaleMode
from .models_catalog import Product
from .permissions import POS_CHANGE_PRICE, CapabilityChecker
from .pricing import money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartResult:
    ok: bool
    error: str | None = None
    line: CartLine | None = None


def stock_ceiling_message(stock: int) -> str:
    return f"Max: {stock}"


class Cart:
    """Line items of the active transaction, unique by product id.

    Stock ceilings are checked against the product snapshot passed in at
    mutation time; nothing here touches stock. Ceiling hits are advisory and
    recorded in ``errors`` keyed by product id.
    """

    def __init__(self, lines: Iterable[CartLine] | None = None) -> None:
        self._lines: list[CartLine] = list(lines or [])
        self.errors: dict[str, str] = {}

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def find(self, product_id: str) -> CartLine | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def quantity_of(self, product_id: str) -> int:
        line = self.find(product_id)
        return line.quantity if line else 0

    def add_line(self, product: Product, mode: SaleMode = SaleMode.SALE) -> CartResult:
        if mode == SaleMode.SALE and product.stock <= 0:
            return CartResult(ok=False, error="Out of stock")

        self.errors.pop(product.id, None)
        index = self._index_of(product.id)
        if index is None:
            line = CartLine.for_product(product)
            self._lines.append(line)
            return CartResult(ok=True, line=line)

        existing = self._lines[index]
        quantity = existing.quantity + 1
        if mode == SaleMode.SALE and quantity > product.stock:
            self.errors[product.id] = stock_ceiling_message(product.stock)
            return CartResult(ok=False, error=self.errors[product.id], line=existing)

        line = existing.model_copy(update={"quantity": quantity, "product": product})
        self._lines[index] = line
        return CartResult(ok=True, line=line)

    def set_quantity(
        self,
        product_id: str,
        quantity: int,
        mode: SaleMode = SaleMode.SALE,
        *,
        stock: int | None = None,
    ) -> CartResult:
        index = self._index_of(product_id)
        if index is None:
            return CartResult(ok=False, error="Product is not in the cart")

        self.errors.pop(product_id, None)
        if quantity <= 0:
            self._lines.pop(index)
            return CartResult(ok=True)

        existing = self._lines[index]
        ceiling = existing.product.stock if stock is None else stock
        if mode == SaleMode.SALE and quantity > ceiling:
            self.errors[product_id] = stock_ceiling_message(ceiling)
            if ceiling <= 0:
                self._lines.pop(index)
                return CartResult(ok=False, error=self.errors[product_id])
            line = existing.model_copy(update={"quantity": ceiling})
            self._lines[index] = line
            return CartResult(ok=False, error=self.errors[product_id], line=line)

        line = existing.model_copy(update={"quantity": quantity})
        self._lines[index] = line
        return CartResult(ok=True, line=line)

    def remove_line(self, product_id: str) -> CartResult:
        self._lines = [line for line in self._lines if line.product_id != product_id]
        self.errors.pop(product_id, None)
        return CartResult(ok=True)

    def override_price(
        self,
        product_id: str,
        new_price: Decimal | float | str,
        *,
        gate: CapabilityChecker,
    ) -> CartResult:
        if not gate.has_capability(POS_CHANGE_PRICE):
            return CartResult(ok=False, error="You do not have permission to change prices")
        index = self._index_of(product_id)
        if index is None:
            return CartResult(ok=False, error="Product is not in the cart")
        price = money(new_price)
        if price < 0:
            return CartResult(ok=False, error="price must not be negative")

        existing = self._lines[index]
        original = existing.original_price if existing.original_price is not None else existing.price
        line = existing.model_copy(update={"price": price, "original_price": original})
        self._lines[index] = line
        logger.info("cart_price_override", extra={"product_id": product_id, "price": str(price)})
        return CartResult(ok=True, line=line)

    def clear(self) -> None:
        self._lines = []
        self.errors = {}

    def snapshot(self) -> list[CartLine]:
        return [line.model_copy(deep=True) for line in self._lines]

    def restore(self, lines: Iterable[CartLine]) -> None:
        self._lines = [line.model_copy(deep=True) for line in lines]
        self.errors = {}

    def _index_of(self, product_id: str) -> int | None:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        return None
