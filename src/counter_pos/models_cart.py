from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models_catalog import Product


class SaleMode(str, Enum):
    SALE = "sale"
    RETURN = "return"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Discount(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    type: DiscountType
    value: Decimal = Field(ge=0)

    @classmethod
    def percentage(cls, value: Decimal | float | str) -> "Discount":
        return cls(type=DiscountType.PERCENTAGE, value=Decimal(str(value)))

    @classmethod
    def fixed(cls, value: Decimal | float | str) -> "Discount":
        return cls(type=DiscountType.FIXED, value=Decimal(str(value)))


class CartLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    product: Product
    quantity: int = Field(gt=0)
    price: Decimal
    original_price: Decimal | None = None

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def pricing_unit_price(self) -> Decimal:
        return self.original_price if self.original_price is not None else self.price

    @classmethod
    def for_product(cls, product: Product, quantity: int = 1) -> "CartLine":
        return cls(product=product, quantity=quantity, price=product.price)


class CartTotals(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    subtotal: Decimal
    discount_amount: Decimal
    tax: Decimal
    total: Decimal
