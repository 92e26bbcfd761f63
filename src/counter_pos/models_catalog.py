from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict

WALK_IN_CUSTOMER_NAME = "Walk-in Customer"


class Product(BaseModel):
    """Point-in-time copy of a product as seen by the sale screen."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    sku: str
    price: Decimal
    cost_price: Decimal = Decimal("0.00")
    stock: int = 0
    reorder_point: int = 0
    location_id: str
    is_age_restricted: bool = False
    is_not_for_sale: bool = False


class Customer(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    email: str | None = None


class CustomerRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str


class BusinessLocation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str


class PaymentMethodKind(str, Enum):
    CASH = "cash"
    CARD = "card"
    INTEGRATED = "integrated"
    OTHER = "other"


class PaymentMethod(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    kind: PaymentMethodKind = PaymentMethodKind.OTHER

    @property
    def is_cash(self) -> bool:
        return self.kind == PaymentMethodKind.CASH

    @property
    def is_integrated(self) -> bool:
        return self.kind == PaymentMethodKind.INTEGRATED


DEFAULT_PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    PaymentMethod(id="pay_cash", name="Cash", kind=PaymentMethodKind.CASH),
    PaymentMethod(id="pay_card", name="Card", kind=PaymentMethodKind.INTEGRATED),
    PaymentMethod(id="pay_qr", name="QR Code", kind=PaymentMethodKind.OTHER),
)


def resolve_walk_in(customers: list[Customer]) -> Customer | None:
    for customer in customers:
        if customer.name == WALK_IN_CUSTOMER_NAME:
            return customer
    return customers[0] if customers else None
