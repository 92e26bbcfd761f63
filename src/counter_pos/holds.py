from __future__ import annotations

import logging
from datetime import datetime, timezone

from .cart import Cart
from .exceptions import HeldOrderNotFoundError, ValidationError
from .ids import MonotonicIdSource
from .logging import log_event
from .models_catalog import Customer, CustomerRef
from .models_sales import HeldOrder

logger = logging.getLogger(__name__)


class HeldOrderRegistry:
    """Parked carts for one terminal session. Each order resumes at most once."""

    def __init__(self, ids: MonotonicIdSource | None = None) -> None:
        self._ids = ids or MonotonicIdSource()
        self._orders: list[HeldOrder] = []

    def __len__(self) -> int:
        return len(self._orders)

    def list(self) -> list[HeldOrder]:
        return list(self._orders)

    def hold(
        self,
        cart: Cart,
        customer: Customer | CustomerRef,
        *,
        passport_number: str | None = None,
        nationality: str | None = None,
    ) -> HeldOrder:
        if cart.is_empty:
            raise ValidationError(code="EMPTY_CART", message="Cannot hold an empty cart")
        order = HeldOrder(
            id=self._ids.next_id(),
            lines=cart.snapshot(),
            customer_id=customer.id,
            customer_name=customer.name,
            passport_number=passport_number,
            nationality=nationality,
            held_at=datetime.now(timezone.utc),
        )
        self._orders.append(order)
        cart.clear()
        log_event(logger, "holds", "hold", "success", order_id=order.id, line_count=len(order.lines))
        return order

    def resume(self, order_id: int) -> HeldOrder:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                self._orders.pop(index)
                log_event(logger, "holds", "resume", "success", order_id=order_id)
                return order
        log_event(logger, "holds", "resume", "not_found", level=logging.WARNING, order_id=order_id)
        raise HeldOrderNotFoundError(code="HELD_ORDER_NOT_FOUND", message=f"Held order {order_id} not found")
