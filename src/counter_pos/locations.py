from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from .exceptions import ValidationError
from .ids import MonotonicIdSource
from .logging import log_event
from .models_catalog import Product
from .models_transfers import LocationStock, ProductAvailability, StockTransferRequest, TransferRequestStatus
from .stores import TransferRequestSink

logger = logging.getLogger(__name__)


def visible_products(products: Iterable[Product], location_id: str, search: str | None = None) -> list[Product]:
    term = (search or "").strip().lower()
    visible = []
    for product in products:
        if product.location_id != location_id or product.is_not_for_sale:
            continue
        if term and term not in product.name.lower() and term not in product.sku.lower():
            continue
        visible.append(product)
    return visible


def availability(
    product: Product,
    products: Iterable[Product],
    location_id: str | None = None,
) -> ProductAvailability:
    """Where else this SKU has stock; the same SKU at another location is the same item.

    ``location_id`` is the location asking, defaulting to the product's own.
    """
    here = location_id or product.location_id
    others = [
        LocationStock(location_id=candidate.location_id, product_id=candidate.id, stock=candidate.stock)
        for candidate in products
        if candidate.sku == product.sku and candidate.location_id != here and candidate.stock > 0
    ]
    in_stock_here = product.location_id == here and product.stock > 0
    return ProductAvailability(product_id=product.id, in_stock_here=in_stock_here, other_locations=others)


def is_low_stock(product: Product) -> bool:
    return product.stock <= product.reorder_point


class StockLocationCoordinator:
    def __init__(
        self,
        sink: TransferRequestSink,
        *,
        default_quantity: int = 1,
        ids: MonotonicIdSource | None = None,
    ) -> None:
        self.sink = sink
        self.default_quantity = default_quantity
        self._ids = ids or MonotonicIdSource()

    def can_request_transfer(self, product: Product, products: Iterable[Product]) -> bool:
        return availability(product, products).can_request_transfer

    def request_transfer(
        self,
        product: Product,
        from_location_id: str,
        to_location_id: str,
        requesting_user_id: str,
        quantity: int | None = None,
    ) -> StockTransferRequest:
        if from_location_id == to_location_id:
            raise ValidationError(
                code="INVALID_TRANSFER",
                message="origin and destination locations must differ",
            )
        qty = self.default_quantity if quantity is None else quantity
        if qty < 1:
            raise ValidationError(code="INVALID_TRANSFER", message="quantity must be at least 1")
        request = StockTransferRequest(
            id=self._ids.next_token("TR"),
            product_id=product.id,
            sku=product.sku,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            quantity=qty,
            requesting_user_id=requesting_user_id,
            status=TransferRequestStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        submitted = self.sink.submit(request)
        log_event(
            logger,
            "locations",
            "request_transfer",
            "pending",
            request_id=submitted.id,
            sku=product.sku,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            quantity=qty,
        )
        return submitted
