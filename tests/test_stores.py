from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from counter_pos.exceptions import InsufficientStockError, SaleNotFoundError, ValidationError
from counter_pos.ids import MonotonicIdSource
from counter_pos.models_catalog import CustomerRef
from counter_pos.models_sales import Sale
from counter_pos.pricing import compute_totals
from counter_pos.stores import InMemoryProductStore, InMemorySaleStore


def test_decrement_is_conditional(product_factory) -> None:
    store = InMemoryProductStore([product_factory("p-1", stock=2)])

    assert store.decrement_stock("p-1", 2).stock == 0
    with pytest.raises(InsufficientStockError) as excinfo:
        store.decrement_stock("p-1", 1)

    assert excinfo.value.details == {"product_id": "p-1", "available": 0, "requested": 1}
    assert store.get_product("p-1").stock == 0


def test_decrement_validates_input(product_factory) -> None:
    store = InMemoryProductStore([product_factory("p-1", stock=2)])

    with pytest.raises(ValidationError):
        store.decrement_stock("p-1", 0)
    with pytest.raises(ValidationError):
        store.decrement_stock("p-missing", 1)


def test_adjust_stock_returns_updated_snapshot(product_factory) -> None:
    store = InMemoryProductStore([product_factory("p-1", stock=2)])

    assert store.adjust_stock("p-1", 3).stock == 5


def test_update_unknown_sale_raises() -> None:
    sale = Sale(
        id="SALE-x",
        created_at=datetime.now(timezone.utc),
        customer=CustomerRef(id="c", name="C"),
        lines=[],
        totals=compute_totals([]),
        total=Decimal("0.00"),
    )

    with pytest.raises(SaleNotFoundError):
        InMemorySaleStore().update_sale(sale)


def test_monotonic_ids_never_repeat() -> None:
    ticks = iter([5, 5, 3, 9])
    source = MonotonicIdSource(clock=lambda: next(ticks))

    assert [source.next_id() for _ in range(4)] == [5, 6, 7, 9]
    assert MonotonicIdSource(clock=lambda: 1).next_token("TR") == "TR1"
