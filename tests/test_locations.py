from __future__ import annotations

import pytest

from counter_pos.exceptions import ValidationError
from counter_pos.locations import StockLocationCoordinator, availability, is_low_stock, visible_products
from counter_pos.models_transfers import TransferRequestStatus
from counter_pos.stores import InMemoryTransferSink


def test_visible_products_filters_location_and_not_for_sale(catalog) -> None:
    ids = [product.id for product in visible_products(catalog, "loc-main")]

    assert ids == ["p-beans", "p-mug", "p-wine"]


def test_visible_products_search_matches_name_or_sku(catalog) -> None:
    assert [p.id for p in visible_products(catalog, "loc-main", "coffee")] == ["p-beans"]
    assert [p.id for p in visible_products(catalog, "loc-main", "wine")] == ["p-wine"]
    assert visible_products(catalog, "loc-main", "zzz") == []


def test_availability_lists_other_locations_by_sku(catalog) -> None:
    mug = next(product for product in catalog if product.id == "p-mug")

    info = availability(mug, catalog)

    assert info.in_stock_here is False
    assert [(entry.location_id, entry.stock) for entry in info.other_locations] == [("loc-warehouse", 8)]
    assert info.can_request_transfer is True


def test_in_stock_product_offers_no_transfer(catalog) -> None:
    beans = next(product for product in catalog if product.id == "p-beans")

    assert availability(beans, catalog).can_request_transfer is False


def test_request_transfer_emits_pending_request(catalog) -> None:
    sink = InMemoryTransferSink()
    coordinator = StockLocationCoordinator(sink)
    mug = next(product for product in catalog if product.id == "p-mug")

    request = coordinator.request_transfer(mug, "loc-warehouse", "loc-main", "user-1")

    assert request.status == TransferRequestStatus.PENDING
    assert request.quantity == 1
    assert request.sku == "MUG"
    assert sink.requests == [request]


def test_request_transfer_rejects_same_location(catalog) -> None:
    coordinator = StockLocationCoordinator(InMemoryTransferSink())

    with pytest.raises(ValidationError):
        coordinator.request_transfer(catalog[0], "loc-main", "loc-main", "user-1")


def test_low_stock_uses_reorder_point(product_factory) -> None:
    assert is_low_stock(product_factory("p-1", stock=3, reorder_point=3)) is True
    assert is_low_stock(product_factory("p-1", stock=4, reorder_point=3)) is False


def test_availability_from_the_asking_location(catalog) -> None:
    warehouse_mug = next(product for product in catalog if product.id == "p-mug-wh")

    info = availability(warehouse_mug, catalog, location_id="loc-main")

    assert info.in_stock_here is False
    assert [entry.location_id for entry in info.other_locations] == ["loc-warehouse"]
    assert info.can_request_transfer is True
