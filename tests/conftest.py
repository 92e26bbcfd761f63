from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

sys.path.insert(0, str(SRC_DIR))

from counter_pos.config import PosConfig  # noqa: E402
from counter_pos.finalizer import TransactionFinalizer  # noqa: E402
from counter_pos.gateway import ScriptedGateway  # noqa: E402
from counter_pos.models_catalog import BusinessLocation, Customer, Product  # noqa: E402
from counter_pos.offline import OfflineSaleQueue  # noqa: E402
from counter_pos.permissions import PermissionGate  # noqa: E402
from counter_pos.session import PosSession  # noqa: E402
from counter_pos.stores import (  # noqa: E402
    InMemoryDirectory,
    InMemoryProductStore,
    InMemorySaleStore,
    InMemoryTransferSink,
)

LOCATION = "loc-main"
WAREHOUSE = "loc-warehouse"


def make_product(
    product_id: str = "p-1",
    *,
    price: str = "10.00",
    stock: int = 5,
    sku: str | None = None,
    location_id: str = LOCATION,
    **extra,
) -> Product:
    return Product(
        id=product_id,
        name=extra.pop("name", f"Product {product_id}"),
        sku=sku or f"SKU-{product_id}",
        price=Decimal(price),
        stock=stock,
        location_id=location_id,
        **extra,
    )


@pytest.fixture
def fast_config() -> PosConfig:
    return PosConfig(
        terminal_init_seconds=0.0,
        terminal_card_wait_seconds=0.0,
        terminal_processing_seconds=0.0,
        scanner_delay_seconds=0.0,
    )


@pytest.fixture
def catalog() -> list[Product]:
    return [
        make_product("p-beans", price="25.00", stock=10, name="Coffee Beans", sku="BEANS"),
        make_product("p-mug", price="12.50", stock=0, name="Mug", sku="MUG"),
        make_product("p-mug-wh", price="12.50", stock=8, name="Mug", sku="MUG", location_id=WAREHOUSE),
        make_product("p-wine", price="18.00", stock=6, name="Red Wine", sku="WINE", is_age_restricted=True),
        make_product("p-hidden", price="1.00", stock=3, name="Internal", sku="INT", is_not_for_sale=True),
    ]


@pytest.fixture
def product_store(catalog) -> InMemoryProductStore:
    return InMemoryProductStore(catalog)


@pytest.fixture
def sale_store() -> InMemorySaleStore:
    return InMemorySaleStore()


@pytest.fixture
def offline_queue() -> OfflineSaleQueue:
    return OfflineSaleQueue()


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory(
        customers=[Customer(id="c-ana", name="Ana Ruiz"), Customer(id="c-walkin", name="Walk-in Customer")],
        locations=[BusinessLocation(id=LOCATION, name="Main"), BusinessLocation(id=WAREHOUSE, name="Warehouse")],
    )


@pytest.fixture
def finalizer(product_store, sale_store, offline_queue, fast_config) -> TransactionFinalizer:
    return TransactionFinalizer.from_config(fast_config, product_store, sale_store, offline_queue)


@pytest.fixture
def transfer_sink() -> InMemoryTransferSink:
    return InMemoryTransferSink()


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def session(product_store, finalizer, directory, fast_config, gateway, transfer_sink) -> PosSession:
    return PosSession(
        products=product_store,
        finalizer=finalizer,
        gate=PermissionGate.allow_all(),
        customers=directory,
        location_id=LOCATION,
        config=fast_config,
        gateway=gateway,
        transfer_sink=transfer_sink,
        location_directory=directory,
    )


@pytest.fixture
def product_factory():
    return make_product
