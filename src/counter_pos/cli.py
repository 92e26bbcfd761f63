from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
from decimal import Decimal, InvalidOperation

from .config import ConfigError, PosConfig, load_config
from .finalizer import TransactionFinalizer
from .gateway import ScriptedGateway
from .logging import configure_logging
from .models_catalog import BusinessLocation, Customer, Product
from .offline import OfflineSaleQueue
from .permissions import PermissionGate
from .session import PosSession
from .stores import InMemoryDirectory, InMemoryProductStore, InMemorySaleStore

DEMO_LOCATION = "loc-main"


def _amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}") from exc


def demo_catalog() -> list[Product]:
    return [
        Product(id="p-beans", name="Coffee Beans 1kg", sku="BEANS-1KG", price=Decimal("25.00"), stock=10, reorder_point=3, location_id=DEMO_LOCATION),
        Product(id="p-mug", name="Ceramic Mug", sku="MUG-01", price=Decimal("12.50"), stock=0, location_id=DEMO_LOCATION),
        Product(id="p-mug-wh", name="Ceramic Mug", sku="MUG-01", price=Decimal("12.50"), stock=8, location_id="loc-warehouse"),
        Product(id="p-wine", name="Red Wine", sku="WINE-RED", price=Decimal("18.00"), stock=6, location_id=DEMO_LOCATION, is_age_restricted=True),
    ]


def build_demo_session(config: PosConfig, *, offline: bool = False) -> PosSession:
    products = InMemoryProductStore(demo_catalog())
    queue = OfflineSaleQueue(is_online=not offline)
    finalizer = TransactionFinalizer.from_config(config, products, InMemorySaleStore(), queue)
    directory = InMemoryDirectory(
        customers=[Customer(id="c-walkin", name="Walk-in Customer"), Customer(id="c-ana", name="Ana Ruiz")],
        locations=[BusinessLocation(id=DEMO_LOCATION, name="Main Store"), BusinessLocation(id="loc-warehouse", name="Warehouse")],
    )
    return PosSession(
        products=products,
        finalizer=finalizer,
        gate=PermissionGate.allow_all(),
        customers=directory,
        location_id=DEMO_LOCATION,
        config=config,
        gateway=ScriptedGateway(),
        location_directory=directory,
    )


async def run_demo(session: PosSession, cash: Decimal) -> dict:
    for step in (session.add_product("p-beans"), session.add_product("p-beans"), session.start_payment()):
        if not step["ok"]:
            return step
    tender = session.add_tender("pay_cash", cash)
    if not tender["ok"]:
        return tender
    if not tender["is_fully_paid"]:
        card = await session.add_terminal_tender("pay_card")
        if not card["ok"]:
            return card
    return session.checkout()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="counter-pos", description="Counter POS transaction engine")
    subparsers = parser.add_subparsers(dest="command", required=True)
    demo = subparsers.add_parser("demo", help="Run a scripted split-tender sale and print the receipt")
    demo.add_argument("--env-file", default=None)
    demo.add_argument("--cash", type=_amount, default=Decimal("30.00"))
    demo.add_argument("--offline", action="store_true")
    demo.add_argument("--realtime", action="store_true", help="Keep terminal delays from config")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.env_file)
    except ConfigError as exc:
        print(json.dumps({"error": "CONFIG_ERROR", "message": str(exc)}, indent=2))
        raise SystemExit(1) from exc
    configure_logging(config.log_level)
    if not args.realtime:
        config = dataclasses.replace(
            config,
            terminal_init_seconds=0.0,
            terminal_card_wait_seconds=0.0,
            terminal_processing_seconds=0.0,
        )

    session = build_demo_session(config, offline=args.offline)
    result = asyncio.run(run_demo(session, args.cash))
    if not result["ok"]:
        print(json.dumps({"error": result.get("code", "POS_ERROR"), "message": result["error"]}, indent=2))
        raise SystemExit(1)
    receipt = result["receipt"]
    print(json.dumps(receipt.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    main()
