from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Optional, Sequence

from ..config import load_db_path, load_policy_defaults
from ..domain.models import ReplenishmentPolicy
from ..logging import get_logger
from ..paths import expand_abs
from ..replenishment.constants import ORDER_STATUS_CHOICES
from ..replenishment import (
    CatalogStore,
    PersistError,
    ReplenishmentService,
    StoreUnavailable,
)

LOG = get_logger("cli-main")

EXIT_PERSIST_FAILED = 1
EXIT_STORE_UNAVAILABLE = 2


def _open_store(ns: argparse.Namespace) -> CatalogStore:
    script_dir = os.getcwd()
    db_path = expand_abs(ns.db) if ns.db else load_db_path(script_dir)
    return CatalogStore.open(script_dir, db_path=db_path)


def _policy_from_args(ns: argparse.Namespace) -> ReplenishmentPolicy:
    coverage, safety = load_policy_defaults(os.getcwd())
    return ReplenishmentPolicy(
        coverage_days=ns.coverage_days if ns.coverage_days is not None else coverage,
        safety_stock=ns.safety_stock if ns.safety_stock is not None else safety,
    )


def _add_policy_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--coverage-days", type=int, help="Days of demand the order should cover (default: env/.env or 7)")
    p.add_argument("--safety-stock", type=int, help="Extra buffer units per product (default: env/.env or 5)")


def _db_init(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    LOG.info(f"Catalog DB ready at: {store.db.db_path}")
    print(store.db.db_path)
    return 0


def _suggest(ns: argparse.Namespace) -> int:
    service = ReplenishmentService(_open_store(ns))
    policy = _policy_from_args(ns)
    asyncio.run(service.calculate(policy))
    print(json.dumps(service.editor.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _order(ns: argparse.Namespace) -> int:
    service = ReplenishmentService(_open_store(ns))
    policy = _policy_from_args(ns)

    async def _run():
        await service.calculate(policy)
        if service.editor.is_empty():
            return None
        return await service.save()

    try:
        result = asyncio.run(_run())
    except PersistError as exc:
        LOG.error(str(exc))
        print(json.dumps(exc.to_dict(), ensure_ascii=False, indent=2))
        return EXIT_PERSIST_FAILED
    if result is None:
        LOG.info("No products need reorder; nothing saved.")
        return 0
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _orders(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    items = asyncio.run(store.list_replenishments(ns.status))
    print(json.dumps(items, ensure_ascii=False, indent=2))
    return 0


def _serve(ns: argparse.Namespace) -> int:
    from ..replenishment.frontend import create_app
    import uvicorn

    coverage, safety = load_policy_defaults(os.getcwd())
    app = create_app(
        store=_open_store(ns),
        default_policy=ReplenishmentPolicy(coverage_days=coverage, safety_stock=safety),
        allow_origins=ns.allow_origins,
    )
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-replenish",
        description="Inventory replenishment suggestions and vendor purchase orders.",
    )
    parser.add_argument("--db", help="Path to the catalog sqlite file (default: CATALOG_DB_PATH or var/catalog/)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    db = subparsers.add_parser("db", help="Catalog database utilities")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)
    db_init = db_sub.add_parser("init", help="Create/ensure the catalog DB schema exists")
    db_init.set_defaults(handler=_db_init)

    suggest = subparsers.add_parser("suggest", help="Print suggested order lines as JSON without saving.")
    _add_policy_args(suggest)
    suggest.set_defaults(handler=_suggest)

    order = subparsers.add_parser("order", help="Calculate suggestions and save one pending order per vendor.")
    _add_policy_args(order)
    order.set_defaults(handler=_order)

    orders = subparsers.add_parser("orders", help="List saved replenishment orders.")
    orders.add_argument("--status", choices=ORDER_STATUS_CHOICES)
    orders.set_defaults(handler=_orders)

    serve = subparsers.add_parser("serve", help="Run the replenishment JSON API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8002)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_serve)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")
    args = build_parser().parse_args(provided)
    try:
        code = args.handler(args)
    except StoreUnavailable as exc:
        LOG.error(f"Catalog store unavailable: {exc}")
        return EXIT_STORE_UNAVAILABLE
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
