from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from stock_replenishment.domain.models import OrderLine
from stock_replenishment.replenishment import (
    CatalogDatabase,
    CatalogStore,
    OrderPersister,
    PersistError,
    StoreUnavailable,
    StoreWriteError,
)
from stock_replenishment.replenishment.constants import NO_VENDOR
from stock_replenishment.replenishment.persister import group_by_vendor


def _line(product_id: str, vendor: str, qty: int = 2, price: float = 1.5, included: bool = True) -> OrderLine:
    return OrderLine(
        product_id=product_id,
        product_name=f"Product {product_id}",
        vendor_name=vendor,
        current_stock=0,
        sales_velocity=1.0,
        suggested_qty=qty,
        unit_price=price,
        included=included,
    )


def _catalog(root: Path) -> Dict[str, Any]:
    db = CatalogDatabase(db_path=str(root / "catalog.sqlite3"))
    acme = db.upsert_vendor("Acme")
    beta = db.upsert_vendor("Beta")
    ids = {
        "a1": db.insert_product("Acme one", vendor_id=acme),
        "a2": db.insert_product("Acme two", vendor_id=acme),
        "b1": db.insert_product("Beta one", vendor_id=beta),
        "n1": db.insert_product("Unassigned"),
    }
    return {"db": db, "acme": acme, "beta": beta, "ids": {k: str(v) for k, v in ids.items()}}


class _FlakyStore:
    """In-memory store whose Nth header insert fails."""

    def __init__(self, fail_on_header: int) -> None:
        self.fail_on_header = fail_on_header
        self.headers: List[Dict[str, Any]] = []
        self.lines: Dict[int, List[Dict[str, Any]]] = {}

    async def find_vendor_id(self, name: str) -> Optional[str]:
        return f"v-{name}"

    async def create_replenishment(self, **fields: Any) -> int:
        if len(self.headers) + 1 == self.fail_on_header:
            raise StoreUnavailable("connection reset")
        self.headers.append(fields)
        return len(self.headers)

    async def create_replenishment_lines(self, order_id: int, lines: List[Dict[str, Any]]) -> int:
        self.lines[order_id] = list(lines)
        return len(lines)


def test_lines_sharing_vendor_land_in_one_order(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    ids = cat["ids"]
    lines = [
        _line(ids["a1"], "Acme", qty=4, price=2.0),
        _line(ids["b1"], "Beta", qty=1, price=10.0),
        _line(ids["a2"], "Acme", qty=3, price=1.0),
    ]
    result = asyncio.run(OrderPersister(CatalogStore(cat["db"])).save(lines))

    assert [o.vendor_name for o in result.orders] == ["Acme", "Beta"]
    acme_order = result.orders[0]
    assert acme_order.status == "pending"
    assert acme_order.estimated_total == pytest.approx(11.0)
    assert acme_order.vendor_id == str(cat["acme"])
    assert acme_order.notes == "Auto-generated order - 2 products"

    detail = cat["db"].fetch_replenishment_detail(acme_order.order_id)
    assert detail["vendor_name"] == "Acme"
    assert detail["total_estimated"] == pytest.approx(11.0)
    assert [(str(l["product_id"]), l["qty_suggested"]) for l in detail["lines"]] == [
        (ids["a1"], 4),
        (ids["a2"], 3),
    ]


def test_excluded_lines_are_never_written(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    ids = cat["ids"]
    lines = [_line(ids["a1"], "Acme"), _line(ids["b1"], "Beta", included=False)]
    result = asyncio.run(OrderPersister(CatalogStore(cat["db"])).save(lines))

    assert len(result.orders) == 1
    rows = cat["db"].fetch_replenishments()
    assert len(rows) == 1
    assert rows[0]["line_count"] == 1


def test_no_vendor_bucket_keeps_null_vendor_id(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    result = asyncio.run(OrderPersister(CatalogStore(cat["db"])).save([_line(cat["ids"]["n1"], NO_VENDOR)]))
    assert result.orders[0].vendor_id is None
    assert cat["db"].fetch_replenishments()[0]["vendor_id"] is None


def test_unknown_vendor_name_saves_without_vendor_id(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    result = asyncio.run(OrderPersister(CatalogStore(cat["db"])).save([_line(cat["ids"]["a1"], "Renamed Co")]))
    assert result.orders[0].vendor_id is None


def test_vendor_resolution_can_be_disabled(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    persister = OrderPersister(CatalogStore(cat["db"]), resolve_vendors=False)
    result = asyncio.run(persister.save([_line(cat["ids"]["a1"], "Acme")]))
    assert result.orders[0].vendor_id is None


def test_nothing_selected_writes_nothing(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    result = asyncio.run(OrderPersister(CatalogStore(cat["db"])).save([_line(cat["ids"]["a1"], "Acme", included=False)]))
    assert result.orders == []
    assert cat["db"].fetch_replenishments() == []


def test_failed_group_keeps_earlier_groups_committed(tmp_path: Path) -> None:
    cat = _catalog(tmp_path)
    ids = cat["ids"]
    lines = [
        _line(ids["a1"], "Acme", qty=5, price=2.0),
        _line("999999", "Beta"),  # unknown product violates the foreign key
        _line(ids["n1"], NO_VENDOR),
    ]
    with pytest.raises(PersistError) as info:
        asyncio.run(OrderPersister(CatalogStore(cat["db"])).save(lines))

    err = info.value
    assert err.group == "Beta"
    assert isinstance(err.cause, StoreWriteError)
    assert [o.vendor_name for o in err.committed] == ["Acme"]
    assert err.pending == [NO_VENDOR]
    assert err.order_id is not None  # header written, lines rejected

    committed_id = err.committed[0].order_id
    detail = cat["db"].fetch_replenishment_detail(committed_id)
    assert detail is not None
    assert detail["total_estimated"] == pytest.approx(10.0)
    assert len(detail["lines"]) == 1

    failed = cat["db"].fetch_replenishment_detail(err.order_id)
    assert failed["lines"] == []
    vendors = {row["vendor_name"] for row in cat["db"].fetch_replenishments()}
    assert vendors == {"Acme", "Beta"}


def test_header_failure_reports_group_without_order_id() -> None:
    store = _FlakyStore(fail_on_header=2)
    lines = [_line("1", "Acme"), _line("2", "Beta"), _line("3", "Gamma")]
    with pytest.raises(PersistError) as info:
        asyncio.run(OrderPersister(store).save(lines))

    err = info.value
    assert err.group == "Beta"
    assert isinstance(err.cause, StoreUnavailable)
    assert err.order_id is None
    assert err.pending == ["Gamma"]
    assert [h["vendor_id"] for h in store.headers] == ["v-Acme"]
    assert store.lines[1][0]["product_id"] == "1"
    payload = err.to_dict()
    assert payload["failed_group"] == "Beta"
    assert payload["committed"][0]["vendor_name"] == "Acme"


def test_group_by_vendor_preserves_first_appearance_order() -> None:
    groups = group_by_vendor(
        [_line("1", "Zeta"), _line("2", "Acme"), _line("3", "Zeta"), _line("4", "", included=True)]
    )
    assert list(groups) == ["Zeta", "Acme", NO_VENDOR]
    assert [line.product_id for line in groups["Zeta"]] == ["1", "3"]
