"""Stock snapshot loading from the catalog store."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..domain.models import StockSnapshot
from ..logging import get_logger
from .constants import (
    DEFAULT_ON_HAND_QTY,
    DEFAULT_REORDER_POINT,
    DEFAULT_SALES_VELOCITY,
    NO_VENDOR,
)
from .store import CatalogStore

LOG = get_logger("replenish-loader")


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def snapshot_from_record(record: Dict[str, Any]) -> StockSnapshot:
    """Build a snapshot from a store record, filling absent fields with defaults."""
    vendor_id: Optional[Any] = record.get("vendor_id")
    return StockSnapshot(
        product_id=str(record["product_id"]),
        product_name=record.get("name") or "",
        vendor_name=record.get("vendor_name") or NO_VENDOR,
        on_hand_qty=int(_or_default(record.get("qty_on_hand"), DEFAULT_ON_HAND_QTY)),
        reorder_point=int(_or_default(record.get("reorder_point"), DEFAULT_REORDER_POINT)),
        sales_velocity=float(_or_default(record.get("sales_velocity"), DEFAULT_SALES_VELOCITY)),
        last_unit_price=float(_or_default(record.get("last_unit_price"), 0.0)),
        vendor_id=str(vendor_id) if vendor_id is not None else None,
        sku=record.get("sku"),
        category=record.get("category"),
    )


async def load_snapshots(store: CatalogStore) -> List[StockSnapshot]:
    """Read a fresh snapshot for every product with an inventory record.

    Store failures propagate as StoreUnavailable; nothing is retried here.
    """
    records = await store.list_stock_records()
    snapshots = [snapshot_from_record(rec) for rec in records]
    LOG.info(f"Loaded {len(snapshots)} stock snapshot(s)")
    return snapshots
