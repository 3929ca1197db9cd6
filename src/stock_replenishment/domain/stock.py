from typing import Dict, Iterable, Optional

from .models import StockSnapshot

STATUS_OUT = "out"
STATUS_LOW = "low"
STATUS_OK = "ok"
STATUS_UNKNOWN = "unknown"


def classify(on_hand: Optional[int], reorder_point: int) -> str:
    """Return the stock status label for a product.

    "unknown" when there is no inventory record at all, "out" when nothing
    is on hand, "low" at or below the reorder point, otherwise "ok".
    """
    if on_hand is None:
        return STATUS_UNKNOWN
    if on_hand <= 0:
        return STATUS_OUT
    if on_hand <= reorder_point:
        return STATUS_LOW
    return STATUS_OK


def snapshot_status(snapshot: StockSnapshot) -> str:
    return classify(snapshot.on_hand_qty, snapshot.reorder_point)


def count_statuses(snapshots: Iterable[StockSnapshot]) -> Dict[str, int]:
    counts = {"total": 0, STATUS_OK: 0, STATUS_LOW: 0, STATUS_OUT: 0}
    for snap in snapshots:
        counts["total"] += 1
        counts[snapshot_status(snap)] += 1
    return counts
