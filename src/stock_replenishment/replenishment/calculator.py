from __future__ import annotations

import math
from typing import Iterable, List

from ..domain.models import OrderLine, ReplenishmentPolicy, StockSnapshot


def needs_reorder(snapshot: StockSnapshot) -> bool:
    return snapshot.on_hand_qty <= snapshot.reorder_point


def suggest_quantity(snapshot: StockSnapshot, policy: ReplenishmentPolicy) -> int:
    """Units to order so stock covers `coverage_days` of demand plus the safety buffer.

    Never below 1: a product that needs reorder always orders something.
    Policy values are taken as given; range checks belong to the caller.
    """
    raw = math.ceil(
        snapshot.sales_velocity * policy.coverage_days
        + policy.safety_stock
        - snapshot.on_hand_qty
    )
    return max(raw, 1)


def calculate(snapshots: Iterable[StockSnapshot], policy: ReplenishmentPolicy) -> List[OrderLine]:
    lines: List[OrderLine] = []
    for snap in snapshots:
        if not needs_reorder(snap):
            continue
        lines.append(
            OrderLine(
                product_id=snap.product_id,
                product_name=snap.product_name,
                vendor_name=snap.vendor_name,
                current_stock=snap.on_hand_qty,
                sales_velocity=snap.sales_velocity,
                suggested_qty=suggest_quantity(snap, policy),
                unit_price=snap.last_unit_price,
                included=True,
            )
        )
    return lines
