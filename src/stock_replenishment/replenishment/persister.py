"""Saving edited order lines as one pending replenishment order per vendor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..domain.models import OrderLine, OrderLineRecord, ReplenishmentOrder
from ..logging import get_logger
from .constants import NO_VENDOR, ORDER_NOTES_TEMPLATE, STATUS_PENDING
from .errors import PersistError
from .store import CatalogStore

LOG = get_logger("replenish-persister")


@dataclass
class SaveResult:
    orders: List[ReplenishmentOrder] = field(default_factory=list)

    @property
    def order_ids(self) -> List[int]:
        return [o.order_id for o in self.orders if o.order_id is not None]

    def to_dict(self) -> dict:
        return {"orders": [o.to_dict() for o in self.orders]}


def group_by_vendor(lines: Iterable[OrderLine]) -> Dict[str, List[OrderLine]]:
    """Partition included lines by vendor name, in order of first appearance."""
    groups: Dict[str, List[OrderLine]] = {}
    for line in lines:
        if not line.included:
            continue
        groups.setdefault(line.vendor_name or NO_VENDOR, []).append(line)
    return groups


class OrderPersister:
    def __init__(self, store: CatalogStore, *, resolve_vendors: bool = True) -> None:
        self.store = store
        self.resolve_vendors = resolve_vendors

    async def _vendor_id_for(self, vendor_name: str) -> Optional[str]:
        if not self.resolve_vendors or vendor_name == NO_VENDOR:
            return None
        vendor_id = await self.store.find_vendor_id(vendor_name)
        if vendor_id is None:
            LOG.warning(f"Vendor '{vendor_name}' not found in catalog; saving order without vendor_id")
        return vendor_id

    async def save(self, lines: Iterable[OrderLine]) -> SaveResult:
        """Create one pending order per vendor group from the included lines.

        Groups are written one after another and are not rolled back: if a
        group fails, earlier groups stay committed, later groups are skipped,
        and PersistError reports all three sets.
        """
        groups = group_by_vendor(lines)
        result = SaveResult()
        if not groups:
            LOG.info("No included lines; nothing to save")
            return result

        vendor_names = list(groups)
        for position, vendor_name in enumerate(vendor_names):
            members = groups[vendor_name]
            order = ReplenishmentOrder(
                order_id=None,
                vendor_id=None,
                vendor_name=vendor_name,
                status=STATUS_PENDING,
                estimated_total=sum((line.line_total for line in members), 0.0),
                notes=ORDER_NOTES_TEMPLATE.format(count=len(members)),
                lines=[
                    OrderLineRecord(
                        product_id=line.product_id,
                        suggested_qty=line.suggested_qty,
                        unit_price=line.unit_price,
                    )
                    for line in members
                ],
            )
            try:
                order.vendor_id = await self._vendor_id_for(vendor_name)
                order.order_id = await self.store.create_replenishment(
                    vendor_id=order.vendor_id,
                    status=order.status,
                    estimated_total=order.estimated_total,
                    notes=order.notes,
                )
                await self.store.create_replenishment_lines(
                    order.order_id,
                    [
                        {
                            "product_id": rec.product_id,
                            "qty_suggested": rec.suggested_qty,
                            "unit_price": rec.unit_price,
                        }
                        for rec in order.lines
                    ],
                )
            except Exception as exc:
                LOG.exception(
                    f"Saving order for vendor group '{vendor_name}' failed after "
                    f"{len(result.orders)} committed group(s)"
                )
                raise PersistError(
                    vendor_name,
                    exc,
                    committed=result.orders,
                    pending=vendor_names[position + 1:],
                    order_id=order.order_id,
                ) from exc

            result.orders.append(order)
            LOG.info(
                f"Saved order {order.order_id} for '{vendor_name}': "
                f"{len(order.lines)} line(s), estimated {order.estimated_total:.2f}"
            )
        return result
