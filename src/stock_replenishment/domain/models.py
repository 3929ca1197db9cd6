from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class StockSnapshot:
    product_id: str
    product_name: str
    vendor_name: str
    on_hand_qty: int
    reorder_point: int
    sales_velocity: float  # units per day
    last_unit_price: float
    vendor_id: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class ReplenishmentPolicy:
    coverage_days: int
    safety_stock: int


@dataclass
class OrderLine:
    product_id: str
    product_name: str
    vendor_name: str
    current_stock: int
    sales_velocity: float
    suggested_qty: int
    unit_price: float
    included: bool = True

    @property
    def line_total(self) -> float:
        return self.suggested_qty * self.unit_price

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "vendor_name": self.vendor_name,
            "current_stock": self.current_stock,
            "sales_velocity": self.sales_velocity,
            "suggested_qty": self.suggested_qty,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "included": self.included,
        }


@dataclass
class OrderLineRecord:
    product_id: str
    suggested_qty: int
    unit_price: float


@dataclass
class ReplenishmentOrder:
    order_id: Optional[int]
    vendor_id: Optional[str]
    vendor_name: str
    status: str
    estimated_total: float
    notes: Optional[str]
    lines: List[OrderLineRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "status": self.status,
            "estimated_total": self.estimated_total,
            "notes": self.notes,
            "lines": [vars(line) for line in self.lines],
        }
