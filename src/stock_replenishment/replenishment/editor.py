from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..domain.models import OrderLine


class OrderEditor:
    """Editable set of candidate order lines for a single user session.

    Quantity overrides are stored exactly as supplied (zero or negative
    included); input limits are enforced by the caller.
    """

    def __init__(self, lines: Optional[Iterable[OrderLine]] = None) -> None:
        self._lines: List[OrderLine] = list(lines or [])
        self._index: Dict[str, OrderLine] = {line.product_id: line for line in self._lines}

    @property
    def lines(self) -> List[OrderLine]:
        return list(self._lines)

    def get(self, product_id: str) -> OrderLine:
        try:
            return self._index[product_id]
        except KeyError:
            raise KeyError(f"No order line for product {product_id!r}") from None

    def is_empty(self) -> bool:
        return not self._lines

    def set_quantity(self, product_id: str, qty: int) -> OrderLine:
        line = self.get(product_id)
        line.suggested_qty = qty
        return line

    def toggle_included(self, product_id: str) -> OrderLine:
        line = self.get(product_id)
        line.included = not line.included
        return line

    def select_all(self, value: bool) -> None:
        for line in self._lines:
            line.included = bool(value)

    def all_selected(self) -> bool:
        return all(line.included for line in self._lines)

    def discard(self, product_ids: Iterable[str]) -> int:
        """Drop the given lines from the session; unknown ids are ignored."""
        drop = set(product_ids)
        kept = [line for line in self._lines if line.product_id not in drop]
        removed = len(self._lines) - len(kept)
        self._lines = kept
        self._index = {line.product_id: line for line in kept}
        return removed

    def reset(self) -> None:
        self._lines = []
        self._index = {}

    # Derived views over included lines
    def selected_lines(self) -> List[OrderLine]:
        return [line for line in self._lines if line.included]

    def total_value(self) -> float:
        return sum((line.line_total for line in self.selected_lines()), 0.0)

    def total_units(self) -> int:
        return sum(line.suggested_qty for line in self.selected_lines())

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "selected_count": len(self.selected_lines()),
            "total_units": self.total_units(),
            "total_value": self.total_value(),
            "all_selected": self.all_selected(),
        }
