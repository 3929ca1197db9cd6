from __future__ import annotations

import pytest

from stock_replenishment.domain.models import OrderLine
from stock_replenishment.replenishment.editor import OrderEditor


def _line(product_id: str, qty: int, price: float, vendor: str = "Acme") -> OrderLine:
    return OrderLine(
        product_id=product_id,
        product_name=f"Product {product_id}",
        vendor_name=vendor,
        current_stock=0,
        sales_velocity=1.0,
        suggested_qty=qty,
        unit_price=price,
    )


@pytest.fixture
def editor() -> OrderEditor:
    return OrderEditor([_line("a", 10, 2.0), _line("b", 4, 5.0, vendor="Beta"), _line("c", 1, 0.5)])


def test_set_quantity_keeps_line_total_in_sync(editor: OrderEditor) -> None:
    line = editor.set_quantity("a", 3)
    assert line.suggested_qty == 3
    assert line.line_total == pytest.approx(6.0)
    assert editor.total_value() == pytest.approx(6.0 + 20.0 + 0.5)


def test_set_quantity_accepts_zero_and_negative_overrides(editor: OrderEditor) -> None:
    editor.set_quantity("a", 0)
    editor.set_quantity("b", -2)
    assert editor.get("a").line_total == 0
    assert editor.get("b").line_total == pytest.approx(-10.0)
    assert editor.total_units() == -1


def test_unknown_product_raises_key_error(editor: OrderEditor) -> None:
    with pytest.raises(KeyError):
        editor.set_quantity("missing", 5)
    with pytest.raises(KeyError):
        editor.toggle_included("missing")


def test_toggle_excludes_line_from_totals(editor: OrderEditor) -> None:
    editor.toggle_included("b")
    assert [line.product_id for line in editor.selected_lines()] == ["a", "c"]
    assert editor.total_units() == 11
    assert editor.total_value() == pytest.approx(20.5)
    # excluded lines stay in the session
    assert len(editor.lines) == 3
    editor.toggle_included("b")
    assert editor.get("b").included is True


def test_select_all_false_then_true_restores_every_line(editor: OrderEditor) -> None:
    editor.select_all(False)
    assert editor.selected_lines() == []
    assert editor.total_value() == 0
    assert editor.total_units() == 0
    editor.select_all(True)
    assert editor.all_selected()
    assert len(editor.selected_lines()) == 3


def test_discard_drops_saved_lines_only(editor: OrderEditor) -> None:
    assert editor.discard(["a", "c", "missing"]) == 2
    assert [line.product_id for line in editor.lines] == ["b"]
    assert editor.total_value() == pytest.approx(20.0)
    with pytest.raises(KeyError):
        editor.get("a")


def test_reset_discards_session(editor: OrderEditor) -> None:
    editor.reset()
    assert editor.is_empty()
    assert editor.to_dict()["lines"] == []


def test_to_dict_reports_totals(editor: OrderEditor) -> None:
    editor.toggle_included("c")
    payload = editor.to_dict()
    assert payload["selected_count"] == 2
    assert payload["total_units"] == 14
    assert payload["total_value"] == pytest.approx(40.0)
    assert payload["all_selected"] is False
    assert payload["lines"][0]["line_total"] == pytest.approx(20.0)
