import pytest

from stock_replenishment.domain.models import ReplenishmentPolicy, StockSnapshot
from stock_replenishment.replenishment.calculator import calculate, suggest_quantity


def _snap(product_id="p1", *, on_hand=2, reorder_point=10, velocity=3.0, price=2.0, vendor="Acme"):
    return StockSnapshot(
        product_id=product_id,
        product_name=f"Product {product_id}",
        vendor_name=vendor,
        on_hand_qty=on_hand,
        reorder_point=reorder_point,
        sales_velocity=velocity,
        last_unit_price=price,
    )


def test_suggested_quantity_covers_days_plus_safety_minus_stock():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=5)
    lines = calculate([_snap(on_hand=2, reorder_point=10, velocity=3)], policy)
    assert len(lines) == 1
    assert lines[0].suggested_qty == 24  # ceil(3*7 + 5 - 2)


def test_zero_velocity_and_zero_safety_still_orders_one_unit():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=0)
    lines = calculate([_snap(on_hand=0, reorder_point=10, velocity=0)], policy)
    assert [line.suggested_qty for line in lines] == [1]


def test_zero_velocity_uses_safety_stock_only():
    policy = ReplenishmentPolicy(coverage_days=30, safety_stock=8)
    assert suggest_quantity(_snap(on_hand=3, velocity=0), policy) == 5


def test_products_above_reorder_point_are_skipped():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=5)
    snapshots = [
        _snap("over", on_hand=11, reorder_point=10),
        _snap("equal", on_hand=10, reorder_point=10),
        _snap("under", on_hand=0, reorder_point=10),
    ]
    lines = calculate(snapshots, policy)
    assert [line.product_id for line in lines] == ["equal", "under"]


def test_negative_raw_suggestion_is_clamped_to_one():
    policy = ReplenishmentPolicy(coverage_days=1, safety_stock=0)
    snap = _snap(on_hand=10, reorder_point=10, velocity=0.5)
    assert suggest_quantity(snap, policy) == 1


def test_fractional_demand_rounds_up():
    policy = ReplenishmentPolicy(coverage_days=3, safety_stock=0)
    assert suggest_quantity(_snap(on_hand=0, velocity=1.5), policy) == 5


def test_lines_copy_snapshot_fields_and_start_included():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=5)
    line = calculate([_snap(on_hand=2, velocity=3, price=1.25, vendor="Acme")], policy)[0]
    assert line.included is True
    assert line.vendor_name == "Acme"
    assert line.current_stock == 2
    assert line.sales_velocity == 3
    assert line.unit_price == 1.25
    assert line.line_total == pytest.approx(24 * 1.25)


def test_missing_price_gives_zero_line_total():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=5)
    line = calculate([_snap(price=0.0)], policy)[0]
    assert line.line_total == 0


def test_negative_policy_values_are_not_rejected():
    policy = ReplenishmentPolicy(coverage_days=-5, safety_stock=-3)
    lines = calculate([_snap(on_hand=0, velocity=2)], policy)
    assert lines[0].suggested_qty == 1


def test_calculation_is_deterministic_and_leaves_input_untouched():
    policy = ReplenishmentPolicy(coverage_days=7, safety_stock=5)
    snapshots = [_snap("a", on_hand=1), _snap("b", on_hand=50), _snap("c", on_hand=4, velocity=0.2)]
    before = list(snapshots)
    first = calculate(snapshots, policy)
    second = calculate(snapshots, policy)
    assert [line.to_dict() for line in first] == [line.to_dict() for line in second]
    assert snapshots == before


def test_empty_input_yields_no_lines():
    assert calculate([], ReplenishmentPolicy(coverage_days=7, safety_stock=5)) == []
