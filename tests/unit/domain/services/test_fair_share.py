from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from forecast_recon.domain.entities.errors import (
    InsufficientDataError,
    NonEditableCellError,
)
from forecast_recon.domain.entities.redistribution import ChildValue
from forecast_recon.domain.entities.time_series import AggregatedSeriesRow, SeriesName
from forecast_recon.domain.services.fair_share import apply_aggregate_edit, redistribute
from forecast_recon.shared.consts import TOTAL_GROUP_KEY

DAY = date(2025, 3, 1).isoformat()


def _pivot(values, series=SeriesName.DEMAND_PLANNER):
    rows = [
        AggregatedSeriesRow(
            group_key=TOTAL_GROUP_KEY,
            series_name=series,
            values={DAY: sum(v for v in values.values() if v is not None)},
        )
    ]
    for group, value in values.items():
        row_values = {} if value is None else {DAY: value}
        rows.append(AggregatedSeriesRow(group_key=group, series_name=series, values=row_values))
    return rows


def test_proportional_split_keeps_shares() -> None:
    result = redistribute(30, [ChildValue("X", 60), ChildValue("Y", 40)])

    assert [r.new_value for r in result] == [78, 52]
    assert [r.share for r in result] == [18, 12]


def test_zero_children_share_equally_with_remainder_on_last() -> None:
    children = [ChildValue("A", 0), ChildValue("B", 0), ChildValue("C", 0)]

    assert [r.new_value for r in redistribute(9, children)] == [3, 3, 3]
    assert [r.new_value for r in redistribute(10, children)] == [3, 3, 4]


def test_proportional_remainder_goes_to_largest_share() -> None:
    children = [ChildValue("A", 1), ChildValue("B", 1), ChildValue("C", 1)]

    result = redistribute(10, children)

    assert [r.new_value for r in result] == [5, 4, 4]
    assert sum(r.new_value for r in result) == 13


def test_negative_remainder_goes_to_largest_signed_share() -> None:
    children = [ChildValue("A", 1), ChildValue("B", 1), ChildValue("C", 2)]

    result = redistribute(-6, children)

    # rounded shares are -1, -1, -3; the -1 remainder lands on A
    assert [r.share for r in result] == [-2, -1, -3]
    assert [r.new_value for r in result] == [-1, 0, -1]


def test_children_at_zero_get_nothing_when_siblings_hold_values() -> None:
    result = redistribute(-5, [ChildValue("A", 10), ChildValue("B", 0)])

    assert [r.new_value for r in result] == [5, 0]


def test_zero_delta_leaves_children_untouched() -> None:
    children = [ChildValue("A", 7.5), ChildValue("B", 2)]

    result = redistribute(0, children)

    assert [r.new_value for r in result] == [7.5, 2]
    assert all(r.share == 0 for r in result)


def test_sum_is_exact_for_awkward_splits() -> None:
    children = [ChildValue(str(i), value) for i, value in enumerate([1, 2, 3, 5, 7, 11])]

    result = redistribute(101, children)

    assert sum(r.new_value for r in result) == 29 + 101


def test_non_zero_delta_without_children_is_rejected() -> None:
    with pytest.raises(InsufficientDataError):
        redistribute(5, [])


def test_apply_aggregate_edit_updates_total_and_children() -> None:
    rows = _pivot({"G1": 30, "G2": 5})

    result = apply_aggregate_edit(rows, DAY, 50)

    values = {row.group_key: row.values[DAY] for row in result.rows}
    assert values == {TOTAL_GROUP_KEY: 50, "G1": 43, "G2": 7}
    assert result.aggregate_delta == 15
    assert f"G1-{SeriesName.DEMAND_PLANNER.value}-{DAY}" in result.updated_cells
    assert f"{TOTAL_GROUP_KEY}-{SeriesName.DEMAND_PLANNER.value}-{DAY}" in result.updated_cells
    # input rows are not mutated
    assert rows[1].values[DAY] == 30


def test_apply_aggregate_edit_skips_children_without_a_value() -> None:
    rows = _pivot({"G1": 30, "G2": None})

    result = apply_aggregate_edit(rows, DAY, 40)

    assert result.rows[1].values[DAY] == 40
    assert result.rows[2].values == {}


def test_apply_aggregate_edit_without_change_is_a_no_op() -> None:
    rows = _pivot({"G1": 30, "G2": 5})

    result = apply_aggregate_edit(rows, DAY, 35)

    assert result.aggregate_delta == 0
    assert result.updated_cells == frozenset()


def test_only_editable_series_accept_edits() -> None:
    rows = _pivot({"G1": 30}, series=SeriesName.FORECAST)

    with pytest.raises(NonEditableCellError):
        apply_aggregate_edit(rows, DAY, 50, series=SeriesName.FORECAST)


def test_non_date_columns_are_not_editable() -> None:
    with pytest.raises(NonEditableCellError):
        apply_aggregate_edit(_pivot({"G1": 30}), "Total", 50)


def test_pivot_without_total_row_is_not_editable() -> None:
    rows = _pivot({"G1": 30})[1:]

    with pytest.raises(NonEditableCellError):
        apply_aggregate_edit(rows, DAY, 50)


def test_fractional_edit_keeps_total_equal_to_children() -> None:
    rows = _pivot({"G1": Decimal("0.1"), "G2": Decimal("0.2")})

    result = apply_aggregate_edit(rows, DAY, 3.3)

    values = [row.values[DAY] for row in result.rows]
    assert values == [Decimal("3.3"), Decimal("1.1"), Decimal("2.2")]
    assert values[0] == values[1] + values[2]
