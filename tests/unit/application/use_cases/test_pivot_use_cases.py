from __future__ import annotations

import pytest

from forecast_recon.application.dtos.pivot_dto import (
    AggregateEditRequestDTO,
    PivotRequestDTO,
)
from forecast_recon.application.use_cases.pivot_use_cases import (
    ApplyAggregateEditUseCase,
    BuildPivotUseCase,
)
from forecast_recon.domain.entities.errors import (
    InvalidSelectionError,
    NonEditableCellError,
)
from forecast_recon.domain.entities.time_series import SeriesName
from forecast_recon.shared.consts import TOTAL_GROUP_KEY
from tests.conftest import FEB, JAN


def _rows_of(response, series):
    return {row.group_key: row.values for row in response.rows if row.series_name == series}


def test_pivot_shows_only_groups_with_data(sample_hierarchy, sample_points) -> None:
    response = BuildPivotUseCase().execute(
        PivotRequestDTO(category="Bebidas"), sample_hierarchy, sample_points
    )

    assert response.level == "category"
    assert response.child_level == "subcategory"
    assert response.child_groups == ["Aguas", "Jugos"]
    assert response.dates == [JAN.isoformat(), FEB.isoformat()]
    assert response.leaf_count == 4
    assert len(response.rows) == 3 * len(SeriesName)

    forecast = _rows_of(response, SeriesName.FORECAST)
    assert forecast[TOTAL_GROUP_KEY] == {JAN.isoformat(): 39, FEB.isoformat(): 12}
    assert forecast["Aguas"] == {JAN.isoformat(): 34, FEB.isoformat(): 12}
    assert forecast["Jugos"] == {JAN.isoformat(): 5, FEB.isoformat(): 0}

    history = _rows_of(response, SeriesName.SALES_HISTORY)
    assert history[TOTAL_GROUP_KEY] == {JAN.isoformat(): 17}
    assert _rows_of(response, SeriesName.INITIAL_PLAN)[TOTAL_GROUP_KEY] == {}


def test_pivot_with_custom_series(sample_hierarchy, sample_points) -> None:
    request = PivotRequestDTO(
        category="Bebidas",
        subcategory="Aguas",
        series_definitions={SeriesName.DEMAND_PLANNER: "forecast"},
    )

    response = BuildPivotUseCase().execute(request, sample_hierarchy, sample_points)

    assert [row.group_key for row in response.rows] == [TOTAL_GROUP_KEY, "Natural"]
    assert response.rows[0].is_total
    assert response.rows[0].values[JAN.isoformat()] == 34


def test_pivot_rejects_unknown_selection(sample_hierarchy, sample_points) -> None:
    with pytest.raises(InvalidSelectionError):
        BuildPivotUseCase().execute(
            PivotRequestDTO(category="Lacteos"), sample_hierarchy, sample_points
        )


def test_aggregate_edit_flows_down_to_groups(sample_hierarchy, sample_points) -> None:
    pivot = BuildPivotUseCase().execute(
        PivotRequestDTO(category="Bebidas"), sample_hierarchy, sample_points
    )

    response = ApplyAggregateEditUseCase().execute(
        pivot.rows, AggregateEditRequestDTO(date=JAN.isoformat(), new_value=50)
    )

    planner = _rows_of(response, SeriesName.DEMAND_PLANNER)
    assert planner[TOTAL_GROUP_KEY][JAN.isoformat()] == 50
    assert planner["Aguas"][JAN.isoformat()] == 44
    assert planner["Jugos"][JAN.isoformat()] == 6
    assert _rows_of(response, SeriesName.FORECAST)["Aguas"][JAN.isoformat()] == 34
    assert response.aggregate_delta == 11
    assert response.updated_cells == sorted(response.updated_cells)
    assert len(response.updated_cells) == 3


def test_aggregate_edit_respects_editable_series(sample_hierarchy, sample_points) -> None:
    pivot = BuildPivotUseCase().execute(
        PivotRequestDTO(category="Bebidas"), sample_hierarchy, sample_points
    )
    request = AggregateEditRequestDTO(
        date=JAN.isoformat(), new_value=50, series=SeriesName.KAM_INPUT
    )

    with pytest.raises(NonEditableCellError):
        ApplyAggregateEditUseCase().execute(pivot.rows, request)

    response = ApplyAggregateEditUseCase(
        editable_series=[SeriesName.DEMAND_PLANNER, SeriesName.FORECAST]
    ).execute(
        pivot.rows,
        AggregateEditRequestDTO(date=JAN.isoformat(), new_value=0, series=SeriesName.FORECAST),
    )

    forecast = _rows_of(response, SeriesName.FORECAST)
    assert forecast[TOTAL_GROUP_KEY][JAN.isoformat()] == 0
    assert forecast["Aguas"][JAN.isoformat()] == 0
