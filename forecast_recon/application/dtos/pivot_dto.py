"""
Application DTOs - Pivot

This module contains the request and response models of the planner pivot
and of aggregate (fair-share) edits.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from forecast_recon.domain.entities.hierarchy import DimensionSelection
from forecast_recon.domain.entities.time_series import AggregatedSeriesRow, SeriesName


class PivotRequestDTO(BaseModel):
    """Hierarchy selection and series to show in the pivot."""

    model_config = ConfigDict(populate_by_name=True)

    category: Optional[str] = None
    subcategory: Optional[str] = None
    subclass: Optional[str] = None
    class_name: Optional[str] = Field(default=None, alias="class")
    series_definitions: Optional[Dict[SeriesName, str]] = Field(
        default=None,
        description="Pivot series to source metric; defaults to the planner series",
    )

    def to_selection(self) -> DimensionSelection:
        return DimensionSelection(
            category=self.category,
            subcategory=self.subcategory,
            subclass=self.subclass,
            class_name=self.class_name,
        )


class PivotRowDTO(BaseModel):
    """One pivot row keyed by ISO date."""

    group_key: str
    series_name: SeriesName
    values: Dict[str, float]
    is_total: bool = False

    @classmethod
    def from_entity(cls, row: AggregatedSeriesRow) -> "PivotRowDTO":
        return cls(
            group_key=row.group_key,
            series_name=row.series_name,
            values=dict(row.values),
            is_total=row.is_total,
        )

    def to_entity(self) -> AggregatedSeriesRow:
        return AggregatedSeriesRow(
            group_key=self.group_key,
            series_name=self.series_name,
            values=dict(self.values),
        )


class PivotResponseDTO(BaseModel):
    """Pivot grid for one selection."""

    level: str
    child_level: str
    child_groups: List[str]
    dates: List[str]
    rows: List[PivotRowDTO]
    leaf_count: int = Field(ge=0)


class AggregateEditRequestDTO(BaseModel):
    """A new value typed into a total cell."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$", description="ISO date column")
    new_value: float
    series: SeriesName = SeriesName.DEMAND_PLANNER


class AggregateEditResponseDTO(BaseModel):
    """Pivot rows after the edit and the cells to highlight."""

    rows: List[PivotRowDTO]
    aggregate_delta: float
    updated_cells: List[str]
