"""
Application DTOs - Series

Boundary models for the loosely-typed rows fetched from the planning store.
Rows are validated and coerced here, once; the engines only ever see typed
`TimeSeriesPoint`s and `ProductHierarchyRow`s.
"""

import math
from datetime import date, datetime
from typing import Any, ClassVar, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forecast_recon.domain.entities.hierarchy import ProductHierarchyRow
from forecast_recon.domain.entities.time_series import EntityKey, TimeSeriesPoint


def _to_day(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[4] == "-":
        # ISO timestamps ("2025-01-01T00:00:00Z") keep only their day.
        return value[:10]
    return value


def _to_optional_float(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TimeSeriesRowDTO(BaseModel):
    """A long-format series row: one metric of one leaf at one date."""

    model_config = ConfigDict(extra="ignore")

    product_id: str = Field(min_length=1, description="Product identifier")
    customer_id: Optional[str] = Field(default=None, description="Customer identifier")
    location_id: Optional[str] = Field(default=None, description="Location identifier")
    date: date
    metric_name: str = Field(min_length=1, description="Source metric name")
    value: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalise_date(cls, value: Any) -> Any:
        return _to_day(value)

    @field_validator("value", mode="before")
    @classmethod
    def normalise_value(cls, value: Any) -> Any:
        return _to_optional_float(value)

    @field_validator("customer_id", "location_id", mode="before")
    @classmethod
    def normalise_ids(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_point(self) -> TimeSeriesPoint:
        return TimeSeriesPoint(
            entity_key=EntityKey(
                product_id=self.product_id,
                customer_id=self.customer_id,
                location_id=self.location_id,
            ),
            date=self.date,
            metric_name=self.metric_name,
            value=self.value,
        )


class ForecastDataRowDTO(BaseModel):
    """A wide `forecast_data` row: every metric of one leaf at one date."""

    model_config = ConfigDict(extra="ignore")

    METRIC_FIELDS: ClassVar[Tuple[str, ...]] = (
        "actual",
        "forecast",
        "sales_plan",
        "demand_planner",
        "forecast_ly",
        "commercial_input",
        "sell_in_forecast",
        "sell_out_forecast",
        "base_demand",
        "promotional_demand",
        "event_impact",
        "exogenous_impact",
        "commercial_adjustment",
        "price",
    )
    KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("product_id", "customer_id", "location_id")

    product_id: str = Field(min_length=1)
    customer_id: Optional[str] = None
    location_id: Optional[str] = None
    postdate: date

    actual: Optional[float] = None
    forecast: Optional[float] = None
    sales_plan: Optional[float] = None
    demand_planner: Optional[float] = None
    forecast_ly: Optional[float] = None
    commercial_input: Optional[float] = None
    sell_in_forecast: Optional[float] = None
    sell_out_forecast: Optional[float] = None
    base_demand: Optional[float] = None
    promotional_demand: Optional[float] = None
    event_impact: Optional[float] = None
    exogenous_impact: Optional[float] = None
    commercial_adjustment: Optional[float] = None
    price: Optional[float] = None

    @field_validator("postdate", mode="before")
    @classmethod
    def normalise_date(cls, value: Any) -> Any:
        return _to_day(value)

    @field_validator("customer_id", "location_id", mode="before")
    @classmethod
    def normalise_ids(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator(*METRIC_FIELDS, mode="before")
    @classmethod
    def normalise_metric(cls, value: Any) -> Any:
        return _to_optional_float(value)


class ProductHierarchyRowDTO(BaseModel):
    """A product catalog row carrying its hierarchy names."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    product_id: str = Field(min_length=1)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    subclass: Optional[str] = None
    class_name: Optional[str] = Field(default=None, alias="class")

    @field_validator("category", "subcategory", "subclass", "class_name", mode="before")
    @classmethod
    def normalise_names(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_entity(self) -> ProductHierarchyRow:
        return ProductHierarchyRow(
            product_id=self.product_id,
            category=self.category,
            subcategory=self.subcategory,
            subclass=self.subclass,
            class_name=self.class_name,
        )
