"""Domain entities for time-series rows and aggregated pivot rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from forecast_recon.shared.consts import TOTAL_GROUP_KEY

Number = Union[int, float, Decimal]


class SeriesName(str, Enum):
    """Pivot series, declared in render order."""

    SALES_HISTORY = "Historia de ventas"
    FORECAST = "Forecast"
    INITIAL_PLAN = "Plan inicial"
    DEMAND_PLANNER = "Demand Planner"
    SALES_LAST_YEAR = "Ventas LY"
    KAM_INPUT = "KAM input"
    ADJUSTED_HISTORY = "Historia ajustada"

    def rank(self) -> int:
        return SERIES_ORDER.index(self)


SERIES_ORDER: Tuple[SeriesName, ...] = tuple(SeriesName)


@dataclass(frozen=True, slots=True)
class EntityKey:
    """Identifies a leaf series: a product, optionally per customer and location."""

    product_id: str
    customer_id: Optional[str] = None
    location_id: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.product_id]
        if self.customer_id is not None:
            parts.append(self.customer_id)
        if self.location_id is not None:
            parts.append(self.location_id)
        return "_".join(parts)


@dataclass(frozen=True, slots=True)
class TimeSeriesPoint:
    """A single raw observation as fetched from the external store."""

    entity_key: EntityKey
    date: date
    metric_name: str
    value: Optional[Number] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None


@dataclass(slots=True)
class AggregatedSeriesRow:
    """One pivot row: a group (or the total) for one series, keyed by ISO date."""

    group_key: str
    series_name: SeriesName
    values: Dict[str, Number] = field(default_factory=dict)

    @property
    def is_total(self) -> bool:
        return self.group_key == TOTAL_GROUP_KEY

    def cell_key(self, iso_date: str) -> str:
        """Key used by the grid to highlight an updated cell."""
        return f"{self.group_key}-{self.series_name.value}-{iso_date}"


@dataclass(slots=True)
class RollupNode:
    """A hierarchy node with one series rolled up from its immediate children."""

    level: str
    name: str
    values: Dict[str, Number] = field(default_factory=dict)
    children: List["RollupNode"] = field(default_factory=list)

    def find(self, name: str) -> Optional["RollupNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None
