"""Domain entities for fair-share redistribution of edited aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Union

from .time_series import AggregatedSeriesRow

Number = Union[int, float]


@dataclass(frozen=True, slots=True)
class ChildValue:
    """A child cell under an edited aggregate."""

    key: str
    current_value: Number


@dataclass(frozen=True, slots=True)
class RedistributedValue:
    """A child cell after its share of the edit was applied."""

    key: str
    current_value: Number
    share: Number
    new_value: Number


@dataclass(slots=True)
class AggregateEditResult:
    """Pivot rows after an aggregate edit and the cells that changed."""

    rows: List[AggregatedSeriesRow]
    aggregate_delta: Number
    updated_cells: FrozenSet[str] = field(default_factory=frozenset)
