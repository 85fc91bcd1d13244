"""
Domain Entities - Forecast Accuracy

Value objects produced by the accuracy engine for the KPI dashboard: one
record per product, customer or product x customer pair, or an explicit
`InsufficientData` marker when the entity cannot be scored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Union


class EntityKind(str, Enum):
    """What an accuracy record is keyed on."""

    PRODUCT = "product"
    CUSTOMER = "customer"
    PRODUCT_CUSTOMER = "product_customer"


class Trend(str, Enum):
    """Direction of the forecast error over the scored window."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class AccuracyCategory(str, Enum):
    """Traffic-light band used by the dashboards."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "AccuracyCategory":
        if score >= 80:
            return cls.HIGH
        if score >= 60:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True, slots=True)
class ForecastObservation:
    """A forecast and the actual it is scored against."""

    date: date
    forecast: Optional[float]
    actual: Optional[float]


@dataclass(frozen=True, slots=True)
class ErrorMetrics:
    """Point-error statistics over the compared periods."""

    mae: float
    rmse: float
    mape: Optional[float]
    wmape: Optional[float]
    smape: Optional[float]
    bias: Optional[float]


@dataclass(frozen=True, slots=True)
class AccuracyRecord:
    """Accuracy of one entity over a trailing window."""

    entity_key: str
    entity_kind: EntityKind
    accuracy_score: float
    avg_error_percentage: float
    forecast_count: int
    last_forecast_date: date
    trend: Trend
    accuracy_category: AccuracyCategory
    forecast_bias: Optional[float] = None
    metrics: Optional[ErrorMetrics] = None
    is_low_accuracy: bool = False

    def is_below(self, threshold: float) -> bool:
        return self.accuracy_score < threshold


@dataclass(frozen=True, slots=True)
class InsufficientData:
    """Marker for an entity that must be left out of accuracy results."""

    entity_key: str
    entity_kind: EntityKind
    reason: str
    forecast_count: int = 0


AccuracyOutcome = Union[AccuracyRecord, InsufficientData]


@dataclass(slots=True)
class AccuracyBatch:
    """Scored entities of one batch request, failures kept apart."""

    threshold: float
    records: List[AccuracyRecord] = field(default_factory=list)
    excluded: List[InsufficientData] = field(default_factory=list)

    @property
    def low_accuracy(self) -> List[AccuracyRecord]:
        """Entities under the threshold, worst first."""
        low = [record for record in self.records if record.is_below(self.threshold)]
        return sorted(low, key=lambda record: (record.accuracy_score, record.entity_key))


@dataclass(frozen=True, slots=True)
class AccuracySummary:
    """Headline numbers for the KPI dashboard."""

    total_entities: int
    low_accuracy_entities: int
    excluded_entities: int
    overall_accuracy: float
    accuracy_trend: Trend
