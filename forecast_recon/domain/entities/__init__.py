"""
Domain Entities Package

This package contains the value objects of the reconciliation core.
"""

from .accuracy import (
    AccuracyBatch,
    AccuracyCategory,
    AccuracyRecord,
    AccuracySummary,
    EntityKind,
    ErrorMetrics,
    ForecastObservation,
    InsufficientData,
    Trend,
)
from .analysis_cache import AnalysisType, CachedAnalysis
from .batch import BatchFailure, BatchResult
from .errors import (
    AggregationInvariantViolation,
    AnalysisCacheError,
    DomainError,
    InsufficientDataError,
    InvalidSelectionError,
    MissingBaselineError,
    NonEditableCellError,
    RoundingInvariantViolation,
)
from .hierarchy import (
    DimensionNode,
    DimensionSelection,
    HierarchyLevel,
    HierarchySnapshot,
    ProductHierarchyRow,
    ResolvedSelection,
)
from .redistribution import AggregateEditResult, ChildValue, RedistributedValue
from .time_series import (
    AggregatedSeriesRow,
    EntityKey,
    RollupNode,
    SeriesName,
    TimeSeriesPoint,
)
from .waterfall import (
    BuildUpDriver,
    ComparisonDriver,
    DriverContribution,
    ForecastDriverSnapshot,
    PeriodLine,
    PeriodSnapshot,
    Waterfall,
    WaterfallComponent,
    WaterfallEntity,
    WaterfallInputs,
    WaterfallType,
)

__all__ = [
    "AccuracyBatch",
    "AccuracyCategory",
    "AccuracyRecord",
    "AccuracySummary",
    "EntityKind",
    "ErrorMetrics",
    "ForecastObservation",
    "InsufficientData",
    "Trend",
    "AnalysisType",
    "CachedAnalysis",
    "BatchFailure",
    "BatchResult",
    "DomainError",
    "InvalidSelectionError",
    "InsufficientDataError",
    "MissingBaselineError",
    "NonEditableCellError",
    "RoundingInvariantViolation",
    "AggregationInvariantViolation",
    "AnalysisCacheError",
    "DimensionNode",
    "DimensionSelection",
    "HierarchyLevel",
    "HierarchySnapshot",
    "ProductHierarchyRow",
    "ResolvedSelection",
    "AggregateEditResult",
    "ChildValue",
    "RedistributedValue",
    "AggregatedSeriesRow",
    "EntityKey",
    "RollupNode",
    "SeriesName",
    "TimeSeriesPoint",
    "BuildUpDriver",
    "ComparisonDriver",
    "DriverContribution",
    "ForecastDriverSnapshot",
    "PeriodLine",
    "PeriodSnapshot",
    "Waterfall",
    "WaterfallComponent",
    "WaterfallEntity",
    "WaterfallInputs",
    "WaterfallType",
]
