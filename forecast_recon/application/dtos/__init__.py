"""
DTOs Package - Application Layer

This package contains Data Transfer Objects (DTOs) used for data exchange
between the application layer and its callers.
"""

from .accuracy_dto import (
    AccuracyRecordDTO,
    AccuracyRequestDTO,
    AccuracyResponseDTO,
    AccuracySummaryDTO,
    ErrorMetricsDTO,
    ExcludedEntityDTO,
)
from .pivot_dto import (
    AggregateEditRequestDTO,
    AggregateEditResponseDTO,
    PivotRequestDTO,
    PivotResponseDTO,
    PivotRowDTO,
)
from .series_dto import ForecastDataRowDTO, ProductHierarchyRowDTO, TimeSeriesRowDTO
from .waterfall_dto import (
    BuildUpRequestDTO,
    ComparisonRequestDTO,
    WaterfallBatchResponseDTO,
    WaterfallComponentDTO,
    WaterfallDTO,
    WaterfallEntityDTO,
    WaterfallFailureDTO,
)

__all__ = [
    "AccuracyRequestDTO",
    "AccuracyRecordDTO",
    "AccuracyResponseDTO",
    "AccuracySummaryDTO",
    "ErrorMetricsDTO",
    "ExcludedEntityDTO",
    "PivotRequestDTO",
    "PivotRowDTO",
    "PivotResponseDTO",
    "AggregateEditRequestDTO",
    "AggregateEditResponseDTO",
    "TimeSeriesRowDTO",
    "ForecastDataRowDTO",
    "ProductHierarchyRowDTO",
    "WaterfallEntityDTO",
    "BuildUpRequestDTO",
    "ComparisonRequestDTO",
    "WaterfallComponentDTO",
    "WaterfallDTO",
    "WaterfallFailureDTO",
    "WaterfallBatchResponseDTO",
]
