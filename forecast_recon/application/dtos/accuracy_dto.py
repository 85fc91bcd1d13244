"""
Application DTOs - Accuracy

This module contains Data Transfer Objects (DTOs) for the KPI dashboard
accuracy queries.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from forecast_recon.domain.entities.accuracy import (
    AccuracyCategory,
    AccuracyRecord,
    AccuracySummary,
    EntityKind,
    InsufficientData,
    Trend,
)


class AccuracyRequestDTO(BaseModel):
    """DTO for an accuracy query."""

    entity_kind: EntityKind = EntityKind.PRODUCT
    threshold: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Accuracy score under which an entity is low-accuracy",
    )
    forecast_metric: str = Field(default="forecast", min_length=1)
    actual_metric: str = Field(default="actual", min_length=1)
    use_cache: bool = Field(default=True, description="Reuse a valid cached result")


class ErrorMetricsDTO(BaseModel):
    """DTO for point-error statistics."""

    mae: float
    rmse: float
    mape: Optional[float] = None
    wmape: Optional[float] = None
    smape: Optional[float] = None
    bias: Optional[float] = None


class AccuracyRecordDTO(BaseModel):
    """DTO for the accuracy of one entity."""

    entity_key: str
    entity_kind: EntityKind
    accuracy_score: float = Field(ge=0, le=100)
    avg_error_percentage: float
    forecast_count: int
    last_forecast_date: date
    trend: Trend
    accuracy_category: AccuracyCategory
    forecast_bias: Optional[float] = None
    is_low_accuracy: bool = False
    metrics: Optional[ErrorMetricsDTO] = None

    @classmethod
    def from_entity(cls, record: AccuracyRecord) -> "AccuracyRecordDTO":
        metrics = (
            ErrorMetricsDTO(
                mae=record.metrics.mae,
                rmse=record.metrics.rmse,
                mape=record.metrics.mape,
                wmape=record.metrics.wmape,
                smape=record.metrics.smape,
                bias=record.metrics.bias,
            )
            if record.metrics is not None
            else None
        )
        return cls(
            entity_key=record.entity_key,
            entity_kind=record.entity_kind,
            accuracy_score=record.accuracy_score,
            avg_error_percentage=record.avg_error_percentage,
            forecast_count=record.forecast_count,
            last_forecast_date=record.last_forecast_date,
            trend=record.trend,
            accuracy_category=record.accuracy_category,
            forecast_bias=record.forecast_bias,
            is_low_accuracy=record.is_low_accuracy,
            metrics=metrics,
        )


class ExcludedEntityDTO(BaseModel):
    """DTO for an entity left out of the results."""

    entity_key: str
    reason: str
    forecast_count: int = 0

    @classmethod
    def from_entity(cls, marker: InsufficientData) -> "ExcludedEntityDTO":
        return cls(
            entity_key=marker.entity_key,
            reason=marker.reason,
            forecast_count=marker.forecast_count,
        )


class AccuracySummaryDTO(BaseModel):
    """DTO for the KPI headline."""

    total_entities: int
    low_accuracy_entities: int
    excluded_entities: int
    overall_accuracy: float
    accuracy_trend: Trend

    @classmethod
    def from_entity(cls, summary: AccuracySummary) -> "AccuracySummaryDTO":
        return cls(
            total_entities=summary.total_entities,
            low_accuracy_entities=summary.low_accuracy_entities,
            excluded_entities=summary.excluded_entities,
            overall_accuracy=summary.overall_accuracy,
            accuracy_trend=summary.accuracy_trend,
        )


class AccuracyResponseDTO(BaseModel):
    """DTO returned by accuracy queries."""

    entity_kind: EntityKind
    threshold: float
    computed_at: datetime
    records: List[AccuracyRecordDTO]
    low_accuracy: List[AccuracyRecordDTO]
    excluded: List[ExcludedEntityDTO]
    summary: AccuracySummaryDTO
    from_cache: bool = False
