"""
Application DTOs - Waterfall

This module contains Data Transfer Objects (DTOs) for waterfall requests and
the component rows handed to the rendering layer.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from forecast_recon.domain.entities.batch import BatchFailure
from forecast_recon.domain.entities.waterfall import (
    Waterfall,
    WaterfallComponent,
    WaterfallEntity,
    WaterfallType,
)


class WaterfallEntityDTO(BaseModel):
    """DTO identifying the product / location / customer of a waterfall."""

    product_id: str = Field(min_length=1)
    location_id: str = Field(min_length=1)
    customer_id: Optional[str] = None

    def to_entity(self) -> WaterfallEntity:
        return WaterfallEntity(
            product_id=self.product_id,
            location_id=self.location_id,
            customer_id=self.customer_id,
        )


class BuildUpRequestDTO(BaseModel):
    """DTO for a build-up waterfall request."""

    entities: List[WaterfallEntityDTO] = Field(min_length=1)
    at_date: date


class ComparisonRequestDTO(BaseModel):
    """DTO for a period comparison waterfall request."""

    entities: List[WaterfallEntityDTO] = Field(min_length=1)
    current_date: date
    previous_date: date

    @model_validator(mode="after")
    def check_period_order(self) -> "ComparisonRequestDTO":
        if self.previous_date >= self.current_date:
            raise ValueError("previous_date must be before current_date")
        return self


class WaterfallComponentDTO(BaseModel):
    """DTO for one waterfall bar."""

    name: str
    component_order: int = Field(ge=0)
    value: float
    is_positive: bool
    baseline_value: float
    final_value: float

    @classmethod
    def from_entity(cls, component: WaterfallComponent) -> "WaterfallComponentDTO":
        return cls(
            name=component.name,
            component_order=component.order,
            value=component.value,
            is_positive=component.is_positive,
            baseline_value=component.baseline_value,
            final_value=component.final_value,
        )


class WaterfallDTO(BaseModel):
    """DTO for a computed waterfall."""

    product_id: str
    location_id: str
    customer_id: Optional[str] = None
    waterfall_type: WaterfallType
    analysis_date: date
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    start_value: float
    end_value: float
    components: List[WaterfallComponentDTO]

    @classmethod
    def from_entity(cls, waterfall: Waterfall) -> "WaterfallDTO":
        return cls(
            product_id=waterfall.entity.product_id,
            location_id=waterfall.entity.location_id,
            customer_id=waterfall.entity.customer_id,
            waterfall_type=waterfall.waterfall_type,
            analysis_date=waterfall.analysis_date,
            period_start=waterfall.period_start,
            period_end=waterfall.period_end,
            start_value=waterfall.start_value,
            end_value=waterfall.end_value,
            components=[
                WaterfallComponentDTO.from_entity(c) for c in waterfall.components
            ],
        )


class WaterfallFailureDTO(BaseModel):
    """DTO for an entity whose waterfall could not be computed."""

    entity_key: str
    error_type: str
    message: str

    @classmethod
    def from_entity(cls, failure: BatchFailure) -> "WaterfallFailureDTO":
        return cls(
            entity_key=failure.entity_key,
            error_type=failure.error_type,
            message=failure.message,
        )


class WaterfallBatchResponseDTO(BaseModel):
    """DTO returned by waterfall requests: partial success is allowed."""

    waterfall_type: WaterfallType
    waterfalls: List[WaterfallDTO]
    failures: List[WaterfallFailureDTO]
