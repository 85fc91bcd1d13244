"""
Accuracy Use Cases - Application Layer

This module defines the use case behind the KPI dashboard accuracy views:
scores products, customers or product x customer pairs, surfaces the
low-accuracy ones and keeps an optional cached copy of the result.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

import structlog

from forecast_recon.domain.entities.analysis_cache import AnalysisType
from forecast_recon.domain.entities.time_series import TimeSeriesPoint
from forecast_recon.domain.services.accuracy_engine import (
    DEFAULT_ACCURACY_THRESHOLD,
    DEFAULT_POLICY,
    AccuracyPolicy,
    group_observations,
    score_entities,
    summarize,
)

from ..dtos.accuracy_dto import (
    AccuracyRecordDTO,
    AccuracyRequestDTO,
    AccuracyResponseDTO,
    AccuracySummaryDTO,
    ExcludedEntityDTO,
)
from .analysis_cache import AnalysisCache, fingerprint_points

logger = structlog.get_logger(__name__)


class AccuracyUseCase:
    """Use case for scoring forecast accuracy per entity."""

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        policy: AccuracyPolicy = DEFAULT_POLICY,
        default_threshold: float = DEFAULT_ACCURACY_THRESHOLD,
    ):
        """
        Args:
            cache: Optional write-behind analysis cache
            policy: Epsilon and trend margin applied to every entity
            default_threshold: Threshold used when the request leaves it out
        """
        self.cache = cache or AnalysisCache()
        self.policy = policy
        self.default_threshold = default_threshold

    async def execute(
        self, request: AccuracyRequestDTO, points: Iterable[TimeSeriesPoint]
    ) -> AccuracyResponseDTO:
        """
        Score every entity found in the points.

        Args:
            request: Entity kind, threshold and metric names
            points: Forecast and actual points over the trailing window

        Returns:
            All scored records, the low-accuracy ones worst first, the
            excluded entities and the KPI summary
        """
        point_list: List[TimeSeriesPoint] = list(points)
        threshold = (
            request.threshold if request.threshold is not None else self.default_threshold
        )
        parameters = {
            "entity_kind": request.entity_kind.value,
            "threshold": threshold,
            "forecast_metric": request.forecast_metric,
            "actual_metric": request.actual_metric,
            "zero_actual_epsilon": self.policy.zero_actual_epsilon,
            "trend_margin": self.policy.trend_margin,
            "data_fingerprint": fingerprint_points(point_list),
        }

        if request.use_cache:
            cached = await self.cache.load(AnalysisType.ACCURACY, parameters)
            if cached is not None:
                response = AccuracyResponseDTO.model_validate(cached)
                return response.model_copy(update={"from_cache": True})

        observations = group_observations(
            point_list,
            request.entity_kind,
            forecast_metric=request.forecast_metric,
            actual_metric=request.actual_metric,
        )
        batch = score_entities(
            observations,
            entity_kind=request.entity_kind,
            threshold=threshold,
            policy=self.policy,
        )

        response = AccuracyResponseDTO(
            entity_kind=request.entity_kind,
            threshold=threshold,
            computed_at=datetime.now(timezone.utc),
            records=[AccuracyRecordDTO.from_entity(r) for r in batch.records],
            low_accuracy=[AccuracyRecordDTO.from_entity(r) for r in batch.low_accuracy],
            excluded=[ExcludedEntityDTO.from_entity(m) for m in batch.excluded],
            summary=AccuracySummaryDTO.from_entity(summarize(batch)),
        )

        await self.cache.store(
            AnalysisType.ACCURACY, parameters, response.model_dump(mode="json")
        )
        logger.info(
            "accuracy.computed",
            entity_kind=request.entity_kind.value,
            threshold=threshold,
            scored=len(response.records),
            low_accuracy=len(response.low_accuracy),
            excluded=len(response.excluded),
        )
        return response
