"""
Waterfall Use Cases - Application Layer

This module defines the use cases producing build-up and period comparison
waterfalls for one or many entities. A failing entity is reported next to
the successful ones; it never fails the request.
"""

from typing import Any, Dict, Optional

import structlog

from forecast_recon.domain.entities.analysis_cache import AnalysisType
from forecast_recon.domain.entities.batch import BatchResult
from forecast_recon.domain.entities.waterfall import (
    Waterfall,
    WaterfallInputs,
    WaterfallType,
)
from forecast_recon.domain.services.waterfall_engine import (
    DEFAULT_PRECISION,
    build_up_batch,
    compare_batch,
)

from ..dtos.waterfall_dto import (
    BuildUpRequestDTO,
    ComparisonRequestDTO,
    WaterfallBatchResponseDTO,
    WaterfallDTO,
    WaterfallFailureDTO,
)
from .analysis_cache import AnalysisCache

logger = structlog.get_logger(__name__)


def _to_response(
    waterfall_type: WaterfallType, result: BatchResult[Waterfall]
) -> WaterfallBatchResponseDTO:
    return WaterfallBatchResponseDTO(
        waterfall_type=waterfall_type,
        waterfalls=[WaterfallDTO.from_entity(w) for w in result.succeeded.values()],
        failures=[WaterfallFailureDTO.from_entity(f) for f in result.failed],
    )


class WaterfallUseCase:
    """Use case for waterfall decomposition."""

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        precision: int = DEFAULT_PRECISION,
    ):
        """
        Args:
            cache: Optional write-behind analysis cache
            precision: Decimals kept on every component value
        """
        self.cache = cache or AnalysisCache()
        self.precision = precision

    async def build_up(
        self, request: BuildUpRequestDTO, inputs: WaterfallInputs
    ) -> WaterfallBatchResponseDTO:
        """
        Decompose the forecast of every requested entity at one date.

        Args:
            request: Entities and date
            inputs: Driver snapshots already fetched by the caller

        Returns:
            The waterfalls that could be built and the failures
        """
        result = build_up_batch(
            [entity.to_entity() for entity in request.entities],
            request.at_date,
            inputs,
            precision=self.precision,
        )
        response = _to_response(WaterfallType.BUILD_UP, result)
        await self._store(
            AnalysisType.WATERFALL_BUILD_UP,
            {**request.model_dump(mode="json"), "precision": self.precision},
            response,
        )
        return response

    async def compare_periods(
        self, request: ComparisonRequestDTO, inputs: WaterfallInputs
    ) -> WaterfallBatchResponseDTO:
        """
        Decompose the change between two periods for every requested entity.

        Args:
            request: Entities, current and previous period
            inputs: Period snapshots already fetched by the caller

        Returns:
            The waterfalls that could be built and the failures (e.g. a
            missing previous period)
        """
        result = compare_batch(
            [entity.to_entity() for entity in request.entities],
            request.current_date,
            request.previous_date,
            inputs,
            precision=self.precision,
        )
        response = _to_response(WaterfallType.PERIOD_COMPARISON, result)
        await self._store(
            AnalysisType.WATERFALL_COMPARISON,
            {**request.model_dump(mode="json"), "precision": self.precision},
            response,
        )
        return response

    async def _store(
        self,
        analysis_type: AnalysisType,
        parameters: Dict[str, Any],
        response: WaterfallBatchResponseDTO,
    ) -> None:
        if not response.waterfalls:
            return
        stored = await self.cache.store(
            analysis_type, parameters, response.model_dump(mode="json")
        )
        logger.debug(
            "waterfall.cached",
            analysis_type=analysis_type.value,
            waterfalls=len(response.waterfalls),
            stored=stored,
        )
