"""
Write-behind access to the optional analysis cache.

Results are always computed by the engines; the cache only keeps a copy.
Cache failures are logged and never reach the caller.
"""

import hashlib
from typing import Any, Dict, Iterable, Optional

import structlog

from forecast_recon.domain.entities.analysis_cache import AnalysisType, CachedAnalysis
from forecast_recon.domain.entities.errors import AnalysisCacheError
from forecast_recon.domain.entities.time_series import TimeSeriesPoint
from forecast_recon.domain.repositories.analysis_cache_repository import (
    IAnalysisCacheRepository,
)

logger = structlog.get_logger(__name__)


def fingerprint_points(points: Iterable[TimeSeriesPoint]) -> str:
    """Order-independent digest of the input points, used in cache keys."""
    lines = sorted(
        f"{point.entity_key}|{point.date.isoformat()}|{point.metric_name}|{point.value!r}"
        for point in points
    )
    digest = hashlib.sha256()
    for line in lines:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


class AnalysisCache:
    """Best-effort wrapper around an `IAnalysisCacheRepository`."""

    def __init__(
        self,
        repository: Optional[IAnalysisCacheRepository] = None,
        ttl_seconds: int = 3600,
        enabled: bool = True,
    ):
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled and repository is not None

    async def load(
        self, analysis_type: AnalysisType, parameters: Dict[str, Any]
    ) -> Optional[Any]:
        if not self.enabled or self.repository is None:
            return None
        try:
            entry = await self.repository.find_valid(analysis_type, parameters)
        except AnalysisCacheError as e:
            logger.warning(
                "analysis_cache.read_failed",
                analysis_type=analysis_type.value,
                error=e.message,
            )
            return None
        if entry is None:
            logger.debug("analysis_cache.miss", analysis_type=analysis_type.value)
            return None
        logger.debug("analysis_cache.hit", analysis_type=analysis_type.value)
        return entry.analysis_result

    async def store(
        self, analysis_type: AnalysisType, parameters: Dict[str, Any], result: Any
    ) -> bool:
        if not self.enabled or self.repository is None:
            return False
        entry = CachedAnalysis.with_ttl(
            analysis_type=analysis_type,
            analysis_parameters=parameters,
            analysis_result=result,
            ttl_seconds=self.ttl_seconds,
        )
        try:
            await self.repository.save(entry)
        except AnalysisCacheError as e:
            logger.warning(
                "analysis_cache.write_failed",
                analysis_type=analysis_type.value,
                error=e.message,
            )
            return False
        return True
