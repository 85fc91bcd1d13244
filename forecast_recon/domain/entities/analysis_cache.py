"""
Domain Entities - Analysis Cache

A computed analysis (accuracy batch, waterfall) stored for reuse. The cache is
write-behind only: results are always computed by the engines, the cache just
keeps a copy keyed by analysis type and parameters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4


class AnalysisType(str, Enum):
    ACCURACY = "accuracy"
    WATERFALL_BUILD_UP = "waterfall_build_up"
    WATERFALL_COMPARISON = "waterfall_comparison"


@dataclass
class CachedAnalysis:
    """A cached analysis result with its validity window."""

    analysis_type: AnalysisType
    analysis_parameters: Dict[str, Any]
    analysis_result: Any
    id: UUID = field(default_factory=uuid4)
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None
    is_valid: bool = True

    @classmethod
    def with_ttl(
        cls,
        analysis_type: AnalysisType,
        analysis_parameters: Dict[str, Any],
        analysis_result: Any,
        ttl_seconds: int,
    ) -> "CachedAnalysis":
        computed_at = datetime.now(timezone.utc)
        return cls(
            analysis_type=analysis_type,
            analysis_parameters=analysis_parameters,
            analysis_result=analysis_result,
            computed_at=computed_at,
            expires_at=computed_at + timedelta(seconds=ttl_seconds),
        )

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        if not self.is_valid:
            return False
        if self.expires_at is None:
            return True
        current = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return current < expires_at
