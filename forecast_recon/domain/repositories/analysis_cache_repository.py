"""
Analysis Cache Repository Interface

This module defines the interface for the optional analysis cache. Callers
treat it as a write-behind sink: a failing cache never changes a result.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from forecast_recon.domain.entities.analysis_cache import AnalysisType, CachedAnalysis


class IAnalysisCacheRepository(ABC):
    """Interface for analysis cache implementations."""

    @abstractmethod
    async def save(self, entry: CachedAnalysis) -> CachedAnalysis:
        """
        Store an analysis, replacing any earlier entry with the same key.

        Args:
            entry: The analysis to store

        Returns:
            The stored entry
        """
        pass

    @abstractmethod
    async def find_valid(
        self, analysis_type: AnalysisType, analysis_parameters: Dict[str, Any]
    ) -> Optional[CachedAnalysis]:
        """
        Find a valid, unexpired analysis for the given key.

        Args:
            analysis_type: Kind of analysis
            analysis_parameters: Parameters the analysis was computed with

        Returns:
            The cached analysis if found and usable, None otherwise
        """
        pass

    @abstractmethod
    async def invalidate(
        self,
        analysis_type: AnalysisType,
        analysis_parameters: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Mark cached analyses as invalid.

        Args:
            analysis_type: Kind of analysis to invalidate
            analysis_parameters: Only entries with these parameters; all of
                the type when omitted

        Returns:
            Number of entries invalidated
        """
        pass
