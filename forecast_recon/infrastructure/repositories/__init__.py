"""
Repositories Package - Infrastructure Layer

This package contains concrete implementations of the repository
interfaces defined in the domain layer.
"""

from .analysis_cache_repository import AnalysisCacheRepository

__all__ = ["AnalysisCacheRepository"]
