"""
Repositories Package

This package contains interfaces defining repository contracts
for data access operations. Specific implementations are provided
by the infrastructure layer.
"""

from .analysis_cache_repository import IAnalysisCacheRepository

__all__ = ["IAnalysisCacheRepository"]
