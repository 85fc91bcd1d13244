"""
Domain Layer Package

This package contains the reconciliation core: hierarchy resolution,
aggregation, accuracy scoring, waterfall decomposition and fair-share
redistribution. It has no dependencies on storage or transport concerns.
"""

# Re-export submodules
from forecast_recon.domain import entities, repositories, services

__all__ = ["entities", "repositories", "services"]
