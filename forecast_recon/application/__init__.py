"""
Application Layer Package

This package contains the use cases and DTOs that sit between callers and
the reconciliation engines of the domain layer.
"""

# Re-export submodules
from forecast_recon.application import dtos, use_cases

__all__ = ["dtos", "use_cases"]
