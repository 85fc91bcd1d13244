"""
Use Cases Package - Application Layer

This package contains the use cases that validate caller input, run the
reconciliation engines and shape their results for the rendering layer.
"""

from .accuracy_use_cases import AccuracyUseCase
from .analysis_cache import AnalysisCache
from .pivot_use_cases import ApplyAggregateEditUseCase, BuildPivotUseCase
from .series_ingestion_use_case import SeriesIngestionUseCase
from .waterfall_use_cases import WaterfallUseCase

__all__ = [
    "AccuracyUseCase",
    "AnalysisCache",
    "ApplyAggregateEditUseCase",
    "BuildPivotUseCase",
    "SeriesIngestionUseCase",
    "WaterfallUseCase",
]
