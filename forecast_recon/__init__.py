"""
Forecast reconciliation core.

Pure computations behind the demand-planning pivots and dashboards:
hierarchy resolution, time-series aggregation, accuracy scoring, waterfall
decomposition and fair-share redistribution of edited aggregates.
"""

__version__ = "0.1.0"
