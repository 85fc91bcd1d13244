"""
Database package - Infrastructure Layer

This package contains the MongoDB client used by the analysis cache.
"""

from forecast_recon.infrastructure.database.mongo_database import MongoDatabase

__all__ = ["MongoDatabase"]
