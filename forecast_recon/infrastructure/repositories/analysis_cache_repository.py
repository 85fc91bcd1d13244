"""
MongoDB Analysis Cache Repository - Infrastructure Layer

This module implements the IAnalysisCacheRepository interface using MongoDB
as the underlying data store. Entries are keyed by a digest of the analysis
type and its parameters, one entry per key.
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import pymongo

from forecast_recon.domain.entities.analysis_cache import AnalysisType, CachedAnalysis
from forecast_recon.domain.entities.errors import AnalysisCacheError
from forecast_recon.domain.repositories.analysis_cache_repository import (
    IAnalysisCacheRepository,
)
from forecast_recon.infrastructure.database import MongoDatabase


def cache_key(analysis_type: AnalysisType, analysis_parameters: Dict[str, Any]) -> str:
    """Stable key of an analysis type and its parameters."""
    encoded = json.dumps(
        {"type": analysis_type.value, "parameters": analysis_parameters},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class AnalysisCacheRepository(IAnalysisCacheRepository):
    """MongoDB implementation of the analysis cache."""

    def __init__(self, mongo_database: MongoDatabase, collection_name: str = "analysis_cache"):
        """
        Initialize the MongoDB analysis cache repository.

        Args:
            mongo_database: MongoDB database client
            collection_name: Name of the cache collection
        """
        self.db = mongo_database
        self.collection_name = collection_name

    def _to_document(self, entry: CachedAnalysis) -> Dict[str, Any]:
        """Convert a CachedAnalysis entity to a MongoDB document."""
        return {
            "id": str(entry.id),
            "cache_key": cache_key(entry.analysis_type, entry.analysis_parameters),
            "analysis_type": entry.analysis_type.value,
            "analysis_parameters": entry.analysis_parameters,
            "analysis_result": entry.analysis_result,
            "computed_at": entry.computed_at,
            "expires_at": entry.expires_at,
            "is_valid": entry.is_valid,
        }

    def _to_entity(self, document: Dict[str, Any]) -> CachedAnalysis:
        """Convert a MongoDB document to a CachedAnalysis entity."""
        return CachedAnalysis(
            id=UUID(document["id"]),
            analysis_type=AnalysisType(document["analysis_type"]),
            analysis_parameters=document.get("analysis_parameters") or {},
            analysis_result=document.get("analysis_result"),
            computed_at=document["computed_at"],
            expires_at=document.get("expires_at"),
            is_valid=document.get("is_valid", True),
        )

    async def save(self, entry: CachedAnalysis) -> CachedAnalysis:
        """
        Store an analysis, replacing any earlier entry with the same key.

        Args:
            entry: The analysis to store

        Returns:
            The stored entry

        Raises:
            AnalysisCacheError: If the write fails
        """
        document = self._to_document(entry)
        try:
            await self.db.upsert_one(
                self.collection_name, {"cache_key": document["cache_key"]}, document
            )
        except Exception as e:
            raise AnalysisCacheError(f"Failed to store analysis: {str(e)}") from e
        return entry

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

        Raises:
            AnalysisCacheError: If the read fails
        """
        query = {
            "cache_key": cache_key(analysis_type, analysis_parameters),
            "is_valid": True,
        }
        try:
            documents = await self.db.find_many(
                self.collection_name,
                query,
                sort_by="computed_at",
                sort_direction=pymongo.DESCENDING,
                limit=1,
            )
        except Exception as e:
            raise AnalysisCacheError(f"Failed to read analysis cache: {str(e)}") from e

        if not documents:
            return None
        entry = self._to_entity(documents[0])
        # The TTL monitor runs periodically; expired entries may still be there.
        if not entry.is_usable(datetime.now(timezone.utc)):
            return None
        return entry

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

        Raises:
            AnalysisCacheError: If the update fails
        """
        query: Dict[str, Any] = {"analysis_type": analysis_type.value, "is_valid": True}
        if analysis_parameters is not None:
            query["cache_key"] = cache_key(analysis_type, analysis_parameters)
        try:
            return await self.db.update_many(
                self.collection_name, query, {"$set": {"is_valid": False}}
            )
        except Exception as e:
            raise AnalysisCacheError(f"Failed to invalidate analyses: {str(e)}") from e
