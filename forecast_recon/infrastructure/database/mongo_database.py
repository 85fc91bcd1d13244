"""
MongoDB Database - Infrastructure Layer

This module provides the MongoDB client behind the analysis cache. It handles
the connection, the cache collection indexes and the few document operations
the cache repository needs.
"""

from typing import Any, Dict, List, Optional

import pymongo.errors
import structlog
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_COLLECTION = "analysis_cache"


class MongoDatabase:
    """MongoDB database client."""

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        cache_collection: str = DEFAULT_CACHE_COLLECTION,
    ):
        """
        Initialize the MongoDB database client.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Name of the database to use
            cache_collection: Name of the analysis cache collection
        """
        self.client: MongoClient = MongoClient(mongo_uri)
        self.db: Database = self.client[db_name]
        self.cache_collection = cache_collection

    def get_collection(self, collection_name: str) -> Collection:
        """
        Get a collection from the database.

        Args:
            collection_name: Name of the collection

        Returns:
            MongoDB collection
        """
        return self.db[collection_name]

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: Optional[str] = None,
        sort_direction: int = 1,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Find multiple documents in a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match documents
            sort_by: Field to sort by
            sort_direction: Sort direction (1 for ascending, -1 for descending)
            skip: Number of documents to skip
            limit: Maximum number of documents to return

        Returns:
            List of documents
        """
        cursor = self.db[collection_name].find(query)

        if sort_by:
            cursor = cursor.sort(sort_by, sort_direction)

        cursor = cursor.skip(skip).limit(limit)

        return list(cursor)

    async def upsert_one(
        self, collection_name: str, query: Dict[str, Any], document: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Replace the document matching `query`, inserting it if none matches.

        Args:
            collection_name: Name of the collection
            query: Query to match the document to replace
            document: New document

        Returns:
            The stored document

        Raises:
            pymongo.errors.PyMongoError: If the write is not acknowledged
        """
        result = self.db[collection_name].replace_one(query, document, upsert=True)
        if not result.acknowledged:
            raise pymongo.errors.OperationFailure(
                f"Failed to upsert document in {collection_name}"
            )
        return document

    async def update_many(
        self, collection_name: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> int:
        """
        Update every document matching `query`.

        Args:
            collection_name: Name of the collection
            query: Query to match documents
            update: Update operators to apply

        Returns:
            Number of modified documents
        """
        result = self.db[collection_name].update_many(query, update)
        return result.modified_count

    def close(self) -> None:
        """Close the database connection."""
        self.client.close()

    def _safe_drop_index(self, collection_name: str, index_name: str) -> None:
        """
        Safely drop an index if it exists.

        Args:
            collection_name: Name of the collection
            index_name: Name of the index to drop
        """
        try:
            self.db[collection_name].drop_index(index_name)
        except pymongo.errors.OperationFailure:
            # Index doesn't exist, nothing to do
            pass

    async def create_indexes(self) -> None:
        """
        Create the analysis cache indexes.
        This is an async method to be called during application startup.
        """
        collection_name = self.cache_collection

        self._safe_drop_index(collection_name, "cache_key_idx")
        self._safe_drop_index(collection_name, "type_valid_idx")
        self._safe_drop_index(collection_name, "expires_at_ttl_idx")

        try:
            self.db[collection_name].create_index(
                "cache_key", name="cache_key_idx", unique=True
            )
            self.db[collection_name].create_index(
                [("analysis_type", 1), ("is_valid", 1)],
                name="type_valid_idx",
                background=True,
            )
            # Mongo removes entries once expires_at has passed.
            self.db[collection_name].create_index(
                "expires_at",
                name="expires_at_ttl_idx",
                expireAfterSeconds=0,
            )
        except pymongo.errors.OperationFailure as e:
            logger.warning(
                "mongo.indexes.failed", collection=collection_name, error=str(e)
            )
