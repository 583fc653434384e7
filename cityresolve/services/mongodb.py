# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and atomic conditional updates.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError,
    PyMongoError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

SortSpec = List[Tuple[str, int]]


class PersistenceError(Exception):
    """Raised when the database cannot complete an operation."""
    pass


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 client: Optional[MongoClient] = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/city_resolve_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'city_resolve_dev')
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                self._client = None
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise PersistenceError(f"MongoDB unavailable: {e}") from e

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except (PyMongoError, PersistenceError) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    @staticmethod
    def _serialize(document: Optional[Dict]) -> Optional[Dict]:
        """Replace ``_id`` with a string ``id``."""
        if document is None:
            return None
        if "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> str:
        """Insert a document and return its ID."""
        try:
            if "_id" not in document:
                document["_id"] = ObjectId()

            result = self.get_collection(collection).insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")
        except PyMongoError as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise PersistenceError(f"Failed to create document in {collection}") from e

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID. Malformed IDs are treated as missing."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return None

        return self.find_one_by(collection, {"_id": object_id})

    def find_one_by(self, collection: str, filters: Dict) -> Optional[Dict]:
        """Find a single document matching ``filters``."""
        try:
            document = self.get_collection(collection).find_one(filters)
            return self._serialize(document)
        except PyMongoError as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise PersistenceError(f"Failed to read from {collection}") from e

    def find(self, collection: str, filters: Dict = None, sort: SortSpec = None,
             limit: int = 0) -> List[Dict]:
        """Find documents with optional sorting and limit."""
        try:
            cursor = self.get_collection(collection).find(filters or {})
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)

            documents = [self._serialize(doc) for doc in cursor]
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

        except PyMongoError as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise PersistenceError(f"Failed to read from {collection}") from e

    def paginate(self, collection: str, page: int = 1, page_size: int = 20,
                 filters: Dict = None, sort: SortSpec = None) -> PaginationResult:
        """Paginate documents with compound sorting and filtering."""
        try:
            query = filters or {}
            collection_obj = self.get_collection(collection)

            skip = (page - 1) * page_size
            total = collection_obj.count_documents(query)

            cursor = collection_obj.find(query)
            if sort:
                cursor = cursor.sort(sort)
            documents = [self._serialize(doc) for doc in cursor.skip(skip).limit(page_size)]

            logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
            return PaginationResult(documents, total, page, page_size)

        except PyMongoError as e:
            logger.error(f"Failed to paginate documents in {collection}: {e}")
            raise PersistenceError(f"Failed to read from {collection}") from e

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents matching ``filters``."""
        try:
            count = self.get_collection(collection).count_documents(filters or {})
            logger.debug(f"Counted {count} documents in {collection}")
            return count
        except PyMongoError as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise PersistenceError(f"Failed to count {collection}") from e

    def estimated_count(self, collection: str) -> int:
        """Fast collection size from metadata."""
        try:
            return self.get_collection(collection).estimated_document_count()
        except PyMongoError as e:
            logger.error(f"Failed to estimate document count in {collection}: {e}")
            raise PersistenceError(f"Failed to count {collection}") from e

    def update_if(self, collection: str, doc_id: str, expected: Dict,
                  updates: Dict) -> Optional[Dict]:
        """
        Set ``updates`` only if the document still matches ``expected``.

        This is a single compare-and-swap against the server.

        Returns:
            The updated document, or None if the ID is unknown or a guard failed
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            return None

        try:
            document = self.get_collection(collection).find_one_and_update(
                {"_id": object_id, **expected},
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
            raise PersistenceError(f"Failed to update {collection}") from e

        if document is None:
            logger.debug(f"Conditional update matched nothing for {doc_id} in {collection}")
        else:
            logger.info(f"Updated document {doc_id} in {collection}")
        return self._serialize(document)

    def update_by(self, collection: str, filters: Dict, updates: Dict) -> Optional[Dict]:
        """Set ``updates`` on the first document matching ``filters``."""
        try:
            document = self.get_collection(collection).find_one_and_update(
                filters,
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
            return self._serialize(document)
        except PyMongoError as e:
            logger.error(f"Failed to update document in {collection}: {e}")
            raise PersistenceError(f"Failed to update {collection}") from e

    def add_to_set_and_increment(self, collection: str, doc_id: str, set_field: str,
                                 counter_field: str, value: Any,
                                 guards: Dict = None) -> Optional[Dict]:
        """
        Add ``value`` to an array and increment a counter in one atomic step.

        The update applies only when ``value`` is absent from ``set_field`` and
        the document matches ``guards``, so concurrent duplicate requests
        cannot both succeed and the counter always equals the array size.

        Returns:
            The updated document, or None when nothing was applied
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            return None

        query = {"_id": object_id, set_field: {"$nin": [value]}}
        if guards:
            query.update(guards)

        try:
            document = self.get_collection(collection).find_one_and_update(
                query,
                {"$addToSet": {set_field: value}, "$inc": {counter_field: 1}},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error(f"Failed atomic add-to-set on {doc_id} in {collection}: {e}")
            raise PersistenceError(f"Failed to update {collection}") from e

        return self._serialize(document)

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Used to undo a partially applied creation."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            return False

        try:
            result = self.get_collection(collection).delete_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(f"Failed to delete document {doc_id} in {collection}: {e}")
            raise PersistenceError(f"Failed to delete from {collection}") from e

        if result.deleted_count > 0:
            logger.warning(f"Deleted document {doc_id} in {collection}")
            return True
        return False

    def aggregate(self, collection: str, pipeline: List[Dict]) -> List[Dict]:
        """Run an aggregation pipeline."""
        try:
            results = list(self.get_collection(collection).aggregate(pipeline))
            logger.debug(f"Aggregation returned {len(results)} results from {collection}")
            return results
        except PyMongoError as e:
            logger.error(f"Failed to run aggregation in {collection}: {e}")
            raise PersistenceError(f"Failed to aggregate {collection}") from e

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            users = self.get_collection("users")
            users.create_index("email", unique=True)
            users.create_index("role")

            issues = self.get_collection("issues")
            issues.create_index([("priorityRank", ASCENDING), ("createdAt", DESCENDING)])
            issues.create_index([("reportedBy.email", ASCENDING), ("createdAt", DESCENDING)])
            issues.create_index([("status", ASCENDING), ("category", ASCENDING)])
            issues.create_index("assignedStaff.email")

            timelines = self.get_collection("timelines")
            timelines.create_index([("issueId", ASCENDING), ("date", DESCENDING)])

            payments = self.get_collection("payments")
            payments.create_index("email")
            payments.create_index("transactionId", unique=True, sparse=True)

            logger.info("MongoDB indexes created successfully")

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise PersistenceError("Failed to create indexes") from e


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
