"""
MongoDB-backed record stores.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from portal_backend.db import utcnow
from portal_backend.errors import BackendError, ConfigurationError, NotFound

logger = logging.getLogger(__name__)


class MongoConnection:
    """
    Lazily-created process-wide MongoDB connection.

    ``connect`` is idempotent: the client is built on first use and reused by
    every store afterwards.
    """

    def __init__(self, uri: Optional[str], database: str):
        self.uri = uri
        self.database_name = database
        self._client: Optional[MongoClient] = None

    def connect(self) -> Database:
        if self._client is None:
            if not self.uri:
                raise ConfigurationError("MongoDB not configured: MONGODB_URI is missing")
            try:
                self._client = MongoClient(self.uri, tz_aware=True)
            except PyMongoError as exc:
                logger.error("MongoDB connect failed: %s", exc)
                raise ConfigurationError(f"MongoDB connection failed: {exc}") from exc
        return self._client[self.database_name]


def _document_id(record_id: str) -> Any:
    # Records created here get ObjectIds; imported ones may use plain strings.
    if ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return record_id


class MongoRecordStore:
    backend_name = "MongoDB"
    native_id_field = "_id"
    reports_missing_on_delete = True

    def __init__(self, connection: MongoConnection, location: str):
        self.connection = connection
        self.location = location

    @property
    def collection(self):
        return self.connection.connect()[self.location]

    def _missing(self, operation: str, record_id: str) -> NotFound:
        target = f"{self.location}/{record_id}"
        logger.warning("%s %s %s: record not found", self.backend_name, operation, target)
        return NotFound(f"{self.backend_name} {operation} {target}: record not found")

    def _failed(self, operation: str, target: str, exc: Exception) -> BackendError:
        logger.error("MongoDB %s %s failed: %s", operation, target, exc)
        return BackendError(str(exc))

    def find_by_id(self, record_id: str) -> Optional[dict]:
        collection = self.collection
        try:
            return collection.find_one({"_id": _document_id(record_id)})
        except PyMongoError as exc:
            raise self._failed("find", f"{self.location}/{record_id}", exc) from exc

    def list(self, filters: Optional[dict] = None) -> list[dict]:
        collection = self.collection
        try:
            return list(collection.find(filters or {}))
        except PyMongoError as exc:
            raise self._failed("list", self.location, exc) from exc

    def create(self, fields: dict, record_id: Optional[str] = None) -> dict:
        collection = self.collection
        now = utcnow()
        document = {**fields, "createdAt": now, "updatedAt": now}
        if record_id:
            document["_id"] = _document_id(record_id)
        try:
            result = collection.insert_one(document)
        except PyMongoError as exc:
            raise self._failed("create", self.location, exc) from exc
        document["_id"] = result.inserted_id
        logger.info("MongoDB created %s/%s", self.location, result.inserted_id)
        return document

    def update_by_id(self, record_id: str, fields: dict) -> None:
        collection = self.collection
        try:
            updated = collection.find_one_and_update(
                {"_id": _document_id(record_id)},
                {"$set": {**fields, "updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise self._failed("update", f"{self.location}/{record_id}", exc) from exc
        if updated is None:
            raise self._missing("update", record_id)
        logger.info("MongoDB updated %s/%s", self.location, record_id)

    def delete_by_id(self, record_id: str) -> None:
        collection = self.collection
        try:
            deleted = collection.find_one_and_delete({"_id": _document_id(record_id)})
        except PyMongoError as exc:
            raise self._failed("delete", f"{self.location}/{record_id}", exc) from exc
        if deleted is None:
            raise self._missing("delete", record_id)
        logger.info("MongoDB deleted %s/%s", self.location, record_id)
