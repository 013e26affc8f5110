"""
Record store abstraction and an in-memory implementation.

A record store is scoped to one collection/table and exposes the handful of
operations the route handlers need. The MongoDB, Firestore and Supabase
implementations live in their own modules.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

from portal_backend.errors import NotFound

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore(Protocol):
    """Interface for one entity collection on one backend."""

    backend_name: str
    location: str
    native_id_field: str
    # Whether delete_by_id can tell a missing record apart from a deleted one.
    reports_missing_on_delete: bool

    def find_by_id(self, record_id: str) -> Optional[dict]:
        ...

    def list(self, filters: Optional[dict] = None) -> list[dict]:
        ...

    def create(self, fields: dict, record_id: Optional[str] = None) -> dict:
        ...

    def update_by_id(self, record_id: str, fields: dict) -> None:
        ...

    def delete_by_id(self, record_id: str) -> None:
        ...


class InMemoryRecordStore:
    """Simple in-memory record store for development and tests."""

    backend_name = "memory"
    native_id_field = "id"

    def __init__(
        self,
        location: str = "records",
        *,
        reports_missing_on_delete: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.location = location
        self.reports_missing_on_delete = reports_missing_on_delete
        self.clock = clock
        self.records: Dict[str, dict] = {}

    def _missing(self, operation: str, record_id: str) -> NotFound:
        target = f"{self.location}/{record_id}"
        logger.warning("%s %s %s: record not found", self.backend_name, operation, target)
        return NotFound(f"{self.backend_name} {operation} {target}: record not found")

    def find_by_id(self, record_id: str) -> Optional[dict]:
        record = self.records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def list(self, filters: Optional[dict] = None) -> list[dict]:
        filters = filters or {}
        return [
            copy.deepcopy(record)
            for record in self.records.values()
            if all(record.get(key) == value for key, value in filters.items())
        ]

    def create(self, fields: dict, record_id: Optional[str] = None) -> dict:
        now = self.clock()
        record_id = record_id or uuid.uuid4().hex
        record = {
            **copy.deepcopy(fields),
            "id": record_id,
            "createdAt": now,
            "updatedAt": now,
        }
        self.records[record_id] = record
        return copy.deepcopy(record)

    def update_by_id(self, record_id: str, fields: dict) -> None:
        record = self.records.get(record_id)
        if record is None:
            raise self._missing("update", record_id)
        record.update(copy.deepcopy(fields))
        record["updatedAt"] = self.clock()

    def delete_by_id(self, record_id: str) -> None:
        removed = self.records.pop(record_id, None)
        if removed is None and self.reports_missing_on_delete:
            raise self._missing("delete", record_id)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.records.clear()
