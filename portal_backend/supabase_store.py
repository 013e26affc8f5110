"""
Supabase (Postgres over PostgREST) record stores.

Tables use snake_case columns while the API speaks camelCase, so keys are
converted on the way in and out.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from portal_backend.db import utcnow
from portal_backend.errors import BackendError, ConfigurationError, NotFound

logger = logging.getLogger(__name__)

NOT_INITIALIZED_MESSAGE = "Supabase admin client not initialized"

# Postgres "invalid_text_representation": the id does not fit the id column type.
INVALID_ID_CODE = "22P02"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def convert_keys(data: dict, direction: str) -> dict:
    if direction == "camel_to_snake":
        convert = camel_to_snake
    elif direction == "snake_to_camel":
        convert = snake_to_camel
    else:
        raise ValueError(f"Unknown direction: {direction}")
    return {convert(key): value for key, value in data.items()}


class SupabaseConnection:
    """Lazily-created service-role Supabase client (bypasses row level security)."""

    def __init__(self, url: Optional[str], service_role_key: Optional[str]):
        self.url = url
        self.service_role_key = service_role_key
        self._client: Optional[Client] = None

    def client(self) -> Client:
        if self._client is None:
            if not self.url or not self.service_role_key:
                raise ConfigurationError(NOT_INITIALIZED_MESSAGE)
            try:
                self._client = create_client(self.url, self.service_role_key)
            except Exception as exc:
                logger.error("Supabase client creation failed: %s", exc)
                raise ConfigurationError(f"{NOT_INITIALIZED_MESSAGE}: {exc}") from exc
        return self._client


class SupabaseRecordStore:
    backend_name = "Supabase"
    native_id_field = "id"
    # A filtered DELETE reports success whether or not a row matched.
    reports_missing_on_delete = False

    def __init__(self, connection: SupabaseConnection, location: str):
        self.connection = connection
        self.location = location

    @property
    def table(self):
        return self.connection.client().table(self.location)

    def _missing(self, operation: str, record_id: str) -> NotFound:
        target = f"{self.location}/{record_id}"
        logger.warning("%s %s %s: record not found", self.backend_name, operation, target)
        return NotFound(f"{self.backend_name} {operation} {target}: record not found")

    def _failed(self, operation: str, target: str, exc: Exception) -> BackendError:
        logger.error("Supabase %s %s failed: %s", operation, target, exc)
        return BackendError(getattr(exc, "message", None) or str(exc))

    def find_by_id(self, record_id: str) -> Optional[dict]:
        table = self.table
        try:
            response = table.select("*").eq("id", record_id).limit(1).execute()
        except APIError as exc:
            if exc.code == INVALID_ID_CODE:
                return None
            raise self._failed("find", f"{self.location}/{record_id}", exc) from exc
        except httpx.HTTPError as exc:
            raise self._failed("find", f"{self.location}/{record_id}", exc) from exc
        if not response.data:
            return None
        return convert_keys(response.data[0], "snake_to_camel")

    def list(self, filters: Optional[dict] = None) -> list[dict]:
        query = self.table.select("*")
        for column, value in convert_keys(filters or {}, "camel_to_snake").items():
            query = query.eq(column, value)
        try:
            response = query.execute()
        except (APIError, httpx.HTTPError) as exc:
            raise self._failed("list", self.location, exc) from exc
        return [convert_keys(row, "snake_to_camel") for row in response.data or []]

    def create(self, fields: dict, record_id: Optional[str] = None) -> dict:
        table = self.table
        now = utcnow().isoformat()
        row = {**convert_keys(fields, "camel_to_snake"), "created_at": now, "updated_at": now}
        if record_id:
            row["id"] = record_id
        try:
            response = table.insert(row).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise self._failed("create", self.location, exc) from exc
        created = convert_keys(response.data[0] if response.data else row, "snake_to_camel")
        logger.info("Supabase created %s/%s", self.location, created.get("id"))
        return created

    def update_by_id(self, record_id: str, fields: dict) -> None:
        table = self.table
        row = {**convert_keys(fields, "camel_to_snake"), "updated_at": utcnow().isoformat()}
        try:
            response = table.update(row).eq("id", record_id).execute()
        except APIError as exc:
            if exc.code == INVALID_ID_CODE:
                raise self._missing("update", record_id) from exc
            raise self._failed("update", f"{self.location}/{record_id}", exc) from exc
        except httpx.HTTPError as exc:
            raise self._failed("update", f"{self.location}/{record_id}", exc) from exc
        if not response.data:
            raise self._missing("update", record_id)
        logger.info("Supabase updated %s/%s", self.location, record_id)

    def delete_by_id(self, record_id: str) -> None:
        table = self.table
        try:
            table.delete().eq("id", record_id).execute()
        except APIError as exc:
            if exc.code == INVALID_ID_CODE:
                # No row can carry this id, so there is nothing to delete.
                return
            raise self._failed("delete", f"{self.location}/{record_id}", exc) from exc
        except httpx.HTTPError as exc:
            raise self._failed("delete", f"{self.location}/{record_id}", exc) from exc
        logger.info("Supabase deleted %s/%s", self.location, record_id)
