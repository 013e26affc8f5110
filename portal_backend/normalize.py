"""
Conversion of stored records into the canonical API shape.

Every backend hands back a slightly different record: MongoDB documents carry
an ``_id`` ObjectId and naive UTC datetimes, Firestore returns
``DatetimeWithNanoseconds`` values, and PostgREST rows carry ISO-8601 strings.
Callers always receive ``id`` as a string and timestamps as epoch milliseconds.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

TIMESTAMP_FIELDS = ("createdAt", "updatedAt", "expiryDate", "lastUpdated")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def _is_timestamp_like(value: Any) -> bool:
    if isinstance(value, dict):
        return set(value) == {"seconds", "nanoseconds"}
    return hasattr(value, "seconds") and hasattr(value, "nanoseconds")


def to_epoch_millis(value: Any) -> Optional[int]:
    """Convert a datetime, timestamp-like object or ISO string to epoch ms."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # pymongo hands back naive datetimes that are UTC.
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH) // _ONE_MS
    if _is_timestamp_like(value):
        if isinstance(value, dict):
            seconds, nanos = value["seconds"], value["nanoseconds"]
        else:
            seconds, nanos = value.seconds, value.nanoseconds
        return int(seconds) * 1000 + int(nanos) // 1_000_000
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_epoch_millis(parsed)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return None


def to_api_format(record: dict, native_id_field: str = "_id") -> dict:
    """
    Return the canonical representation of a stored record.

    The native identifier is renamed to ``id`` (as a string), datetime values
    become epoch milliseconds and empty timestamp fields are dropped rather
    than emitted as null. All other fields pass through unchanged.
    """
    result: dict = {}
    for key, value in record.items():
        if key == native_id_field:
            continue
        if key in TIMESTAMP_FIELDS:
            if value is None or value == "":
                continue
            millis = to_epoch_millis(value)
            result[key] = millis if millis is not None else value
        elif isinstance(value, datetime) or _is_timestamp_like(value):
            result[key] = to_epoch_millis(value)
        else:
            result[key] = value

    native_id = record.get(native_id_field)
    if native_id is None:
        native_id = record.get("id")
    if native_id is not None:
        result["id"] = str(native_id)
    return result


def to_api_format_list(
    records: Iterable[dict], native_id_field: str = "_id"
) -> list[dict]:
    return [to_api_format(record, native_id_field) for record in records]


def _created_desc_key(record: dict) -> int:
    created = record.get("createdAt")
    return -(created if isinstance(created, int) else 0)


def sort_by_position(records: list[dict], field: str = "layoutPosition") -> list[dict]:
    """Sort by an ordinal field ascending, nulls last, newest first on ties."""

    def key(record: dict):
        position = record.get(field)
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            return (1, 0, _created_desc_key(record))
        return (0, position, _created_desc_key(record))

    return sorted(records, key=key)


def sort_by_field(
    records: list[dict], field: str, *, descending: bool = False
) -> list[dict]:
    """Sort by a field, records missing it go last regardless of direction."""
    present = [r for r in records if r.get(field) is not None]
    missing = [r for r in records if r.get(field) is None]
    return sorted(present, key=lambda r: r[field], reverse=descending) + missing


def sort_by_order(records: list[dict], *, newest_first: bool) -> list[dict]:
    """Sort FAQ-style records by ``order`` ascending, then by creation time."""

    def key(record: dict):
        created = -_created_desc_key(record)
        return (record.get("order") or 0, -created if newest_first else created)

    return sorted(records, key=key)
