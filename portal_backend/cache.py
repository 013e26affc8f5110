"""
Single-slot in-process caches.

Both caches hold exactly one payload; writing under a different key replaces
the previous entry. They are only used for site-wide resources (email
settings, the banner listing) where one slot is enough.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class TimedCache:
    """Holds one payload that expires ``ttl_seconds`` after it was written."""

    ttl_seconds: float = 300.0
    clock: Callable[[], float] = time.time
    _payload: Any = field(default=None, init=False, repr=False)
    _written_at: Optional[float] = field(default=None, init=False)

    def get(self) -> Any:
        """Return the cached payload, or None when empty or expired."""
        if self._written_at is None:
            return None
        if self.clock() - self._written_at < self.ttl_seconds:
            return self._payload
        return None

    def set(self, payload: Any) -> None:
        self._payload = payload
        self._written_at = self.clock()

    def clear(self) -> None:
        self._payload = None
        self._written_at = None


@dataclass
class KeyedCache:
    """
    Holds one payload together with the key that produced it.

    There is no expiry; mutation handlers call ``clear`` whenever the cached
    listing may have changed.
    """

    clock: Callable[[], float] = time.time
    _payload: Any = field(default=None, init=False, repr=False)
    _key: str = field(default="", init=False)
    _timestamp: float = field(default=0.0, init=False)

    @property
    def key(self) -> str:
        return self._key

    @property
    def timestamp(self) -> float:
        return self._timestamp

    def get(self, key: str) -> Any:
        if self._payload is None or self._key != key:
            return None
        return self._payload

    def set(self, payload: Any, key: str) -> None:
        self._payload = payload
        self._key = key
        self._timestamp = self.clock()

    def clear(self) -> None:
        self._payload = None
        self._key = ""
        self._timestamp = 0.0
