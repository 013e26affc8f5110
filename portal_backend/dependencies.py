"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import Depends

from portal_backend.cache import KeyedCache, TimedCache
from portal_backend.config import Settings, get_settings
from portal_backend.db import InMemoryRecordStore, RecordStore
from portal_backend.firestore_store import FirestoreConnection, FirestoreRecordStore
from portal_backend.mongo_store import MongoConnection, MongoRecordStore
from portal_backend.supabase_store import SupabaseConnection, SupabaseRecordStore

# Each entity lives on exactly one backend.
ENTITY_BACKENDS = {
    "banners": "firestore",
    "categories": "supabase",
    "email_settings": "firestore",
    "events": "mongo",
    "faqs": "mongo",
    "logos": "firestore",
    "news": "supabase",
    "page_settings": "supabase",
    "privacy_policy": "mongo",
    "regions": "firestore",
    "store_faqs": "firestore",
    "terms": "mongo",
}

STORE_CLASSES = {
    "firestore": FirestoreRecordStore,
    "mongo": MongoRecordStore,
    "supabase": SupabaseRecordStore,
}


@dataclass
class ServiceContext:
    """
    Process-wide state shared by the route handlers: backend connections,
    the record stores built on top of them, and the caches.
    """

    settings: Settings
    mongo: MongoConnection
    firestore: FirestoreConnection
    supabase: SupabaseConnection
    banner_cache: KeyedCache = field(default_factory=KeyedCache)
    settings_cache: TimedCache = field(default_factory=TimedCache)
    page_settings_cache: TimedCache = field(default_factory=TimedCache)
    stores: Dict[tuple[str, str], RecordStore] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContext":
        return cls(
            settings=settings,
            mongo=MongoConnection(settings.mongodb_uri, settings.mongodb_database),
            firestore=FirestoreConnection(settings),
            supabase=SupabaseConnection(
                settings.supabase_url, settings.supabase_service_role_key
            ),
            settings_cache=TimedCache(ttl_seconds=settings.settings_cache_ttl_seconds),
            page_settings_cache=TimedCache(
                ttl_seconds=settings.settings_cache_ttl_seconds
            ),
        )

    def store_for(self, entity: str, override: Optional[str] = None) -> RecordStore:
        """Return the (cached) record store for an entity's resolved location."""
        location = self.settings.resolve_location(entity, override)
        key = (entity, location)
        store = self.stores.get(key)
        if store is None:
            store = self._build_store(entity, location)
            self.stores[key] = store
        return store

    def _build_store(self, entity: str, location: str) -> RecordStore:
        backend = ENTITY_BACKENDS[entity]
        store_class = STORE_CLASSES[backend]
        if self.settings.use_in_memory_backends:
            return InMemoryRecordStore(
                location,
                reports_missing_on_delete=store_class.reports_missing_on_delete,
            )
        if backend == "mongo":
            return MongoRecordStore(self.mongo, location)
        if backend == "firestore":
            return FirestoreRecordStore(self.firestore, location)
        return SupabaseRecordStore(self.supabase, location)


_context: ServiceContext | None = None


def get_context() -> ServiceContext:
    """
    Return the singleton service context so connections and caches persist
    across requests.
    """
    global _context
    if _context:
        return _context
    _context = ServiceContext.from_settings(get_settings())
    return _context


def reset_context() -> None:
    """Drop the singleton (useful in tests)."""
    global _context
    _context = None


def get_banner_cache(context: ServiceContext = Depends(get_context)) -> KeyedCache:
    return context.banner_cache


def get_settings_cache(context: ServiceContext = Depends(get_context)) -> TimedCache:
    return context.settings_cache


def get_page_settings_cache(
    context: ServiceContext = Depends(get_context),
) -> TimedCache:
    return context.page_settings_cache
