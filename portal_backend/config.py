"""
Configuration and settings for the portal backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Document collections are suffixed with the tenant name ("faqs-mimecode").
DOCUMENT_COLLECTIONS = {
    "banners": "banners",
    "email_settings": "emailSettings",
    "events": "events",
    "faqs": "faqs",
    "logos": "logos",
    "privacy_policy": "privacyPolicies",
    "regions": "regions",
    "store_faqs": "storeFaqs",
    "terms": "termsAndConditions",
}

# Relational tables are shared across tenants.
RELATIONAL_TABLES = {
    "categories": "categories",
    "news": "news",
    "page_settings": "page_settings",
}


def _location_field(env_name: str):
    return Field(
        default=None,
        validation_alias=AliasChoices(env_name, f"NEXT_PUBLIC_{env_name}"),
    )


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    tenant: str = Field(default="mimecode")

    # MongoDB
    mongodb_uri: Optional[str] = Field(default=None)
    mongodb_database: str = Field(default="portal")

    # Firebase Admin SDK
    firebase_service_account_path: Optional[str] = Field(default=None)
    firebase_admin_sa: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FIREBASE_STORAGE_BUCKET", "NEXT_PUBLIC_FIREBASE_STORAGE_BUCKET"
        ),
    )
    serverless: bool = Field(default=False)

    # Supabase (Postgres over PostgREST)
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_service_role_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Per-entity storage locations; unset means the computed default.
    banners_collection: Optional[str] = _location_field("BANNERS_COLLECTION")
    email_settings_collection: Optional[str] = _location_field(
        "EMAIL_SETTINGS_COLLECTION"
    )
    events_collection: Optional[str] = _location_field("EVENTS_COLLECTION")
    faqs_collection: Optional[str] = _location_field("FAQS_COLLECTION")
    logos_collection: Optional[str] = _location_field("LOGOS_COLLECTION")
    privacy_policy_collection: Optional[str] = _location_field(
        "PRIVACY_POLICY_COLLECTION"
    )
    regions_collection: Optional[str] = _location_field("REGIONS_COLLECTION")
    store_faqs_collection: Optional[str] = _location_field("STORE_FAQS_COLLECTION")
    terms_collection: Optional[str] = _location_field("TERMS_COLLECTION")
    categories_table: Optional[str] = _location_field("CATEGORIES_TABLE")
    news_table: Optional[str] = _location_field("NEWS_TABLE")
    page_settings_table: Optional[str] = _location_field("PAGE_SETTINGS_TABLE")

    email_settings_doc_id: str = Field(default="main")

    # Caches
    settings_cache_ttl_seconds: float = Field(default=300.0)

    # Geo-IP request filtering
    geo_block_enabled: bool = Field(default=False)
    geo_trusted_ips: list[str] = Field(default_factory=list)
    geo_blocked_countries: list[str] = Field(default_factory=lambda: ["PK"])
    geo_blocked_path: str = Field(default="/blocked")
    geo_lookup_url: str = Field(default="https://ipapi.co/{ip}/json/")
    geo_lookup_timeout: float = Field(default=3.0)

    def resolve_location(self, entity: str, override: Optional[str] = None) -> str:
        """
        Return the collection/table name for an entity.

        A per-request override wins, then an explicitly configured name, then
        the built-in default.
        """
        if override:
            return override
        if entity in RELATIONAL_TABLES:
            return getattr(self, f"{entity}_table") or RELATIONAL_TABLES[entity]
        if entity in DOCUMENT_COLLECTIONS:
            configured = getattr(self, f"{entity}_collection")
            return configured or f"{DOCUMENT_COLLECTIONS[entity]}-{self.tenant}"
        raise KeyError(f"Unknown entity: {entity}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
