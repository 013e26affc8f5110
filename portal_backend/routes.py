"""
HTTP routes for the portal content API.

Every handler touches exactly one record store. Failures are raised as
``PortalError`` subclasses and turned into ``{"success": false, "error": ...}``
envelopes by the exception handlers registered in ``portal_backend.app``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal_backend.cache import KeyedCache, TimedCache
from portal_backend.db import RecordStore, utcnow
from portal_backend.dependencies import (
    ServiceContext,
    get_banner_cache,
    get_context,
    get_page_settings_cache,
    get_settings_cache,
)
from portal_backend.errors import NotFound, ValidationError
from portal_backend.normalize import (
    sort_by_field,
    sort_by_order,
    sort_by_position,
    to_api_format,
    to_api_format_list,
    to_epoch_millis,
)
from portal_backend.schemas import (
    BannerCreateRequest,
    BannerUpdate,
    CategoryCreateRequest,
    CategoryUpdate,
    CreateResponse,
    DeleteRequest,
    EmailSettings,
    EmailSettingsUpdateRequest,
    EventCreateRequest,
    EventUpdate,
    FaqCreateRequest,
    FaqUpdate,
    LogoCreateRequest,
    LogoUpdate,
    NewsCreateRequest,
    NewsUpdate,
    PageSettings,
    PageSettingsUpdateRequest,
    PrivacyPolicyCreateRequest,
    PrivacyPolicyUpdate,
    RegionCreateRequest,
    RegionUpdate,
    StoreFaqCreateRequest,
    StoreFaqUpdateRequest,
    SuccessResponse,
    TermsCreateRequest,
    TermsUpdate,
    UpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _find(store: RecordStore, record_id: str, label: str) -> dict:
    record = store.find_by_id(record_id)
    if record is None:
        raise NotFound(f"{label} not found")
    return to_api_format(record, store.native_id_field)


def _list(store: RecordStore, filters: Optional[dict] = None) -> list[dict]:
    return to_api_format_list(store.list(filters), store.native_id_field)


def _create(store: RecordStore, fields: dict) -> CreateResponse:
    record = store.create(fields)
    return CreateResponse(id=to_api_format(record, store.native_id_field)["id"])


def _update(store: RecordStore, record_id: str, fields: dict, label: str) -> None:
    try:
        store.update_by_id(record_id, fields)
    except NotFound:
        raise NotFound(f"{label} not found") from None


def _delete(store: RecordStore, record_id: str, label: str) -> None:
    try:
        store.delete_by_id(record_id)
    except NotFound:
        raise NotFound(f"{label} not found") from None


# --- Banners (Firestore, listing cached) ----------------------------------


@router.get("/banners/get")
def get_banners(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
    cache: KeyedCache = Depends(get_banner_cache),
):
    store = context.store_for("banners", collection)
    if record_id:
        return {"success": True, "banner": _find(store, record_id, "Banner")}

    banners = cache.get(store.location)
    if banners is None:
        banners = sort_by_position(_list(store))
        cache.set(banners, store.location)
    return {"success": True, "banners": banners}


@router.post("/banners/create", response_model=CreateResponse)
def create_banner(
    payload: BannerCreateRequest,
    context: ServiceContext = Depends(get_context),
    cache: KeyedCache = Depends(get_banner_cache),
):
    store = context.store_for("banners", payload.collection)
    response = _create(store, payload.banner.model_dump())
    cache.clear()
    return response


@router.post("/banners/update", response_model=SuccessResponse)
def update_banner(
    payload: UpdateRequest[BannerUpdate],
    context: ServiceContext = Depends(get_context),
    cache: KeyedCache = Depends(get_banner_cache),
):
    store = context.store_for("banners", payload.collection)
    _update(store, payload.id, payload.updates.model_dump(exclude_unset=True), "Banner")
    cache.clear()
    return SuccessResponse()


@router.post("/banners/delete", response_model=SuccessResponse)
def delete_banner(
    payload: DeleteRequest,
    context: ServiceContext = Depends(get_context),
    cache: KeyedCache = Depends(get_banner_cache),
):
    store = context.store_for("banners", payload.collection)
    _delete(store, payload.id, "Banner")
    cache.clear()
    return SuccessResponse()


# --- Categories (Supabase) ------------------------------------------------


@router.get("/categories/get")
def get_categories(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("categories", collection)
    if record_id:
        return {"success": True, "category": _find(store, record_id, "Category")}
    categories = sort_by_field(_list(store), "createdAt", descending=True)
    return {"success": True, "categories": categories}


@router.post("/categories/create", response_model=CreateResponse)
def create_category(
    payload: CategoryCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("categories", payload.collection)
    return _create(store, payload.category.model_dump())


@router.post("/categories/update", response_model=SuccessResponse)
def update_category(
    payload: UpdateRequest[CategoryUpdate],
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("categories", payload.collection)
    _update(store, payload.id, payload.updates.model_dump(exclude_unset=True), "Category")
    return SuccessResponse()


@router.post("/categories/delete", response_model=SuccessResponse)
def delete_category(
    payload: DeleteRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("categories", payload.collection)
    _delete(store, payload.id, "Category")
    return SuccessResponse()


# --- Events (MongoDB) -----------------------------------------------------


@router.get("/events/get")
def get_events(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("events", collection)
    if record_id:
        return {"success": True, "event": _find(store, record_id, "Event")}
    events = sort_by_field(_list(store), "startDate", descending=True)
    return {"success": True, "events": events}


@router.post("/events/create", response_model=CreateResponse)
def create_event(
    payload: EventCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("events", payload.collection)
    return _create(store, payload.event.model_dump(exclude_none=True))


@router.post("/events/update", response_model=SuccessResponse)
def update_event(
    payload: UpdateRequest[EventUpdate],
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("events", payload.collection)
    fields = payload.updates.model_dump(exclude_unset=True)
    if ("startDate" in fields) != ("endDate" in fields):
        # Only one end moves; check it against the stored other end.
        current = _find(store, payload.id, "Event")
        start = to_epoch_millis(fields.get("startDate", current.get("startDate")))
        end = to_epoch_millis(fields.get("endDate", current.get("endDate")))
        if start is not None and end is not None and end < start:
            raise ValidationError("Event end date must not be before its start date")
    _update(store, payload.id, fields, "Event")
    return SuccessResponse()


@router.post("/events/delete", response_model=SuccessResponse)
def delete_event(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("events", payload.collection)
    _delete(store, payload.id, "Event")
    return SuccessResponse()


# --- FAQs (MongoDB) -------------------------------------------------------


@router.get("/faqs/get")
def get_faqs(
    record_id: Optional[str] = Query(None, alias="id"),
    active_only: bool = Query(False, alias="activeOnly"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("faqs", collection)
    if record_id:
        return {"success": True, "faq": _find(store, record_id, "FAQ")}
    faqs = _list(store, {"isActive": True} if active_only else None)
    return {"success": True, "faqs": sort_by_order(faqs, newest_first=True)}


@router.post("/faqs/create", response_model=CreateResponse)
def create_faq(payload: FaqCreateRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("faqs", payload.collection)
    fields = payload.faq.model_dump()
    fields["order"] = fields["order"] or 0
    return _create(store, fields)


@router.post("/faqs/update", response_model=SuccessResponse)
def update_faq(
    payload: UpdateRequest[FaqUpdate], context: ServiceContext = Depends(get_context)
):
    store = context.store_for("faqs", payload.collection)
    _update(store, payload.id, payload.updates.model_dump(exclude_unset=True), "FAQ")
    return SuccessResponse()


@router.post("/faqs/delete", response_model=SuccessResponse)
def delete_faq(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("faqs", payload.collection)
    _delete(store, payload.id, "FAQ")
    return SuccessResponse()


# --- Logos (Firestore) ----------------------------------------------------


@router.get("/logos/get")
def get_logos(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("logos", collection)
    if record_id:
        return {"success": True, "logo": _find(store, record_id, "Logo")}
    return {"success": True, "logos": sort_by_position(_list(store))}


@router.post("/logos/create", response_model=CreateResponse)
def create_logo(payload: LogoCreateRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("logos", payload.collection)
    return _create(store, payload.logo.model_dump())


@router.post("/logos/update", response_model=SuccessResponse)
def update_logo(
    payload: UpdateRequest[LogoUpdate], context: ServiceContext = Depends(get_context)
):
    store = context.store_for("logos", payload.collection)
    _update(store, payload.id, payload.updates.model_dump(exclude_unset=True), "Logo")
    return SuccessResponse()


@router.post("/logos/delete", response_model=SuccessResponse)
def delete_logo(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("logos", payload.collection)
    _delete(store, payload.id, "Logo")
    return SuccessResponse()


# --- News (Supabase) ------------------------------------------------------


@router.get("/news/get")
def get_news(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("news", collection)
    if record_id:
        return {"success": True, "news": _find(store, record_id, "News article")}
    return {"success": True, "news": sort_by_position(_list(store))}


@router.post("/news/create", response_model=CreateResponse)
def create_news(payload: NewsCreateRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("news", payload.collection)
    return _create(store, payload.news.model_dump())


@router.post("/news/update", response_model=SuccessResponse)
def update_news(
    payload: UpdateRequest[NewsUpdate], context: ServiceContext = Depends(get_context)
):
    store = context.store_for("news", payload.collection)
    _update(
        store, payload.id, payload.updates.model_dump(exclude_unset=True), "News article"
    )
    return SuccessResponse()


@router.post("/news/delete", response_model=SuccessResponse)
def delete_news(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("news", payload.collection)
    _delete(store, payload.id, "News article")
    return SuccessResponse()


# --- Privacy policy (MongoDB, one logical document) -----------------------


@router.get("/pages/privacy-policy/get")
def get_privacy_policy(
    record_id: Optional[str] = Query(None, alias="id"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("privacy_policy", collection)
    if record_id:
        policy = _find(store, record_id, "Privacy policy")
    else:
        policies = sort_by_field(_list(store), "updatedAt", descending=True)
        policy = policies[0] if policies else None
    return {"success": True, "privacyPolicy": policy}


@router.post("/pages/privacy-policy/create", response_model=CreateResponse)
def create_privacy_policy(
    payload: PrivacyPolicyCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("privacy_policy", payload.collection)
    fields = payload.privacyPolicy.model_dump()
    fields["lastUpdated"] = fields["lastUpdated"] or utcnow()
    return _create(store, fields)


@router.post("/pages/privacy-policy/update", response_model=SuccessResponse)
def update_privacy_policy(
    payload: UpdateRequest[PrivacyPolicyUpdate],
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("privacy_policy", payload.collection)
    fields = payload.updates.model_dump(exclude_unset=True)
    if not fields.get("lastUpdated"):
        fields["lastUpdated"] = utcnow()
    _update(store, payload.id, fields, "Privacy policy")
    return SuccessResponse()


@router.post("/pages/privacy-policy/delete", response_model=SuccessResponse)
def delete_privacy_policy(
    payload: DeleteRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("privacy_policy", payload.collection)
    _delete(store, payload.id, "Privacy policy")
    return SuccessResponse()


# --- Terms and conditions (MongoDB, one document per language) ------------


@router.get("/pages/terms/get")
def get_terms(
    record_id: Optional[str] = Query(None, alias="id"),
    lang: str = Query("en"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("terms", collection)
    if record_id:
        return {"success": True, "terms": _find(store, record_id, "Terms and conditions")}
    # Fall back to the latest document in any language.
    candidates = _list(store, {"languageCode": lang}) or _list(store)
    candidates = sort_by_field(candidates, "updatedAt", descending=True)
    return {"success": True, "terms": candidates[0] if candidates else None}


@router.post("/pages/terms/create", response_model=CreateResponse)
def create_terms(
    payload: TermsCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("terms", payload.collection)
    fields = payload.terms.model_dump()
    fields["lastUpdated"] = fields["lastUpdated"] or utcnow()
    return _create(store, fields)


@router.post("/pages/terms/update", response_model=SuccessResponse)
def update_terms(
    payload: UpdateRequest[TermsUpdate], context: ServiceContext = Depends(get_context)
):
    store = context.store_for("terms", payload.collection)
    fields = payload.updates.model_dump(exclude_unset=True)
    if not fields.get("lastUpdated"):
        fields["lastUpdated"] = utcnow()
    _update(store, payload.id, fields, "Terms and conditions")
    return SuccessResponse()


@router.post("/pages/terms/delete", response_model=SuccessResponse)
def delete_terms(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("terms", payload.collection)
    _delete(store, payload.id, "Terms and conditions")
    return SuccessResponse()


# --- Regions (Firestore, unique networkId) --------------------------------


def _ensure_network_id_free(
    store: RecordStore, network_id: str, record_id: Optional[str] = None
) -> None:
    for region in _list(store, {"networkId": network_id}):
        if region["id"] != record_id:
            raise ValidationError("Network ID already exists")


@router.get("/regions/get")
def get_regions(
    record_id: Optional[str] = Query(None, alias="id"),
    network_id: Optional[str] = Query(None, alias="networkId"),
    active_only: bool = Query(False, alias="activeOnly"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("regions", collection)
    if record_id:
        return {"success": True, "region": _find(store, record_id, "Region")}
    if network_id:
        matches = _list(store, {"networkId": network_id})
        if not matches:
            raise NotFound("Region not found")
        return {"success": True, "region": matches[0]}

    regions = _list(store)
    if active_only:
        regions = [region for region in regions if region.get("isActive") is not False]
    regions.sort(key=lambda region: (region.get("name") or "").lower())
    return {"success": True, "regions": regions}


@router.post("/regions/create", response_model=CreateResponse)
def create_region(
    payload: RegionCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("regions", payload.collection)
    _ensure_network_id_free(store, payload.region.networkId)
    return _create(store, payload.region.model_dump())


@router.post("/regions/update", response_model=SuccessResponse)
def update_region(
    payload: UpdateRequest[RegionUpdate], context: ServiceContext = Depends(get_context)
):
    store = context.store_for("regions", payload.collection)
    fields = payload.updates.model_dump(exclude_unset=True)
    if fields.get("networkId"):
        _ensure_network_id_free(store, fields["networkId"], payload.id)
    _update(store, payload.id, fields, "Region")
    return SuccessResponse()


@router.post("/regions/delete", response_model=SuccessResponse)
def delete_region(payload: DeleteRequest, context: ServiceContext = Depends(get_context)):
    store = context.store_for("regions", payload.collection)
    _delete(store, payload.id, "Region")
    return SuccessResponse()


# --- Store FAQs (Firestore, grouped by storeId) ---------------------------


@router.get("/store-faqs/get")
def get_store_faqs(
    record_id: Optional[str] = Query(None, alias="id"),
    store_id: Optional[str] = Query(None, alias="storeId"),
    active_only: bool = Query(False, alias="activeOnly"),
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
):
    store = context.store_for("store_faqs", collection)
    if record_id:
        return {"success": True, "storeFaq": _find(store, record_id, "Store FAQ")}
    filters = {}
    if store_id:
        filters["storeId"] = store_id
    if active_only:
        filters["isActive"] = True
    store_faqs = sort_by_order(_list(store, filters), newest_first=False)
    return {"success": True, "storeFaqs": store_faqs}


@router.post("/store-faqs/create", response_model=CreateResponse)
def create_store_faq(
    payload: StoreFaqCreateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("store_faqs", payload.collection)
    fields = payload.storeFaq.model_dump()
    fields["order"] = fields["order"] or 0
    return _create(store, fields)


@router.post("/store-faqs/update", response_model=SuccessResponse)
def update_store_faq(
    payload: StoreFaqUpdateRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("store_faqs", payload.collection)
    _update(store, payload.id, payload.updates.model_dump(exclude_unset=True), "Store FAQ")
    return SuccessResponse()


@router.post("/store-faqs/delete", response_model=SuccessResponse)
def delete_store_faq(
    payload: DeleteRequest, context: ServiceContext = Depends(get_context)
):
    store = context.store_for("store_faqs", payload.collection)
    _delete(store, payload.id, "Store FAQ")
    return SuccessResponse()


# --- Email settings (Firestore singleton, time-boxed cache) ---------------


@router.get("/email-settings/get")
def get_email_settings(
    collection: Optional[str] = Query(None),
    doc_id: Optional[str] = Query(None, alias="docId"),
    context: ServiceContext = Depends(get_context),
    cache: TimedCache = Depends(get_settings_cache),
):
    # Only the default document is cached; overrides always read through.
    use_cache = collection is None and doc_id is None
    if use_cache:
        cached = cache.get()
        if cached is not None:
            return {"success": True, "settings": cached}

    store = context.store_for("email_settings", collection)
    doc_id = doc_id or context.settings.email_settings_doc_id
    record = store.find_by_id(doc_id)
    if record is not None:
        settings = to_api_format(record, store.native_id_field)
    else:
        settings = {"id": doc_id, **EmailSettings().model_dump()}

    if use_cache:
        cache.set(settings)
    return {"success": True, "settings": settings}


@router.post("/email-settings/update", response_model=SuccessResponse)
def update_email_settings(
    payload: EmailSettingsUpdateRequest,
    context: ServiceContext = Depends(get_context),
    cache: TimedCache = Depends(get_settings_cache),
):
    store = context.store_for("email_settings", payload.collection)
    doc_id = payload.docId or context.settings.email_settings_doc_id
    fields = {
        "email1": payload.email1 or "",
        "email2": payload.email2 or "",
        "email3": payload.email3 or "",
    }
    try:
        store.update_by_id(doc_id, fields)
    except NotFound:
        store.create(fields, record_id=doc_id)
        logger.info("Created email settings document %s/%s", store.location, doc_id)
    cache.clear()
    return SuccessResponse()


# --- Page settings (Supabase singleton row, time-boxed cache) -------------


@router.get("/page-settings/get")
def get_page_settings(
    collection: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
    cache: TimedCache = Depends(get_page_settings_cache),
):
    use_cache = collection is None
    if use_cache:
        cached = cache.get()
        if cached is not None:
            return {"success": True, "settings": cached}

    store = context.store_for("page_settings", collection)
    rows = _list(store)
    settings = {"id": "default", **PageSettings().model_dump()}
    if rows:
        row = rows[0]
        settings.update({key: value for key, value in row.items() if value})

    if use_cache:
        cache.set(settings)
    return {"success": True, "settings": settings}


@router.post("/page-settings/update", response_model=SuccessResponse)
def update_page_settings(
    payload: PageSettingsUpdateRequest,
    context: ServiceContext = Depends(get_context),
    cache: TimedCache = Depends(get_page_settings_cache),
):
    store = context.store_for("page_settings", payload.collection)
    fields = payload.to_settings().model_dump()
    rows = store.list()
    if rows:
        store.update_by_id(str(rows[0][store.native_id_field]), fields)
    else:
        store.create(fields)
        logger.info("Created page settings row in %s", store.location)
    cache.clear()
    return SuccessResponse()
