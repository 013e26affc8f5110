"""
Pydantic schemas for entity payloads and request/response bodies.

Create models carry the required fields of each entity; update models make
every field optional and are applied with ``exclude_unset`` so only the
fields a caller sends are merged. Timestamps and ids are never accepted from
clients (unknown keys are ignored).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


RequiredStr = Annotated[str, Field(min_length=1)]
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# --- Entities -------------------------------------------------------------


class BannerCreate(BaseModel):
    title: RequiredStr
    imageUrl: RequiredStr
    layoutPosition: Optional[int] = None


class BannerUpdate(BaseModel):
    title: Optional[str] = None
    imageUrl: Optional[str] = None
    layoutPosition: Optional[int] = None


class CategoryCreate(BaseModel):
    name: RequiredStr
    backgroundColor: RequiredStr
    logoUrl: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    backgroundColor: Optional[str] = None
    logoUrl: Optional[str] = None


class EventCreate(BaseModel):
    title: RequiredStr
    description: RequiredStr
    startDate: UtcDatetime
    endDate: UtcDatetime
    bannerUrl: Optional[str] = None
    moreDetails: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.endDate < self.startDate:
            raise ValueError("Event end date must not be before its start date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    startDate: Optional[UtcDatetime] = None
    endDate: Optional[UtcDatetime] = None
    bannerUrl: Optional[str] = None
    moreDetails: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.startDate and self.endDate and self.endDate < self.startDate:
            raise ValueError("Event end date must not be before its start date")
        return self


class FaqCreate(BaseModel):
    question: RequiredStr
    answer: RequiredStr
    order: Optional[int] = 0
    isActive: bool = True


class FaqUpdate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    order: Optional[int] = None
    isActive: Optional[bool] = None


class LogoCreate(BaseModel):
    name: RequiredStr
    logoUrl: RequiredStr
    websiteUrl: Optional[str] = None
    layoutPosition: Optional[int] = None


class LogoUpdate(BaseModel):
    name: Optional[str] = None
    logoUrl: Optional[str] = None
    websiteUrl: Optional[str] = None
    layoutPosition: Optional[int] = None


class NewsCreate(BaseModel):
    title: RequiredStr
    description: RequiredStr
    imageUrl: RequiredStr
    content: Optional[str] = None
    articleUrl: Optional[str] = None
    date: Optional[str] = None
    layoutPosition: Optional[int] = None


class NewsUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    content: Optional[str] = None
    articleUrl: Optional[str] = None
    date: Optional[str] = None
    layoutPosition: Optional[int] = None


class PrivacyPolicyCreate(BaseModel):
    content: RequiredStr
    title: str = "Privacy Policy"
    contactEmail: str = "privacy@mimecode.com"
    contactWebsite: str = "www.mimecode.com"
    languageCode: str = "en"
    lastUpdated: Optional[UtcDatetime] = None


class PrivacyPolicyUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    contactEmail: Optional[str] = None
    contactWebsite: Optional[str] = None
    languageCode: Optional[str] = None
    lastUpdated: Optional[UtcDatetime] = None


class TermsCreate(BaseModel):
    content: RequiredStr
    title: RequiredStr = "Terms and Conditions"
    contactEmail: str = "legal@mimecode.com"
    contactWebsite: str = "www.mimecode.com"
    languageCode: str = "en"
    lastUpdated: Optional[UtcDatetime] = None


class TermsUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    contactEmail: Optional[str] = None
    contactWebsite: Optional[str] = None
    languageCode: Optional[str] = None
    lastUpdated: Optional[UtcDatetime] = None


class RegionCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: RequiredStr
    networkId: RequiredStr
    description: str = ""
    isActive: bool = True


class RegionUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[RequiredStr] = None
    networkId: Optional[RequiredStr] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None


class StoreFaqCreate(BaseModel):
    storeId: RequiredStr
    question: RequiredStr
    answer: RequiredStr
    order: Optional[int] = 0
    isActive: bool = True


class StoreFaqUpdate(BaseModel):
    storeId: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    order: Optional[int] = None
    isActive: Optional[bool] = None


DEFAULT_ADMIN_EMAIL = "admin@mimecode.com"


class EmailSettings(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email1: str = DEFAULT_ADMIN_EMAIL
    email2: str = ""
    email3: str = ""


def slugify(text: str) -> str:
    text = re.sub(r"[^\w\s-]", "", text.lower().strip())
    return re.sub(r"[\s_-]+", "-", text).strip("-")


class PageSettings(BaseModel):
    eventsNavLabel: str = "Events"
    eventsSlug: str = "events"
    blogsNavLabel: str = "Blogs"
    blogsSlug: str = "blogs"


# --- Requests -------------------------------------------------------------

UpdateT = TypeVar("UpdateT", bound=BaseModel)


class DeleteRequest(BaseModel):
    id: RequiredStr
    collection: Optional[str] = None


class UpdateRequest(BaseModel, Generic[UpdateT]):
    id: RequiredStr
    updates: UpdateT
    collection: Optional[str] = None


class StoreFaqUpdateRequest(BaseModel):
    id: RequiredStr
    updates: StoreFaqUpdate = Field(
        validation_alias=AliasChoices("updates", "storeFaq")
    )
    collection: Optional[str] = None


class BannerCreateRequest(BaseModel):
    banner: BannerCreate
    collection: Optional[str] = None


class CategoryCreateRequest(BaseModel):
    category: CategoryCreate
    collection: Optional[str] = None


class EventCreateRequest(BaseModel):
    event: EventCreate
    collection: Optional[str] = None


class FaqCreateRequest(BaseModel):
    faq: FaqCreate
    collection: Optional[str] = None


class LogoCreateRequest(BaseModel):
    logo: LogoCreate
    collection: Optional[str] = None


class NewsCreateRequest(BaseModel):
    news: NewsCreate
    collection: Optional[str] = None


class PrivacyPolicyCreateRequest(BaseModel):
    privacyPolicy: PrivacyPolicyCreate
    collection: Optional[str] = None


class RegionCreateRequest(BaseModel):
    region: RegionCreate
    collection: Optional[str] = None


class StoreFaqCreateRequest(BaseModel):
    storeFaq: StoreFaqCreate
    collection: Optional[str] = None


class TermsCreateRequest(BaseModel):
    terms: TermsCreate
    collection: Optional[str] = None


class EmailSettingsUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email1: Optional[str] = None
    email2: Optional[str] = None
    email3: Optional[str] = None
    collection: Optional[str] = None
    docId: Optional[str] = None

    @model_validator(mode="after")
    def require_an_address(self):
        if not (self.email1 or self.email2 or self.email3):
            raise ValueError("At least one email address is required")
        return self


class PageSettingsUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    eventsNavLabel: Optional[str] = None
    eventsSlug: Optional[str] = None
    blogsNavLabel: Optional[str] = None
    blogsSlug: Optional[str] = None
    collection: Optional[str] = None

    def to_settings(self) -> PageSettings:
        """Fill blank labels with the defaults and derive blank slugs from labels."""
        events_label = self.eventsNavLabel or "Events"
        blogs_label = self.blogsNavLabel or "Blogs"
        return PageSettings(
            eventsNavLabel=events_label,
            eventsSlug=self.eventsSlug or slugify(events_label),
            blogsNavLabel=blogs_label,
            blogsSlug=self.blogsSlug or slugify(blogs_label),
        )


# --- Responses ------------------------------------------------------------


class SuccessResponse(BaseModel):
    success: bool = True


class CreateResponse(BaseModel):
    success: bool = True
    id: str
