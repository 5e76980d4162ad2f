"""Request payload models for the JSON API.

Payloads arrive in camelCase; ``model_dump()`` yields the snake_case column
names the storage layer expects.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .slugs import generate_advisor_slug, generate_blog_slug

Designation = Literal["CPA", "Wealth Manager", "CPA & Wealth Manager"]
RevenueBracket = Literal["$0-1M", "$1M-5M", "$5M+"]
StrategicCpaStatus = Literal["yes", "no", "looking-to-replace"]
LeadSourceType = Literal["reinsurance_cta", "contact_form", "schedule_call"]
BlogCategory = Literal["strategy", "tax", "wealth"]
VehicleCondition = Literal["Deal Machine Certified", "Auction Certified"]

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URL = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)
_ZIP = re.compile(r"^\d{5}(-\d{4})?$")
_SLUG = re.compile(r"^[a-z0-9-]+$")
_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def _check_email(value: str) -> str:
    if not _EMAIL.match(value):
        raise ValueError("Valid email is required")
    return value


def _check_optional_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not _URL.match(value):
        raise ValueError("Invalid URL")
    return value


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


class AdvisorSearch(ApiModel):
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    designation: Optional[Designation] = None
    query: Optional[str] = None
    specialty: Optional[str] = None
    is_verified_strategist: Optional[bool] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class AdvisorCreate(ApiModel):
    name: str = Field(min_length=2)
    firm_name: Optional[str] = None
    designation: Designation
    city: str = Field(min_length=2)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    specialties: List[str] = Field(default_factory=list)
    is_verified_strategist: bool = False
    slug: Optional[str] = None

    @field_validator("state")
    @classmethod
    def _upper_state(cls, value: str) -> str:
        return value.upper()

    @field_validator("zip_code")
    @classmethod
    def _valid_zip(cls, value: str) -> str:
        if not _ZIP.match(value):
            raise ValueError("Invalid ZIP code format")
        return value

    @field_validator("website_url", "linkedin_url")
    @classmethod
    def _valid_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_optional_url(value)

    @field_validator("slug")
    @classmethod
    def _valid_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if len(value) < 5 or not _SLUG.match(value):
            raise ValueError("Slug must be lowercase alphanumeric with hyphens")
        return value

    def resolved_slug(self) -> str:
        """The given slug, or one derived from name, city and first specialty."""
        if self.slug:
            return self.slug
        primary = self.specialties[0] if self.specialties else None
        return generate_advisor_slug(self.name, self.city, primary)


class AdvisorUpdate(ApiModel):
    """Partial update: only fields present in the payload are applied."""

    name: Optional[str] = Field(default=None, min_length=2)
    firm_name: Optional[str] = None
    designation: Optional[Designation] = None
    city: Optional[str] = Field(default=None, min_length=2)
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    specialties: Optional[List[str]] = None
    is_verified_strategist: Optional[bool] = None
    slug: Optional[str] = None

    @field_validator("zip_code")
    @classmethod
    def _valid_zip(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _ZIP.match(value):
            raise ValueError("Invalid ZIP code format")
        return value

    @field_validator("website_url", "linkedin_url")
    @classmethod
    def _valid_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_optional_url(value)

    @field_validator("slug")
    @classmethod
    def _valid_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and (len(value) < 5 or not _SLUG.match(value)):
            raise ValueError("Slug must be lowercase alphanumeric with hyphens")
        return value


class LeadCreate(ApiModel):
    advisor_id: str
    user_name: str = Field(min_length=2)
    user_email: str
    message: Optional[str] = Field(default=None, max_length=1000)
    estimated_revenue: Optional[RevenueBracket] = None
    interested_in_captives: bool = False
    has_strategic_cpa: Optional[StrategicCpaStatus] = None
    source_page: str = Field(min_length=1)
    source_type: LeadSourceType = "reinsurance_cta"

    @field_validator("advisor_id")
    @classmethod
    def _valid_advisor_id(cls, value: str) -> str:
        if not _UUID.match(value):
            raise ValueError("Invalid advisor ID")
        return value.lower()

    @field_validator("user_email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)


class BlogPostCreate(ApiModel):
    title: str = Field(min_length=5)
    slug: Optional[str] = None
    excerpt: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category: BlogCategory = "strategy"
    read_time: str = "5 min read"
    is_published: bool = True

    def resolved_slug(self) -> str:
        return self.slug or generate_blog_slug(self.title)


class AdminLogin(ApiModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value).lower()


# ---------------------------------------------------------------------------
# Marketplace
# ---------------------------------------------------------------------------


class DealerCreate(ApiModel):
    dealer_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    contact_name: str = Field(min_length=1)
    email: str
    phone: str = Field(min_length=7)
    billing_contact_name: str = Field(min_length=1)
    billing_contact_email: str
    billing_contact_phone: str = Field(min_length=7)
    title_contact_name: str = Field(min_length=1)
    title_contact_email: str
    title_contact_phone: str = Field(min_length=7)

    @field_validator("email", "billing_contact_email", "title_contact_email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value)


class DealerUpdate(ApiModel):
    dealer_name: Optional[str] = None
    address: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class BuyCodeCreate(ApiModel):
    code: str = Field(min_length=3, max_length=64)
    dealer_id: int
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[datetime] = None


class VehicleInitial(ApiModel):
    vin: str = Field(min_length=17, max_length=17)
    videos: List[str] = Field(default_factory=list)

    @field_validator("vin")
    @classmethod
    def _upper_vin(cls, value: str) -> str:
        return value.upper()


class VehicleDetails(ApiModel):
    vin: str = Field(min_length=17, max_length=17)
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    trim: Optional[str] = None
    year: int
    mileage: int = Field(ge=0)
    price: str = Field(min_length=1)
    description: Optional[str] = None
    condition: VehicleCondition
    videos: List[str] = Field(min_length=1)

    @field_validator("vin")
    @classmethod
    def _upper_vin(cls, value: str) -> str:
        return value.upper()

    @field_validator("price")
    @classmethod
    def _numeric_price(cls, value: str) -> str:
        try:
            Decimal(value.replace(",", "").replace("$", ""))
        except InvalidOperation as exc:
            raise ValueError("Price must be a number") from exc
        return value

    @field_validator("year")
    @classmethod
    def _valid_year(cls, value: int) -> int:
        if value < 1900 or value > datetime.now().year + 1:
            raise ValueError("Invalid year")
        return value


class PurchaseRequest(ApiModel):
    code: str = Field(min_length=1)


class OfferCreate(ApiModel):
    code: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)


class CounterOffer(ApiModel):
    amount: Decimal = Field(gt=0)
    message: Optional[str] = Field(default=None, max_length=1000)


class DealerOfferResponse(ApiModel):
    code: str = Field(min_length=1)
    accept: bool


class OfferDecision(ApiModel):
    accept: bool
