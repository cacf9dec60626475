"""
Pydantic schemas for the bookd FastAPI backend.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Generic, Literal, Optional, TypeVar

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

T = TypeVar("T")

GigType = Literal[
    "one_time", "recurring", "residency", "tour", "session", "teaching", "other"
]
ExperienceLevel = Literal["beginner", "intermediate", "advanced", "professional", "any"]
CompensationType = Literal["paid", "volunteer", "profit_share", "exposure", "other"]
PayRateType = Literal["hourly", "daily", "per_gig", "flat_fee", "percentage"]
ApplicationMethod = Literal["email", "phone", "website", "in_app", "audition"]
GigStatus = Literal["draft", "open", "closed", "filled", "cancelled"]
ContactMethod = Literal["email", "phone", "app"]


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)\.]+$")
_URL = TypeAdapter(AnyUrl)


def _check_order(low, high, message: str) -> None:
    if low is not None and high is not None and high < low:
        raise ValueError(message)


def _not_null(value):
    # Omitting a field leaves the column alone; an explicit null is rejected.
    if value is None:
        raise ValueError("may not be null")
    return value


# Users and profiles


class UserOut(_Out):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    account_type: str = "artist"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IndividualProfileOut(_Out):
    id: str
    user_id: str
    stage_name: Optional[str] = None
    bio: Optional[str] = None
    headliner: Optional[str] = None
    location: Optional[str] = None
    website_url: Optional[str] = None
    primary_instrument: Optional[str] = None
    instruments: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    years_experience: Optional[int] = None
    looking_for_gigs: bool = True
    available_for_hire: bool = True
    travel_distance_km: Optional[int] = None
    base_rate_per_hour: Optional[float] = None
    preferred_contact_method: Optional[str] = None
    phone_number: Optional[str] = None
    social_links: dict = Field(default_factory=dict)
    total_performances: int = 0
    average_rating: float = 0.0
    availability: dict = Field(default_factory=dict)
    profile_complete: bool = False
    verified: bool = False
    verification_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IndividualProfileUpdate(BaseModel):
    """Profile edits; ``full_name`` and ``avatar_url`` belong to the users row."""

    full_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=1000)
    stage_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    headliner: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    website_url: Optional[str] = Field(None, max_length=500)
    primary_instrument: Optional[str] = Field(None, max_length=100)
    instruments: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    years_experience: Optional[int] = Field(None, ge=0, le=100)
    looking_for_gigs: Optional[bool] = None
    available_for_hire: Optional[bool] = None
    travel_distance_km: Optional[int] = Field(None, ge=0)
    base_rate_per_hour: Optional[float] = Field(None, ge=0)
    preferred_contact_method: Optional[ContactMethod] = None
    phone_number: Optional[str] = Field(None, max_length=50)
    social_links: Optional[dict[str, str]] = None
    availability: Optional[dict] = None

    _required = field_validator(
        "looking_for_gigs", "available_for_hire", "social_links", "availability"
    )(_not_null)

    @field_validator("full_name")
    @classmethod
    def _full_name_present(cls, value):
        if value is None or not value.strip():
            raise ValueError("Full name is required")
        return value

    @field_validator("website_url")
    @classmethod
    def _valid_website(cls, value):
        if value and value.strip():
            try:
                _URL.validate_python(value)
            except ValidationError:
                raise ValueError("Please enter a valid website URL") from None
        return value

    @field_validator("phone_number")
    @classmethod
    def _valid_phone(cls, value):
        if value and value.strip() and not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value


class ProfileResponse(BaseModel):
    user: UserOut
    individual_profile: Optional[IndividualProfileOut] = None
    completion_percentage: int
    missing_fields: list[str]
    is_complete: bool


# Experience


class ExperienceEntryOut(_Out):
    id: str
    user_id: str
    title: str
    organization: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    display_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class _ExperienceDates(BaseModel):
    @model_validator(mode="after")
    def _end_after_start(self):
        _check_order(self.start_date, self.end_date, "end_date must not precede start_date")
        return self


class ExperienceEntryCreate(_ExperienceDates):
    title: str = Field(..., min_length=1, max_length=200)
    organization: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False


class ExperienceEntryUpdate(_ExperienceDates):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    organization: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None

    _required = field_validator("title", "organization", "is_current")(_not_null)


class ReorderRequest(BaseModel):
    entry_ids: list[str] = Field(..., min_length=1)


# Past performances


class PastPerformanceOut(_Out):
    id: str
    user_id: str
    title: str
    venue: Optional[str] = None
    role: Optional[str] = None
    performance_date: Optional[date] = None
    description: Optional[str] = None
    ensemble_size: Optional[int] = None
    genre: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PastPerformanceCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    venue: Optional[str] = Field(None, max_length=200)
    role: Optional[str] = Field(None, max_length=100)
    performance_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=2000)
    ensemble_size: Optional[int] = Field(None, ge=1)
    genre: Optional[str] = Field(None, max_length=100)


class PastPerformanceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    venue: Optional[str] = Field(None, max_length=200)
    role: Optional[str] = Field(None, max_length=100)
    performance_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=2000)
    ensemble_size: Optional[int] = Field(None, ge=1)
    genre: Optional[str] = Field(None, max_length=100)

    _required = field_validator("title")(_not_null)


class PerformanceStatsOut(_Out):
    total_performances: int
    genre_breakdown: dict[str, int]
    yearly_stats: dict[str, int]
    venue_count: int


class PublicProfileResponse(BaseModel):
    user: UserOut
    individual_profile: Optional[IndividualProfileOut] = None
    experience: list[ExperienceEntryOut] = Field(default_factory=list)
    performances: list[PastPerformanceOut] = Field(default_factory=list)


# Gigs


class GigAuthorOut(_Out):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    type: Literal["user", "organization"]


class GigOut(_Out):
    id: str
    posted_by_user_id: Optional[str] = None
    posted_by_organization_id: Optional[str] = None
    title: str
    description: str
    gig_type: str
    instruments_needed: list[str] = Field(default_factory=list)
    genres: Optional[list[str]] = None
    experience_level: Optional[str] = None
    ensemble_size_min: Optional[int] = None
    ensemble_size_max: Optional[int] = None
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    city: str
    state_province: Optional[str] = None
    country: str
    postal_code: Optional[str] = None
    is_remote: bool = False
    travel_required: bool = False
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    application_deadline: Optional[date] = None
    compensation_type: str
    pay_rate_type: Optional[str] = None
    pay_amount_min: Optional[float] = None
    pay_amount_max: Optional[float] = None
    currency: str = "USD"
    application_method: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website_url: Optional[str] = None
    audition_required: bool = False
    portfolio_required: bool = False
    special_requirements: Optional[str] = None
    tags: Optional[list[str]] = None
    images: Optional[list[str]] = None
    status: str = "open"
    applications_count: int = 0
    featured: bool = False
    urgent: bool = False
    is_published: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    author: Optional[GigAuthorOut] = None


class _GigRanges(BaseModel):
    @model_validator(mode="after")
    def _ranges_in_order(self):
        _check_order(self.start_date, self.end_date, "end_date must not precede start_date")
        _check_order(
            self.pay_amount_min,
            self.pay_amount_max,
            "pay_amount_min must not exceed pay_amount_max",
        )
        _check_order(
            self.ensemble_size_min,
            self.ensemble_size_max,
            "ensemble_size_min must not exceed ensemble_size_max",
        )
        return self


class GigCreate(_GigRanges):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    gig_type: GigType
    instruments_needed: list[str] = Field(..., min_length=1)
    genres: Optional[list[str]] = None
    experience_level: Optional[ExperienceLevel] = None
    ensemble_size_min: Optional[int] = Field(None, ge=1)
    ensemble_size_max: Optional[int] = Field(None, ge=1)
    venue_name: Optional[str] = Field(None, max_length=200)
    venue_address: Optional[str] = Field(None, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_remote: bool = False
    travel_required: bool = False
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    application_deadline: Optional[date] = None
    compensation_type: CompensationType
    pay_rate_type: Optional[PayRateType] = None
    pay_amount_min: Optional[float] = Field(None, ge=0)
    pay_amount_max: Optional[float] = Field(None, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    application_method: ApplicationMethod
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    website_url: Optional[str] = Field(None, max_length=500)
    audition_required: bool = False
    portfolio_required: bool = False
    special_requirements: Optional[str] = Field(None, max_length=2000)
    tags: Optional[list[str]] = None
    images: Optional[list[str]] = None
    featured: bool = False
    urgent: bool = False


class GigUpdate(_GigRanges):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    gig_type: Optional[GigType] = None
    instruments_needed: Optional[list[str]] = Field(None, min_length=1)
    genres: Optional[list[str]] = None
    experience_level: Optional[ExperienceLevel] = None
    ensemble_size_min: Optional[int] = Field(None, ge=1)
    ensemble_size_max: Optional[int] = Field(None, ge=1)
    venue_name: Optional[str] = Field(None, max_length=200)
    venue_address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_remote: Optional[bool] = None
    travel_required: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    application_deadline: Optional[date] = None
    compensation_type: Optional[CompensationType] = None
    pay_rate_type: Optional[PayRateType] = None
    pay_amount_min: Optional[float] = Field(None, ge=0)
    pay_amount_max: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    application_method: Optional[ApplicationMethod] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    website_url: Optional[str] = Field(None, max_length=500)
    audition_required: Optional[bool] = None
    portfolio_required: Optional[bool] = None
    special_requirements: Optional[str] = Field(None, max_length=2000)
    tags: Optional[list[str]] = None
    images: Optional[list[str]] = None
    status: Optional[GigStatus] = None
    featured: Optional[bool] = None
    urgent: Optional[bool] = None

    _required = field_validator(
        "title",
        "description",
        "gig_type",
        "instruments_needed",
        "city",
        "country",
        "start_date",
        "compensation_type",
        "currency",
        "application_method",
        "is_remote",
        "travel_required",
        "audition_required",
        "portfolio_required",
        "status",
        "featured",
        "urgent",
    )(_not_null)


# Shared


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int


class AvatarUpdateRequest(BaseModel):
    avatar_url: Optional[str] = Field(None, max_length=1000)
    public_id: Optional[str] = Field(None, max_length=500)


class DeleteImageRequest(BaseModel):
    public_id: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool
    message: str


class AvatarUploadResponse(BaseModel):
    avatar_url: str
    progress: int


class HealthResponse(BaseModel):
    status: Literal["ok"]
