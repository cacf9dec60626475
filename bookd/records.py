"""
Plain records returned by the service layer.

Each record mirrors one table row; services convert rows with ``from_row`` so
callers never hold a live SQLAlchemy object.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any, Generic, Literal, Optional, Type, TypeVar

T = TypeVar("T")


def from_row(cls: Type[T], row: Any) -> T:
    values = {f.name: getattr(row, f.name) for f in fields(cls) if hasattr(row, f.name)}
    return cls(**values)


class _Record:
    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class User(_Record):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_public_id: Optional[str] = None
    google_id: Optional[str] = None
    account_type: str = "artist"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class IndividualProfile(_Record):
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
    social_links: dict = field(default_factory=dict)
    total_performances: int = 0
    average_rating: float = 0.0
    availability: dict = field(default_factory=dict)
    profile_complete: bool = False
    verified: bool = False
    verification_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class UserWithProfile(_Record):
    user: User
    individual_profile: Optional[IndividualProfile] = None


@dataclass
class ExperienceEntry(_Record):
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


@dataclass
class PastPerformance(_Record):
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


@dataclass
class PerformanceStats(_Record):
    total_performances: int = 0
    genre_breakdown: dict[str, int] = field(default_factory=dict)
    yearly_stats: dict[str, int] = field(default_factory=dict)
    venue_count: int = 0


@dataclass
class GigAuthor(_Record):
    id: str
    name: Optional[str]
    avatar_url: Optional[str]
    type: Literal["user", "organization"]


@dataclass
class Gig(_Record):
    id: str
    title: str
    description: str
    gig_type: str
    city: str
    country: str
    start_date: date
    compensation_type: str
    application_method: str
    posted_by_user_id: Optional[str] = None
    posted_by_organization_id: Optional[str] = None
    instruments_needed: list[str] = field(default_factory=list)
    genres: Optional[list[str]] = None
    experience_level: Optional[str] = None
    ensemble_size_min: Optional[int] = None
    ensemble_size_max: Optional[int] = None
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    is_remote: bool = False
    travel_required: bool = False
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    application_deadline: Optional[date] = None
    pay_rate_type: Optional[str] = None
    pay_amount_min: Optional[float] = None
    pay_amount_max: Optional[float] = None
    currency: str = "USD"
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
    author: Optional[GigAuthor] = None


@dataclass
class Page(_Record, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int
