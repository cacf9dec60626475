"""
Database access for the hosted Postgres instance (or SQLite for tests).

Rows mirror the tables of the managed database one-to-one. Services open a
short-lived session per call through ``Database.Session``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """
    SQLAlchemy-backed database client. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for Database")
        if database_url.startswith("sqlite"):
            # One shared connection so an in-memory database survives across
            # sessions and the FastAPI threadpool.
            self.engine = create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def reset(self) -> None:
        """Drop and recreate every table (useful in tests)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    avatar_public_id = Column(String, nullable=True)
    google_id = Column(String, nullable=True)
    account_type = Column(String, nullable=False, default="artist")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class IndividualProfileRow(Base):
    __tablename__ = "individual_profiles"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    stage_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    headliner = Column(String, nullable=True)
    location = Column(String, nullable=True)
    website_url = Column(String, nullable=True)

    primary_instrument = Column(String, nullable=True)
    instruments = Column(JSON(none_as_null=True), nullable=True)
    genres = Column(JSON(none_as_null=True), nullable=True)
    years_experience = Column(Integer, nullable=True)

    looking_for_gigs = Column(Boolean, nullable=False, default=True)
    available_for_hire = Column(Boolean, nullable=False, default=True)
    travel_distance_km = Column(Integer, nullable=True)
    base_rate_per_hour = Column(Float, nullable=True)

    preferred_contact_method = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    social_links = Column(JSON(none_as_null=True), nullable=False, default=dict)

    total_performances = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    availability = Column(JSON(none_as_null=True), nullable=False, default=dict)

    profile_complete = Column(Boolean, nullable=False, default=False)
    verified = Column(Boolean, nullable=False, default=False)
    verification_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class ExperienceEntryRow(Base):
    __tablename__ = "experience_entries"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    organization = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class PastPerformanceRow(Base):
    __tablename__ = "past_performances"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    venue = Column(String, nullable=True)
    role = Column(String, nullable=True)
    performance_date = Column(Date, nullable=True, index=True)
    description = Column(Text, nullable=True)
    ensemble_size = Column(Integer, nullable=True)
    genre = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class OrganizationRow(Base):
    __tablename__ = "organization_profiles"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    organization_type = Column(String, nullable=False, default="other")
    description = Column(Text, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class GigRow(Base):
    __tablename__ = "gigs"

    id = Column(String, primary_key=True, default=new_id)
    posted_by_user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    posted_by_organization_id = Column(
        String,
        ForeignKey("organization_profiles.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    gig_type = Column(String, nullable=False)

    instruments_needed = Column(JSON(none_as_null=True), nullable=False, default=list)
    genres = Column(JSON(none_as_null=True), nullable=True)
    experience_level = Column(String, nullable=True)
    ensemble_size_min = Column(Integer, nullable=True)
    ensemble_size_max = Column(Integer, nullable=True)

    venue_name = Column(String, nullable=True)
    venue_address = Column(String, nullable=True)
    city = Column(String, nullable=False, index=True)
    state_province = Column(String, nullable=True)
    country = Column(String, nullable=False)
    postal_code = Column(String, nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    travel_required = Column(Boolean, nullable=False, default=False)

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    start_time = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    application_deadline = Column(Date, nullable=True)

    compensation_type = Column(String, nullable=False)
    pay_rate_type = Column(String, nullable=True)
    pay_amount_min = Column(Float, nullable=True)
    pay_amount_max = Column(Float, nullable=True)
    currency = Column(String, nullable=False, default="USD")

    application_method = Column(String, nullable=False)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    website_url = Column(String, nullable=True)
    audition_required = Column(Boolean, nullable=False, default=False)
    portfolio_required = Column(Boolean, nullable=False, default=False)
    special_requirements = Column(Text, nullable=True)
    tags = Column(JSON(none_as_null=True), nullable=True)
    images = Column(JSON(none_as_null=True), nullable=True)

    status = Column(String, nullable=False, default="open", index=True)
    applications_count = Column(Integer, nullable=False, default=0)
    featured = Column(Boolean, nullable=False, default=False)
    urgent = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    published_at = Column(DateTime(timezone=True), nullable=True)
