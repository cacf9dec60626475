"""
Data access for the ``individual_profiles`` table (one profile per user).
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from bookd.completion import is_profile_complete
from bookd.db import IndividualProfileRow, new_id, utcnow
from bookd.records import IndividualProfile, from_row
from bookd.services.base import (
    BaseService,
    ServiceError,
    clean_updates,
    ilike_any,
    like_pattern,
    overlaps,
)

logger = logging.getLogger(__name__)

_COLUMNS = IndividualProfileRow.__table__.columns.keys()


class IndividualProfilesService(BaseService):
    """Queries over musicians' individual profiles."""

    def create_individual_profile(self, user_id: str) -> IndividualProfile:
        now = utcnow()
        try:
            with self.db.Session() as session:
                row = IndividualProfileRow(
                    id=new_id(),
                    user_id=user_id,
                    looking_for_gigs=True,
                    available_for_hire=True,
                    profile_complete=False,
                    verified=False,
                    total_performances=0,
                    average_rating=0.0,
                    social_links={},
                    availability={},
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                return from_row(IndividualProfile, row)
        except SQLAlchemyError as exc:
            logger.error("Error creating individual profile: %s", exc)
            raise ServiceError(f"Failed to create profile for {user_id}") from exc

    def get_individual_profile(self, user_id: str) -> Optional[IndividualProfile]:
        stmt = select(IndividualProfileRow).where(IndividualProfileRow.user_id == user_id)
        try:
            with self.db.Session() as session:
                row = session.execute(stmt).scalar_one_or_none()
                return from_row(IndividualProfile, row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching individual profile: %s", exc)
            return None

    def update_individual_profile(
        self, user_id: str, updates: Mapping[str, Any]
    ) -> Optional[IndividualProfile]:
        values = clean_updates(updates, _COLUMNS)
        stmt = select(IndividualProfileRow).where(IndividualProfileRow.user_id == user_id)
        try:
            with self.db.Session() as session:
                row = session.execute(stmt).scalar_one_or_none()
                if not row:
                    return None
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                return from_row(IndividualProfile, row)
        except SQLAlchemyError as exc:
            logger.error("Error updating individual profile: %s", exc)
            raise ServiceError(f"Failed to update profile for {user_id}") from exc

    def get_or_create_individual_profile(
        self, user_id: str
    ) -> Optional[IndividualProfile]:
        """Ensure every user has a profile."""
        try:
            profile = self.get_individual_profile(user_id)
            if profile is None:
                profile = self.create_individual_profile(user_id)
            return profile
        except ServiceError as exc:
            logger.error("Error in get_or_create_individual_profile: %s", exc)
            return None

    def search_individual_profiles(
        self,
        query: Optional[str] = None,
        instruments: Optional[Sequence[str]] = None,
        genres: Optional[Sequence[str]] = None,
        location: Optional[str] = None,
        looking_for_gigs: Optional[bool] = None,
        available_for_hire: Optional[bool] = None,
        verified: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[IndividualProfile]:
        stmt = select(IndividualProfileRow)
        if query:
            stmt = stmt.where(
                ilike_any(
                    query,
                    IndividualProfileRow.stage_name,
                    IndividualProfileRow.bio,
                    IndividualProfileRow.primary_instrument,
                )
            )
        if location:
            stmt = stmt.where(
                IndividualProfileRow.location.ilike(like_pattern(location), escape="\\")
            )
        if looking_for_gigs is not None:
            stmt = stmt.where(IndividualProfileRow.looking_for_gigs == looking_for_gigs)
        if available_for_hire is not None:
            stmt = stmt.where(
                IndividualProfileRow.available_for_hire == available_for_hire
            )
        if verified is not None:
            stmt = stmt.where(IndividualProfileRow.verified == verified)
        stmt = stmt.order_by(IndividualProfileRow.updated_at.desc())

        # List overlap runs in application code, so pagination follows it.
        needs_overlap = bool(instruments) or bool(genres)
        if not needs_overlap:
            stmt = stmt.offset(offset).limit(limit)

        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                profiles = [from_row(IndividualProfile, row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Error searching individual profiles: %s", exc)
            return []

        if not needs_overlap:
            return profiles
        if instruments:
            profiles = [p for p in profiles if overlaps(p.instruments, instruments)]
        if genres:
            profiles = [p for p in profiles if overlaps(p.genres, genres)]
        return profiles[offset : offset + limit]

    def delete_individual_profile(self, user_id: str) -> bool:
        try:
            with self.db.Session() as session:
                result = session.execute(
                    delete(IndividualProfileRow).where(
                        IndividualProfileRow.user_id == user_id
                    )
                )
                session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            logger.error("Error deleting individual profile: %s", exc)
            raise ServiceError(f"Failed to delete profile for {user_id}") from exc

    def update_profile_completion_status(
        self, user_id: str
    ) -> Optional[IndividualProfile]:
        profile = self.get_individual_profile(user_id)
        if profile is None:
            return None
        complete = is_profile_complete(profile)
        if profile.profile_complete == complete:
            return profile
        try:
            return self.update_individual_profile(
                user_id, {"profile_complete": complete}
            )
        except ServiceError as exc:
            logger.error("Error in update_profile_completion_status: %s", exc)
            return None
