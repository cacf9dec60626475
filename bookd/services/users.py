"""
Data access for the ``users`` table.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bookd.auth import AuthUser
from bookd.db import UserRow, utcnow
from bookd.records import User, UserWithProfile, from_row
from bookd.services.base import BaseService, ServiceError, clean_updates, ilike_any
from bookd.services.profiles import IndividualProfilesService

logger = logging.getLogger(__name__)

_COLUMNS = UserRow.__table__.columns.keys()


class UsersService(BaseService):
    def __init__(self, db, profiles: Optional[IndividualProfilesService] = None):
        super().__init__(db)
        self.profiles = profiles or IndividualProfilesService(db)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        try:
            with self.db.Session() as session:
                row = session.get(UserRow, user_id)
                return from_row(User, row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching user: %s", exc)
            return None

    def ensure_user(self, auth_user: AuthUser) -> Optional[User]:
        """
        Return the users row for an authenticated session, creating it (and the
        individual profile) the first time the user is seen.
        """
        existing = self.get_user_by_id(auth_user.id)
        if existing:
            return existing

        now = utcnow()
        try:
            with self.db.Session() as session:
                row = UserRow(
                    id=auth_user.id,
                    email=auth_user.email,
                    full_name=auth_user.full_name,
                    avatar_url=auth_user.avatar_url,
                    google_id=auth_user.provider_id,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                user = from_row(User, row)
        except SQLAlchemyError as exc:
            logger.error("Error creating user %s: %s", auth_user.id, exc)
            return None

        try:
            self.profiles.create_individual_profile(user.id)
        except ServiceError as exc:
            # The profile is created lazily later if this fails.
            logger.error("Error creating profile for new user %s: %s", user.id, exc)
        return user

    def get_user_with_profile(self, user_id: str) -> Optional[UserWithProfile]:
        user = self.get_user_by_id(user_id)
        if user is None:
            return None
        profile = self.profiles.get_or_create_individual_profile(user_id)
        return UserWithProfile(user=user, individual_profile=profile)

    def update_user(self, user_id: str, updates: Mapping[str, Any]) -> Optional[User]:
        values = clean_updates(updates, _COLUMNS)
        try:
            with self.db.Session() as session:
                row = session.get(UserRow, user_id)
                if not row:
                    return None
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                return from_row(User, row)
        except SQLAlchemyError as exc:
            logger.error("Error updating user: %s", exc)
            return None

    def update_avatar(
        self, user_id: str, avatar_url: Optional[str], public_id: Optional[str] = None
    ) -> Optional[User]:
        user = self.update_user(
            user_id, {"avatar_url": avatar_url, "avatar_public_id": public_id}
        )
        if user and public_id:
            logger.info("Avatar public_id for user %s: %s", user_id, public_id)
        return user

    def search_users(self, query: str, limit: int = 20, offset: int = 0) -> list[User]:
        stmt = (
            select(UserRow)
            .where(ilike_any(query, UserRow.full_name, UserRow.email))
            .order_by(UserRow.full_name.asc())
            .offset(offset)
            .limit(limit)
        )
        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [from_row(User, row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Error searching users: %s", exc)
            return []
