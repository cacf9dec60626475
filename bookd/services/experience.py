"""
Data access for the ``experience_entries`` table.

Entries carry a per-user ``display_order`` starting at 1. Creation appends,
deletion closes the gap, and ``reorder_experience_entries`` rewrites it from
an explicit id list.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import ProgrammingError, SQLAlchemyError

from bookd.db import ExperienceEntryRow, new_id, utcnow
from bookd.records import ExperienceEntry, Page, from_row
from bookd.services.base import (
    BaseService,
    ServiceError,
    check_order,
    clean_updates,
    ilike_any,
)

logger = logging.getLogger(__name__)

_COLUMNS = ExperienceEntryRow.__table__.columns.keys()
_UNDEFINED_TABLE = "42P01"
_DATE_ORDER = ("start_date", "end_date", "end_date must not precede start_date")


def _display_order():
    return (
        ExperienceEntryRow.display_order.asc(),
        ExperienceEntryRow.start_date.desc().nulls_last(),
    )


class ExperienceService(BaseService):
    """Queries over a musician's work history."""

    def get_experience_entries(self, user_id: str) -> list[ExperienceEntry]:
        stmt = (
            select(ExperienceEntryRow)
            .where(ExperienceEntryRow.user_id == user_id)
            .order_by(*_display_order())
        )
        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [from_row(ExperienceEntry, row) for row in rows]
        except ProgrammingError as exc:
            if getattr(exc.orig, "pgcode", None) == _UNDEFINED_TABLE:
                logger.warning(
                    "Experience entries table not found; have the migrations been run?"
                )
            else:
                logger.warning("Error fetching experience entries: %s", exc)
            return []
        except SQLAlchemyError as exc:
            logger.warning("Error fetching experience entries: %s", exc)
            return []

    def get_experience_entry(self, entry_id: str) -> Optional[ExperienceEntry]:
        try:
            with self.db.Session() as session:
                row = session.get(ExperienceEntryRow, entry_id)
                return from_row(ExperienceEntry, row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching experience entry: %s", exc)
            return None

    def create_experience_entry(
        self, user_id: str, data: Mapping[str, Any]
    ) -> ExperienceEntry:
        values = clean_updates(data, _COLUMNS)
        values.pop("display_order", None)
        now = utcnow()
        try:
            with self.db.Session() as session:
                current_max = session.scalar(
                    select(func.max(ExperienceEntryRow.display_order)).where(
                        ExperienceEntryRow.user_id == user_id
                    )
                )
                row = ExperienceEntryRow(
                    **values,
                    id=new_id(),
                    user_id=user_id,
                    display_order=(current_max or 0) + 1,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("Experience entry created: %s", row.title)
                return from_row(ExperienceEntry, row)
        except SQLAlchemyError as exc:
            logger.error("Error creating experience entry for %s: %s", user_id, exc)
            raise ServiceError(f"Database error: {exc}") from exc

    def update_experience_entry(
        self,
        entry_id: str,
        updates: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> Optional[ExperienceEntry]:
        values = clean_updates(updates, _COLUMNS)
        try:
            with self.db.Session() as session:
                row = session.get(ExperienceEntryRow, entry_id)
                if not row or (user_id is not None and row.user_id != user_id):
                    return None
                for key, value in values.items():
                    setattr(row, key, value)
                check_order(row, _DATE_ORDER)
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                logger.info("Experience entry updated: %s", row.title)
                return from_row(ExperienceEntry, row)
        except SQLAlchemyError as exc:
            logger.error("Error updating experience entry: %s", exc)
            return None

    def delete_experience_entry(
        self, entry_id: str, user_id: Optional[str] = None
    ) -> bool:
        try:
            with self.db.Session() as session:
                row = session.get(ExperienceEntryRow, entry_id)
                if not row or (user_id is not None and row.user_id != user_id):
                    return False
                owner_id, title = row.user_id, row.title
                session.execute(
                    delete(ExperienceEntryRow).where(ExperienceEntryRow.id == entry_id)
                )
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error deleting experience entry: %s", exc)
            return False

        self._compact_display_order(owner_id)
        logger.info("Experience entry deleted: %s", title)
        return True

    def reorder_experience_entries(
        self, user_id: str, entry_ids: Sequence[str]
    ) -> bool:
        """Set display_order from the position of each id; foreign ids are ignored."""
        try:
            with self.db.Session() as session:
                rows = (
                    session.execute(
                        select(ExperienceEntryRow)
                        .where(ExperienceEntryRow.user_id == user_id)
                        .where(ExperienceEntryRow.id.in_(list(entry_ids)))
                    )
                    .scalars()
                    .all()
                )
                by_id = {row.id: row for row in rows}
                now = utcnow()
                for index, entry_id in enumerate(entry_ids):
                    row = by_id.get(entry_id)
                    if row is not None:
                        row.display_order = index + 1
                        row.updated_at = now
                session.commit()
            logger.info("Experience entries reordered for %s", user_id)
            return True
        except SQLAlchemyError as exc:
            logger.error("Error reordering experience entries: %s", exc)
            return False

    def _compact_display_order(self, user_id: str) -> None:
        try:
            with self.db.Session() as session:
                rows = (
                    session.execute(
                        select(ExperienceEntryRow)
                        .where(ExperienceEntryRow.user_id == user_id)
                        .order_by(ExperienceEntryRow.display_order.asc())
                    )
                    .scalars()
                    .all()
                )
                for index, row in enumerate(rows):
                    if row.display_order != index + 1:
                        row.display_order = index + 1
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error compacting experience display order: %s", exc)

    def get_experience_entries_paginated(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> Page[ExperienceEntry]:
        owned = ExperienceEntryRow.user_id == user_id
        try:
            with self.db.Session() as session:
                total = session.scalar(
                    select(func.count()).select_from(ExperienceEntryRow).where(owned)
                )
                rows = (
                    session.execute(
                        select(ExperienceEntryRow)
                        .where(owned)
                        .order_by(*_display_order())
                        .offset(offset)
                        .limit(limit)
                    )
                    .scalars()
                    .all()
                )
                items = [from_row(ExperienceEntry, row) for row in rows]
            return Page(items=items, total=total or 0, limit=limit, offset=offset)
        except SQLAlchemyError as exc:
            logger.error("Error fetching paginated experience entries: %s", exc)
            return Page(items=[], total=0, limit=limit, offset=offset)

    def search_experience_entries(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[ExperienceEntry]:
        stmt = (
            select(ExperienceEntryRow)
            .where(ExperienceEntryRow.user_id == user_id)
            .where(
                ilike_any(query, ExperienceEntryRow.title, ExperienceEntryRow.organization)
            )
            .order_by(ExperienceEntryRow.display_order.asc())
            .limit(limit)
        )
        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [from_row(ExperienceEntry, row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Error searching experience entries: %s", exc)
            return []

    def toggle_current_status(
        self, entry_id: str, user_id: Optional[str] = None
    ) -> Optional[ExperienceEntry]:
        """Flip ``is_current``; an entry that becomes current loses its end date."""
        try:
            with self.db.Session() as session:
                row = session.get(ExperienceEntryRow, entry_id)
                if not row or (user_id is not None and row.user_id != user_id):
                    return None
                row.is_current = not row.is_current
                if row.is_current:
                    row.end_date = None
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                return from_row(ExperienceEntry, row)
        except SQLAlchemyError as exc:
            logger.error("Error toggling current status: %s", exc)
            return None
