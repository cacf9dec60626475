"""
Data access for the ``past_performances`` table.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from bookd.db import PastPerformanceRow, new_id, utcnow
from bookd.records import Page, PastPerformance, PerformanceStats, from_row
from bookd.services.base import BaseService, clean_updates, ilike_any

logger = logging.getLogger(__name__)

_COLUMNS = PastPerformanceRow.__table__.columns.keys()


def _newest_first():
    return PastPerformanceRow.performance_date.desc().nulls_last()


class PerformancesService(BaseService):
    """Queries over a musician's past performances."""

    def _fetch(self, stmt) -> list[PastPerformance]:
        with self.db.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [from_row(PastPerformance, row) for row in rows]

    def get_past_performances(self, user_id: str) -> list[PastPerformance]:
        stmt = (
            select(PastPerformanceRow)
            .where(PastPerformanceRow.user_id == user_id)
            .order_by(_newest_first())
        )
        try:
            return self._fetch(stmt)
        except SQLAlchemyError as exc:
            logger.error("Error fetching past performances: %s", exc)
            return []

    def get_recent_performances(
        self,
        genre: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[PastPerformance]:
        """Recent performances across all users, both date bounds inclusive."""
        stmt = select(PastPerformanceRow)
        if genre:
            stmt = stmt.where(PastPerformanceRow.genre == genre)
        if start_date:
            stmt = stmt.where(PastPerformanceRow.performance_date >= start_date)
        if end_date:
            stmt = stmt.where(PastPerformanceRow.performance_date <= end_date)
        stmt = stmt.order_by(_newest_first()).offset(offset).limit(limit)
        try:
            return self._fetch(stmt)
        except SQLAlchemyError as exc:
            logger.error("Error fetching recent performances: %s", exc)
            return []

    def get_past_performance(self, performance_id: str) -> Optional[PastPerformance]:
        try:
            with self.db.Session() as session:
                row = session.get(PastPerformanceRow, performance_id)
                return from_row(PastPerformance, row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching past performance: %s", exc)
            return None

    def create_past_performance(
        self, user_id: str, data: Mapping[str, Any]
    ) -> Optional[PastPerformance]:
        values = clean_updates(data, _COLUMNS)
        now = utcnow()
        try:
            with self.db.Session() as session:
                row = PastPerformanceRow(
                    **values,
                    id=new_id(),
                    user_id=user_id,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("Past performance created: %s", row.title)
                return from_row(PastPerformance, row)
        except SQLAlchemyError as exc:
            logger.error("Error creating past performance: %s", exc)
            return None

    def update_past_performance(
        self,
        performance_id: str,
        updates: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> Optional[PastPerformance]:
        values = clean_updates(updates, _COLUMNS)
        try:
            with self.db.Session() as session:
                row = session.get(PastPerformanceRow, performance_id)
                if not row or (user_id is not None and row.user_id != user_id):
                    return None
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                logger.info("Past performance updated: %s", row.title)
                return from_row(PastPerformance, row)
        except SQLAlchemyError as exc:
            logger.error("Error updating past performance: %s", exc)
            return None

    def delete_past_performance(
        self, performance_id: str, user_id: Optional[str] = None
    ) -> bool:
        stmt = delete(PastPerformanceRow).where(PastPerformanceRow.id == performance_id)
        if user_id is not None:
            stmt = stmt.where(PastPerformanceRow.user_id == user_id)
        try:
            with self.db.Session() as session:
                deleted = session.execute(stmt).rowcount > 0
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error deleting past performance: %s", exc)
            return False
        if deleted:
            logger.info("Past performance deleted: %s", performance_id)
        return deleted

    def get_past_performances_paginated(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> Page[PastPerformance]:
        owned = PastPerformanceRow.user_id == user_id
        try:
            with self.db.Session() as session:
                total = session.scalar(
                    select(func.count()).select_from(PastPerformanceRow).where(owned)
                )
                rows = (
                    session.execute(
                        select(PastPerformanceRow)
                        .where(owned)
                        .order_by(_newest_first())
                        .offset(offset)
                        .limit(limit)
                    )
                    .scalars()
                    .all()
                )
                items = [from_row(PastPerformance, row) for row in rows]
            return Page(items=items, total=total or 0, limit=limit, offset=offset)
        except SQLAlchemyError as exc:
            logger.error("Error fetching paginated past performances: %s", exc)
            return Page(items=[], total=0, limit=limit, offset=offset)

    def search_past_performances(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[PastPerformance]:
        """Case-insensitive substring match over title, venue and role."""
        stmt = (
            select(PastPerformanceRow)
            .where(PastPerformanceRow.user_id == user_id)
            .where(
                ilike_any(
                    query,
                    PastPerformanceRow.title,
                    PastPerformanceRow.venue,
                    PastPerformanceRow.role,
                )
            )
            .order_by(_newest_first())
            .limit(limit)
        )
        try:
            return self._fetch(stmt)
        except SQLAlchemyError as exc:
            logger.error("Error searching past performances: %s", exc)
            return []

    def get_past_performances_by_genre(
        self, user_id: str, genre: str
    ) -> list[PastPerformance]:
        stmt = (
            select(PastPerformanceRow)
            .where(PastPerformanceRow.user_id == user_id)
            .where(PastPerformanceRow.genre == genre)
            .order_by(_newest_first())
        )
        try:
            return self._fetch(stmt)
        except SQLAlchemyError as exc:
            logger.error("Error fetching past performances by genre: %s", exc)
            return []

    def get_past_performances_by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> list[PastPerformance]:
        stmt = (
            select(PastPerformanceRow)
            .where(PastPerformanceRow.user_id == user_id)
            .where(PastPerformanceRow.performance_date >= start_date)
            .where(PastPerformanceRow.performance_date <= end_date)
            .order_by(_newest_first())
        )
        try:
            return self._fetch(stmt)
        except SQLAlchemyError as exc:
            logger.error("Error fetching past performances by date range: %s", exc)
            return []

    def get_performance_stats(self, user_id: str) -> PerformanceStats:
        performances = self.get_past_performances(user_id)
        stats = PerformanceStats(
            total_performances=len(performances),
            venue_count=len({p.venue for p in performances if p.venue}),
        )
        for performance in performances:
            if performance.genre:
                stats.genre_breakdown[performance.genre] = (
                    stats.genre_breakdown.get(performance.genre, 0) + 1
                )
            if performance.performance_date:
                year = str(performance.performance_date.year)
                stats.yearly_stats[year] = stats.yearly_stats.get(year, 0) + 1
        return stats
