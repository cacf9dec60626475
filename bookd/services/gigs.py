"""
Data access for the ``gigs`` table.

Gigs are returned with an ``author`` resolved from the posting user or
organization. Instrument and genre overlap filters are applied in application
code because the list columns are stored as JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from bookd.db import GigRow, OrganizationRow, UserRow, new_id, utcnow
from bookd.records import Gig, GigAuthor, Page, from_row
from bookd.services.base import (
    BaseService,
    ServiceError,
    check_order,
    clean_updates,
    ilike_any,
    like_pattern,
    overlaps,
)

logger = logging.getLogger(__name__)

_COLUMNS = GigRow.__table__.columns.keys()
_SERVER_MANAGED = {"status", "is_published", "published_at", "applications_count"}
_ORDER_RULES = (
    ("start_date", "end_date", "end_date must not precede start_date"),
    ("pay_amount_min", "pay_amount_max", "pay_amount_min must not exceed pay_amount_max"),
    (
        "ensemble_size_min",
        "ensemble_size_max",
        "ensemble_size_min must not exceed ensemble_size_max",
    ),
)


@dataclass
class GigFilters:
    instruments: Optional[Sequence[str]] = None
    genres: Optional[Sequence[str]] = None
    compensation_type: Optional[str] = None
    pay_rate_min: Optional[float] = None
    pay_rate_max: Optional[float] = None
    location: Optional[str] = None
    gig_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None
    search_query: Optional[str] = None


def _newest_first():
    return GigRow.created_at.desc()


class GigsService(BaseService):
    """Queries over posted gigs."""

    def _filtered_query(self, filters: GigFilters):
        stmt = (
            select(GigRow)
            .where(GigRow.status == (filters.status or "open"))
            .where(GigRow.is_published.is_(True))
        )
        if filters.compensation_type:
            stmt = stmt.where(GigRow.compensation_type == filters.compensation_type)
        if filters.pay_rate_min is not None:
            stmt = stmt.where(GigRow.pay_amount_min >= filters.pay_rate_min)
        if filters.pay_rate_max is not None:
            stmt = stmt.where(GigRow.pay_amount_max <= filters.pay_rate_max)
        if filters.location:
            stmt = stmt.where(
                GigRow.city.ilike(like_pattern(filters.location), escape="\\")
            )
        if filters.gig_type:
            stmt = stmt.where(GigRow.gig_type == filters.gig_type)
        if filters.start_date:
            stmt = stmt.where(GigRow.start_date >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(GigRow.start_date <= filters.end_date)
        if filters.search_query:
            stmt = stmt.where(
                ilike_any(
                    filters.search_query,
                    GigRow.title,
                    GigRow.description,
                    GigRow.venue_name,
                )
            )
        return stmt.order_by(_newest_first())

    def _with_authors(self, session, rows: Iterable[GigRow]) -> list[Gig]:
        gigs = [from_row(Gig, row) for row in rows]
        user_ids = {g.posted_by_user_id for g in gigs if g.posted_by_user_id}
        org_ids = {g.posted_by_organization_id for g in gigs if g.posted_by_organization_id}

        users = {}
        if user_ids:
            users = {
                row.id: row
                for row in session.execute(
                    select(UserRow).where(UserRow.id.in_(user_ids))
                ).scalars()
            }
        orgs = {}
        if org_ids:
            orgs = {
                row.id: row
                for row in session.execute(
                    select(OrganizationRow).where(OrganizationRow.id.in_(org_ids))
                ).scalars()
            }

        for gig in gigs:
            poster = users.get(gig.posted_by_user_id)
            if poster is not None:
                gig.author = GigAuthor(
                    id=poster.id,
                    name=poster.full_name,
                    avatar_url=poster.avatar_url,
                    type="user",
                )
                continue
            org = orgs.get(gig.posted_by_organization_id)
            if org is not None:
                gig.author = GigAuthor(
                    id=org.id, name=org.name, avatar_url=org.logo_url, type="organization"
                )
        return gigs

    def get_gigs_page(
        self, filters: Optional[GigFilters] = None, limit: int = 20, offset: int = 0
    ) -> Page[Gig]:
        filters = filters or GigFilters()
        stmt = self._filtered_query(filters)
        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                if filters.instruments:
                    rows = [
                        r for r in rows if overlaps(r.instruments_needed, filters.instruments)
                    ]
                if filters.genres:
                    rows = [r for r in rows if overlaps(r.genres, filters.genres)]
                total = len(rows)
                items = self._with_authors(session, rows[offset : offset + limit])
            return Page(items=items, total=total, limit=limit, offset=offset)
        except SQLAlchemyError as exc:
            logger.error("Error fetching gigs: %s", exc)
            raise ServiceError("Failed to fetch gigs") from exc

    def get_gigs(
        self, filters: Optional[GigFilters] = None, limit: int = 20, offset: int = 0
    ) -> list[Gig]:
        return self.get_gigs_page(filters, limit=limit, offset=offset).items

    def get_gig_by_id(self, gig_id: str) -> Optional[Gig]:
        try:
            with self.db.Session() as session:
                row = session.get(GigRow, gig_id)
                if not row:
                    return None
                return self._with_authors(session, [row])[0]
        except SQLAlchemyError as exc:
            logger.error("Error fetching gig: %s", exc)
            return None

    def create_gig(
        self,
        data: Mapping[str, Any],
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> Gig:
        if bool(user_id) == bool(organization_id):
            raise ValueError("A gig is posted by exactly one user or organization")
        values = clean_updates(data, _COLUMNS)
        for key in _SERVER_MANAGED | {"posted_by_user_id", "posted_by_organization_id"}:
            values.pop(key, None)
        now = utcnow()
        try:
            with self.db.Session() as session:
                row = GigRow(
                    **values,
                    id=new_id(),
                    posted_by_user_id=user_id,
                    posted_by_organization_id=organization_id,
                    status="open",
                    is_published=True,
                    published_at=now,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("Gig created: %s", row.title)
                return from_row(Gig, row)
        except SQLAlchemyError as exc:
            logger.error("Error creating gig: %s", exc)
            raise ServiceError("Failed to create gig") from exc

    def update_gig(
        self, gig_id: str, updates: Mapping[str, Any], user_id: Optional[str] = None
    ) -> Optional[Gig]:
        values = clean_updates(updates, _COLUMNS)
        values.pop("posted_by_user_id", None)
        values.pop("posted_by_organization_id", None)
        try:
            with self.db.Session() as session:
                row = session.get(GigRow, gig_id)
                if not row or (user_id is not None and row.posted_by_user_id != user_id):
                    return None
                for key, value in values.items():
                    setattr(row, key, value)
                check_order(row, *_ORDER_RULES)
                row.updated_at = utcnow()
                session.commit()
                session.refresh(row)
                logger.info("Gig updated: %s", row.title)
                return from_row(Gig, row)
        except SQLAlchemyError as exc:
            logger.error("Error updating gig: %s", exc)
            raise ServiceError("Failed to update gig") from exc

    def delete_gig(self, gig_id: str, user_id: Optional[str] = None) -> bool:
        stmt = delete(GigRow).where(GigRow.id == gig_id)
        if user_id is not None:
            stmt = stmt.where(GigRow.posted_by_user_id == user_id)
        try:
            with self.db.Session() as session:
                deleted = session.execute(stmt).rowcount > 0
                session.commit()
                return deleted
        except SQLAlchemyError as exc:
            logger.error("Error deleting gig: %s", exc)
            raise ServiceError("Failed to delete gig") from exc

    def _list(self, stmt, limit: int, offset: int, context: str) -> list[Gig]:
        stmt = stmt.order_by(_newest_first()).offset(offset).limit(limit)
        try:
            with self.db.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return self._with_authors(session, rows)
        except SQLAlchemyError as exc:
            logger.error("Error fetching %s: %s", context, exc)
            raise ServiceError(f"Failed to fetch {context}") from exc

    def get_gigs_by_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[Gig]:
        stmt = select(GigRow).where(GigRow.posted_by_user_id == user_id)
        return self._list(stmt, limit, offset, "user gigs")

    def get_gigs_by_organization(
        self, org_id: str, limit: int = 20, offset: int = 0
    ) -> list[Gig]:
        stmt = select(GigRow).where(GigRow.posted_by_organization_id == org_id)
        return self._list(stmt, limit, offset, "organization gigs")

    def get_gigs_near_location(
        self,
        city: str,
        radius_km: Optional[float] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Gig]:
        # TODO: use radius_km once gigs carry geocoded coordinates.
        stmt = (
            select(GigRow)
            .where(GigRow.status == "open")
            .where(GigRow.is_published.is_(True))
        )
        if city:
            stmt = stmt.where(GigRow.city.ilike(like_pattern(city), escape="\\"))
        return self._list(stmt, limit, offset, "gigs near location")
