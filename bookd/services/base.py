"""
Shared plumbing for the per-entity services.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import or_

from bookd.db import Database

PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


class ServiceError(Exception):
    """Raised where a service surfaces a database failure to its caller."""


def like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def ilike_any(query: str, *columns):
    pattern = like_pattern(query)
    return or_(*(column.ilike(pattern, escape="\\") for column in columns))


def overlaps(values: Iterable[str] | None, wanted: Iterable[str]) -> bool:
    if not values:
        return False
    return bool(set(values) & set(wanted))


def clean_updates(updates: Mapping[str, Any], allowed: Iterable[str]) -> dict:
    """Keep writable columns only; ``updated_at`` is always stamped by the service."""
    allowed = set(allowed) - PROTECTED_FIELDS - {"updated_at"}
    return {key: value for key, value in updates.items() if key in allowed}


def check_order(row, *rules: tuple[str, str, str]) -> None:
    """Raise ValueError when a merged row breaks a (low, high, message) ordering rule."""
    for low_field, high_field, message in rules:
        low, high = getattr(row, low_field), getattr(row, high_field)
        if low is not None and high is not None and high < low:
            raise ValueError(message)


class BaseService:
    """Holds the database client every service wraps."""

    def __init__(self, db: Database):
        self.db = db
