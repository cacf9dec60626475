"""
Profile completion: which of the six essential profile fields are filled.
"""

from __future__ import annotations

from typing import Optional

from bookd.records import IndividualProfile

COMPLETION_FIELDS = (
    ("stage_name", "Stage Name"),
    ("primary_instrument", "Primary Instrument"),
    ("bio", "Bio"),
    ("location", "Location"),
    ("instruments", "Instruments"),
    ("genres", "Genres"),
)


def missing_fields(profile: Optional[IndividualProfile]) -> list[str]:
    if profile is None:
        return [label for _, label in COMPLETION_FIELDS]
    # Empty strings and empty lists count as missing.
    return [label for name, label in COMPLETION_FIELDS if not getattr(profile, name)]


def completion_percentage(profile: Optional[IndividualProfile]) -> int:
    if profile is None:
        return 0
    total = len(COMPLETION_FIELDS)
    filled = total - len(missing_fields(profile))
    return round(filled / total * 100)


def is_profile_complete(profile: Optional[IndividualProfile]) -> bool:
    return profile is not None and not missing_fields(profile)
