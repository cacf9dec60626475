"""
Musician discovery over individual profiles.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bookd.dependencies import get_current_user, get_profiles_service
from bookd.records import User
from bookd.routes.gigs import split_csv
from bookd.schemas import IndividualProfileOut
from bookd.services import IndividualProfilesService

router = APIRouter(prefix="/musicians", tags=["musicians"])


@router.get("", response_model=list[IndividualProfileOut])
def search_musicians(
    q: Optional[str] = Query(None),
    instruments: Optional[str] = Query(None, description="Comma-separated instruments"),
    genres: Optional[str] = Query(None, description="Comma-separated genres"),
    location: Optional[str] = Query(None),
    looking_for_gigs: Optional[bool] = Query(None),
    available_for_hire: Optional[bool] = Query(None),
    verified: Optional[bool] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_user),
    service: IndividualProfilesService = Depends(get_profiles_service),
):
    return service.search_individual_profiles(
        query=q,
        instruments=split_csv(instruments),
        genres=split_csv(genres),
        location=location,
        looking_for_gigs=looking_for_gigs,
        available_for_hire=available_for_hire,
        verified=verified,
        limit=limit,
        offset=offset,
    )
