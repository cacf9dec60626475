"""
Gig discovery and posting routes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bookd.dependencies import get_current_user, get_gigs_service
from bookd.records import User
from bookd.schemas import GigCreate, GigOut, GigUpdate, Page
from bookd.services import GigFilters, GigsService, ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gigs", tags=["gigs"])


def split_csv(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def _service_failure(exc: ServiceError, action: str) -> HTTPException:
    logger.error("Error trying to %s: %s", action, exc)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


@router.get("", response_model=Page[GigOut])
def list_gigs(
    instruments: Optional[str] = Query(None, description="Comma-separated instruments"),
    genres: Optional[str] = Query(None, description="Comma-separated genres"),
    compensation_type: Optional[str] = Query(None),
    pay_rate_min: Optional[float] = Query(None, ge=0),
    pay_rate_max: Optional[float] = Query(None, ge=0),
    location: Optional[str] = Query(None),
    gig_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    filters = GigFilters(
        instruments=split_csv(instruments),
        genres=split_csv(genres),
        compensation_type=compensation_type,
        pay_rate_min=pay_rate_min,
        pay_rate_max=pay_rate_max,
        location=location,
        gig_type=gig_type,
        start_date=start_date,
        end_date=end_date,
        status=status,
        search_query=q,
    )
    try:
        return service.get_gigs_page(filters, limit=limit, offset=offset)
    except ServiceError as exc:
        raise _service_failure(exc, "fetch gigs")


@router.get("/mine", response_model=list[GigOut])
def my_gigs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        return service.get_gigs_by_user(user.id, limit=limit, offset=offset)
    except ServiceError as exc:
        raise _service_failure(exc, "fetch your gigs")


@router.get("/near", response_model=list[GigOut])
def gigs_near(
    city: str = Query(..., min_length=1),
    radius_km: Optional[float] = Query(None, gt=0),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        return service.get_gigs_near_location(
            city, radius_km=radius_km, limit=limit, offset=offset
        )
    except ServiceError as exc:
        raise _service_failure(exc, "fetch gigs near location")


@router.get("/organization/{org_id}", response_model=list[GigOut])
def organization_gigs(
    org_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        return service.get_gigs_by_organization(org_id, limit=limit, offset=offset)
    except ServiceError as exc:
        raise _service_failure(exc, "fetch organization gigs")


@router.get("/{gig_id}", response_model=GigOut)
def get_gig(
    gig_id: str,
    _: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    gig = service.get_gig_by_id(gig_id)
    if gig is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    return gig


@router.post("", response_model=GigOut, status_code=201)
def create_gig(
    payload: GigCreate,
    user: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        gig = service.create_gig(payload.model_dump(), user_id=user.id)
    except ServiceError as exc:
        raise _service_failure(exc, "create gig")
    # Re-read so the response carries the resolved author.
    return service.get_gig_by_id(gig.id) or gig


@router.patch("/{gig_id}", response_model=GigOut)
def update_gig(
    gig_id: str,
    payload: GigUpdate,
    user: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        gig = service.update_gig(
            gig_id, payload.model_dump(exclude_unset=True), user_id=user.id
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ServiceError as exc:
        raise _service_failure(exc, "update gig")
    if gig is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    return service.get_gig_by_id(gig.id) or gig


@router.delete("/{gig_id}", status_code=204)
def delete_gig(
    gig_id: str,
    user: User = Depends(get_current_user),
    service: GigsService = Depends(get_gigs_service),
):
    try:
        deleted = service.delete_gig(gig_id, user_id=user.id)
    except ServiceError as exc:
        raise _service_failure(exc, "delete gig")
    if not deleted:
        raise HTTPException(status_code=404, detail="Gig not found")
    return Response(status_code=204)
