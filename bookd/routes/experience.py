"""
Experience entry routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bookd.dependencies import get_current_user, get_experience_service
from bookd.records import User
from bookd.schemas import (
    ExperienceEntryCreate,
    ExperienceEntryOut,
    ExperienceEntryUpdate,
    Page,
    ReorderRequest,
    SuccessResponse,
)
from bookd.services import ExperienceService, ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/experience", tags=["experience"])


@router.get("", response_model=Page[ExperienceEntryOut])
def list_experience(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    return service.get_experience_entries_paginated(user.id, limit=limit, offset=offset)


@router.get("/search", response_model=list[ExperienceEntryOut])
def search_experience(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    return service.search_experience_entries(user.id, q, limit=limit)


@router.post("", response_model=ExperienceEntryOut, status_code=201)
def create_experience(
    payload: ExperienceEntryCreate,
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    data = payload.model_dump()
    if data["is_current"]:
        data["end_date"] = None
    try:
        return service.create_experience_entry(user.id, data)
    except ServiceError as exc:
        logger.error("Error creating experience entry: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to create experience entry")


@router.post("/reorder", response_model=SuccessResponse)
def reorder_experience(
    payload: ReorderRequest,
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    if not service.reorder_experience_entries(user.id, payload.entry_ids):
        raise HTTPException(status_code=500, detail="Failed to reorder experience entries")
    return SuccessResponse(success=True, message="Experience entries reordered")


@router.patch("/{entry_id}", response_model=ExperienceEntryOut)
def update_experience(
    entry_id: str,
    payload: ExperienceEntryUpdate,
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("is_current"):
        updates["end_date"] = None
    try:
        entry = service.update_experience_entry(entry_id, updates, user_id=user.id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if entry is None:
        raise HTTPException(status_code=404, detail="Experience entry not found")
    return entry


@router.delete("/{entry_id}", status_code=204)
def delete_experience(
    entry_id: str,
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    if not service.delete_experience_entry(entry_id, user_id=user.id):
        raise HTTPException(status_code=404, detail="Experience entry not found")
    return Response(status_code=204)


@router.post("/{entry_id}/toggle-current", response_model=ExperienceEntryOut)
def toggle_current(
    entry_id: str,
    user: User = Depends(get_current_user),
    service: ExperienceService = Depends(get_experience_service),
):
    entry = service.toggle_current_status(entry_id, user_id=user.id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Experience entry not found")
    return entry
