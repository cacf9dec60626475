"""
Past performance routes.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bookd.dependencies import get_current_user, get_performances_service
from bookd.records import User
from bookd.schemas import (
    Page,
    PastPerformanceCreate,
    PastPerformanceOut,
    PastPerformanceUpdate,
    PerformanceStatsOut,
)
from bookd.services import PerformancesService

router = APIRouter(prefix="/performances", tags=["performances"])


@router.get("", response_model=Page[PastPerformanceOut])
def list_performances(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    return service.get_past_performances_paginated(user.id, limit=limit, offset=offset)


@router.get("/search", response_model=list[PastPerformanceOut])
def search_performances(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    return service.search_past_performances(user.id, q, limit=limit)


@router.get("/stats", response_model=PerformanceStatsOut)
def performance_stats(
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    return service.get_performance_stats(user.id)


@router.get("/recent", response_model=list[PastPerformanceOut])
def recent_performances(
    genre: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: PerformancesService = Depends(get_performances_service),
):
    """Public feed of performances across all musicians."""
    return service.get_recent_performances(
        genre=genre, start_date=start_date, end_date=end_date, limit=limit, offset=offset
    )


@router.get("/{performance_id}", response_model=PastPerformanceOut)
def get_performance(
    performance_id: str,
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    performance = service.get_past_performance(performance_id)
    if not performance or performance.user_id != user.id:
        raise HTTPException(status_code=404, detail="Performance not found")
    return performance


@router.post("", response_model=PastPerformanceOut, status_code=201)
def create_performance(
    payload: PastPerformanceCreate,
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    performance = service.create_past_performance(user.id, payload.model_dump())
    if performance is None:
        raise HTTPException(status_code=500, detail="Failed to create performance")
    return performance


@router.patch("/{performance_id}", response_model=PastPerformanceOut)
def update_performance(
    performance_id: str,
    payload: PastPerformanceUpdate,
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    performance = service.update_past_performance(
        performance_id, payload.model_dump(exclude_unset=True), user_id=user.id
    )
    if performance is None:
        raise HTTPException(status_code=404, detail="Performance not found")
    return performance


@router.delete("/{performance_id}", status_code=204)
def delete_performance(
    performance_id: str,
    user: User = Depends(get_current_user),
    service: PerformancesService = Depends(get_performances_service),
):
    if not service.delete_past_performance(performance_id, user_id=user.id):
        raise HTTPException(status_code=404, detail="Performance not found")
    return Response(status_code=204)
