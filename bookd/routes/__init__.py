"""
HTTP routes for the bookd API.
"""

from __future__ import annotations

from fastapi import APIRouter

from bookd.routes import auth, experience, gigs, musicians, performances, profile
from bookd.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


router.include_router(profile.router)
router.include_router(performances.router)
router.include_router(experience.router)
router.include_router(gigs.router)
router.include_router(musicians.router)
router.include_router(auth.router)
