"""
Session routes. Sign-in happens against the auth provider directly.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from bookd.auth import AuthProvider
from bookd.dependencies import get_access_token, get_auth_provider

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signout", status_code=204)
def sign_out(
    token: str = Depends(get_access_token),
    auth: AuthProvider = Depends(get_auth_provider),
):
    auth.sign_out(token)
    return Response(status_code=204)
