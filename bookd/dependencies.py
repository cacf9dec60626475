"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookd.auth import AuthProvider, InMemoryAuthProvider, SupabaseAuthClient
from bookd.config import IN_MEMORY_DATABASE_URL, get_settings
from bookd.db import Database
from bookd.media import CloudinaryMediaHost, InMemoryMediaHost, MediaHost, S3MediaHost
from bookd.records import User
from bookd.services import (
    ExperienceService,
    GigsService,
    IndividualProfilesService,
    PerformancesService,
    UsersService,
)

logger = logging.getLogger(__name__)

_database: Database | None = None
_media_host: MediaHost | None = None
_auth_provider: AuthProvider | None = None

_bearer = HTTPBearer(auto_error=False)


def get_database() -> Database:
    """
    Return a singleton database client so in-memory state persists across requests.
    """
    global _database
    if _database:
        return _database

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _database = Database(IN_MEMORY_DATABASE_URL)
    else:
        _database = Database(settings.database_url)
    return _database


def get_media_host() -> MediaHost:
    global _media_host
    if _media_host:
        return _media_host

    settings = get_settings()
    if settings.use_in_memory_backends:
        _media_host = InMemoryMediaHost()
    elif settings.cloudinary_cloud_name:
        _media_host = CloudinaryMediaHost(
            cloud_name=settings.cloudinary_cloud_name,
            upload_preset=settings.cloudinary_upload_preset,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout=settings.upload_timeout_seconds,
        )
    elif settings.media_bucket:
        _media_host = S3MediaHost(
            bucket=settings.media_bucket,
            region=settings.media_region or "",
            endpoint=settings.media_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.media_public_base_url,
        )
    else:
        _media_host = InMemoryMediaHost()
    return _media_host


def get_auth_provider() -> AuthProvider:
    global _auth_provider
    if _auth_provider:
        return _auth_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.supabase_url:
        _auth_provider = InMemoryAuthProvider()
    else:
        _auth_provider = SupabaseAuthClient(
            url=settings.supabase_url,
            anon_key=settings.supabase_anon_key or "",
            timeout=settings.auth_timeout_seconds,
        )
    return _auth_provider


def get_profiles_service(db: Database = Depends(get_database)) -> IndividualProfilesService:
    return IndividualProfilesService(db)


def get_users_service(db: Database = Depends(get_database)) -> UsersService:
    return UsersService(db)


def get_experience_service(db: Database = Depends(get_database)) -> ExperienceService:
    return ExperienceService(db)


def get_performances_service(db: Database = Depends(get_database)) -> PerformancesService:
    return PerformancesService(db)


def get_gigs_service(db: Database = Depends(get_database)) -> GigsService:
    return GigsService(db)


def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_access_token),
    auth: AuthProvider = Depends(get_auth_provider),
    users: UsersService = Depends(get_users_service),
) -> User:
    """
    Resolve the session behind the bearer token, creating the user's rows on
    first sight.
    """
    auth_user = auth.get_user(token)
    if auth_user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = users.ensure_user(auth_user)
    if user is None:
        logger.error("Could not load user row for %s", auth_user.id)
        raise HTTPException(status_code=500, detail="Failed to load user")
    return user
