"""
Profile routes: the signed-in user's profile, public profiles and avatars.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from bookd.completion import completion_percentage, is_profile_complete, missing_fields
from bookd.config import get_settings
from bookd.dependencies import (
    get_current_user,
    get_experience_service,
    get_media_host,
    get_performances_service,
    get_profiles_service,
    get_users_service,
)
from bookd.media import MediaHost
from bookd.records import User
from bookd.schemas import (
    AvatarUpdateRequest,
    AvatarUploadResponse,
    DeleteImageRequest,
    IndividualProfileOut,
    IndividualProfileUpdate,
    ProfileResponse,
    PublicProfileResponse,
    SuccessResponse,
)
from bookd.services import (
    ExperienceService,
    IndividualProfilesService,
    PerformancesService,
    UsersService,
)
from bookd.workflows import ProfilePictureUpload, ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])

# Upload failures that come from the image itself rather than the host.
_CLIENT_UPLOAD_ERRORS = {None, "INVALID_FILE"}


@router.get("", response_model=ProfileResponse)
def get_profile(
    user: User = Depends(get_current_user),
    profiles: IndividualProfilesService = Depends(get_profiles_service),
):
    profile = profiles.get_or_create_individual_profile(user.id)
    return ProfileResponse(
        user=user.as_dict(),
        individual_profile=profile.as_dict() if profile else None,
        completion_percentage=completion_percentage(profile),
        missing_fields=missing_fields(profile),
        is_complete=is_profile_complete(profile),
    )


@router.patch("", response_model=IndividualProfileOut)
def update_profile(
    payload: IndividualProfileUpdate,
    user: User = Depends(get_current_user),
    profiles: IndividualProfilesService = Depends(get_profiles_service),
    users: UsersService = Depends(get_users_service),
):
    workflow = ProfileUpdate(profiles, users)
    profile = workflow.run(user.id, payload.model_dump(exclude_unset=True))
    if profile is None:
        raise HTTPException(status_code=400, detail=workflow.state.error)
    return profile


@router.post("/update-avatar", response_model=SuccessResponse)
def update_avatar(
    payload: AvatarUpdateRequest,
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
):
    if users.update_avatar(user.id, payload.avatar_url, payload.public_id) is None:
        raise HTTPException(status_code=500, detail="Failed to update avatar")
    return SuccessResponse(success=True, message="Avatar updated successfully")


@router.post("/delete-image", response_model=SuccessResponse)
def delete_image(
    payload: DeleteImageRequest,
    user: User = Depends(get_current_user),
    media: MediaHost = Depends(get_media_host),
):
    if not payload.public_id:
        raise HTTPException(status_code=400, detail="Public ID is required")
    # The avatar reference is cleared separately, so a failed host delete is not fatal.
    if not media.delete_image(payload.public_id):
        logger.warning("Image host deletion failed for %s", payload.public_id)
    return SuccessResponse(success=True, message="Image deleted successfully")


@router.post("/avatar", response_model=AvatarUploadResponse, status_code=201)
def upload_avatar(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
    media: MediaHost = Depends(get_media_host),
):
    content = file.file.read()
    workflow = ProfilePictureUpload(media, users, folder=get_settings().profile_image_folder)
    avatar_url = workflow.upload(user, content, file.content_type, file.filename)
    if avatar_url is None:
        status = 400 if workflow.state.error_code in _CLIENT_UPLOAD_ERRORS else 502
        raise HTTPException(status_code=status, detail=workflow.state.error)
    return AvatarUploadResponse(avatar_url=avatar_url, progress=workflow.state.progress)


@router.delete("/avatar", response_model=SuccessResponse)
def delete_avatar(
    user: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
    media: MediaHost = Depends(get_media_host),
):
    workflow = ProfilePictureUpload(media, users)
    if not workflow.delete(user):
        status = 404 if not user.avatar_url else 500
        raise HTTPException(status_code=status, detail=workflow.state.error)
    return SuccessResponse(success=True, message="Profile picture removed")


@router.get("/{user_id}", response_model=PublicProfileResponse)
def get_public_profile(
    user_id: str,
    _: User = Depends(get_current_user),
    users: UsersService = Depends(get_users_service),
    experience: ExperienceService = Depends(get_experience_service),
    performances: PerformancesService = Depends(get_performances_service),
):
    found = users.get_user_with_profile(user_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return PublicProfileResponse(
        user=found.user.as_dict(),
        individual_profile=(
            found.individual_profile.as_dict() if found.individual_profile else None
        ),
        experience=[e.as_dict() for e in experience.get_experience_entries(user_id)],
        performances=[p.as_dict() for p in performances.get_past_performances(user_id)],
    )
