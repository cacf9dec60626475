"""
Stateful operations that coordinate a service call with loading, error and
success flags, so callers can report progress the same way for every flow.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from bookd.media import MediaHost, UploadError, validate_image
from bookd.records import IndividualProfile, User
from bookd.services import IndividualProfilesService, ServiceError, UsersService

logger = logging.getLogger(__name__)

PROFILE_IMAGE_TAGS = ("profile", "avatar")


@dataclass
class OperationState:
    loading: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
    success: bool = False
    progress: int = 0

    def start(self) -> None:
        self.loading = True
        self.error = None
        self.error_code = None
        self.success = False
        self.progress = 0

    def succeed(self, progress: Optional[int] = None) -> None:
        self.loading = False
        self.error = None
        self.error_code = None
        self.success = True
        if progress is not None:
            self.progress = progress

    def fail(self, message: str, code: Optional[str] = None) -> None:
        self.loading = False
        self.error = message
        self.error_code = code
        self.success = False
        self.progress = 0

    def clear_error(self) -> None:
        self.error = None
        self.error_code = None

    def clear_success(self) -> None:
        self.success = False

    def reset(self) -> None:
        self.loading = False
        self.clear_error()
        self.success = False
        self.progress = 0


USER_FIELDS = frozenset({"full_name", "avatar_url"})


class ProfileUpdate:
    """
    Validates and applies changes to the current user's profile. ``full_name``
    and ``avatar_url`` go to the users row, everything else to the individual
    profile.
    """

    def __init__(
        self, profiles: IndividualProfilesService, users: Optional[UsersService] = None
    ):
        self.profiles = profiles
        self.users = users
        self.state = OperationState()

    def _update_user(self, user_id: str, updates: Mapping[str, Any]) -> bool:
        if not updates:
            return True
        if self.users is None:
            logger.error("No users service to apply %s", sorted(updates))
            return False
        return self.users.update_user(user_id, updates) is not None

    def run(
        self,
        user_id: str,
        updates: Mapping[str, Any],
        on_success: Optional[Callable[[IndividualProfile], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> Optional[IndividualProfile]:
        self.state.start()
        message = None
        profile = None
        user_updates = {k: v for k, v in updates.items() if k in USER_FIELDS}
        profile_updates = {k: v for k, v in updates.items() if k not in USER_FIELDS}

        if updates.get("instruments") is not None and len(updates["instruments"]) == 0:
            message = "At least one instrument is required"
        elif updates.get("genres") is not None and len(updates["genres"]) == 0:
            message = "At least one genre is required"
        elif "full_name" in user_updates and not (user_updates["full_name"] or "").strip():
            message = "Full name is required"
        elif not self._update_user(user_id, user_updates):
            message = "Failed to update profile"
        else:
            try:
                profile = self.profiles.update_individual_profile(user_id, profile_updates)
            except ServiceError as exc:
                logger.error("Error updating profile: %s", exc)
            if profile is None:
                message = "Failed to update profile"

        if message:
            self.state.fail(message)
            if on_error:
                on_error(message)
            return None

        profile = self.profiles.update_profile_completion_status(user_id) or profile
        self.state.succeed()
        if on_success:
            on_success(profile)
        return profile


def public_id_from_url(url: str) -> str:
    """Best-effort public id for avatars stored before public ids were recorded."""
    last_segment = url.rstrip("/").split("/")[-1]
    return last_segment.split(".")[0]


class ProfilePictureUpload:
    """Uploads, persists and removes a user's profile picture."""

    def __init__(self, media: MediaHost, users: UsersService, folder: str = "bookd/profiles"):
        self.media = media
        self.users = users
        self.folder = folder
        self.state = OperationState()

    def _report_progress(self, percent: int) -> None:
        self.state.progress = percent

    def upload(
        self,
        user: User,
        content: bytes,
        content_type: Optional[str],
        filename: Optional[str] = None,
    ) -> Optional[str]:
        self.state.start()
        try:
            validation = validate_image(content, content_type)
            if not validation.valid:
                raise UploadError(validation.error or "Invalid file", "INVALID_FILE")

            public_id = f"profile_{user.id}_{int(time.time() * 1000)}"
            result = self.media.upload_image(
                content,
                filename=filename or "avatar",
                content_type=content_type,
                public_id=public_id,
                folder=self.folder,
                tags=[*PROFILE_IMAGE_TAGS, user.id],
                on_progress=self._report_progress,
            )
            if self.users.update_avatar(user.id, result.secure_url, result.public_id) is None:
                raise RuntimeError("Failed to update profile with new avatar")
        except UploadError as exc:
            logger.error("Profile picture upload error: %s", exc)
            self.state.fail(exc.message, exc.code)
            return None
        except RuntimeError as exc:
            logger.error("Profile picture upload error: %s", exc)
            self.state.fail("Failed to upload profile picture")
            return None

        self.state.succeed(progress=100)
        return result.secure_url

    def delete(self, user: User) -> bool:
        if not user.avatar_url:
            self.state.fail("No profile picture to delete")
            return False

        self.state.start()
        public_id = user.avatar_public_id or public_id_from_url(user.avatar_url)
        if not self.media.delete_image(public_id):
            logger.warning("Image %s was not removed from the host", public_id)

        if self.users.update_avatar(user.id, None, None) is None:
            self.state.fail("Failed to remove avatar from profile")
            return False
        self.state.succeed(progress=0)
        return True
