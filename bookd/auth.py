"""
Session lookup against the hosted auth provider.

Authentication itself is delegated: the backend only asks the provider who an
access token belongs to, and tells it when a session ends.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    provider_id: Optional[str] = None


class AuthProvider(Protocol):
    """Defines the session operations the API needs from the auth provider."""

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        ...

    def sign_out(self, access_token: str) -> None:
        ...


@dataclass
class InMemoryAuthProvider:
    """Test double that hands out opaque tokens for known users."""

    sessions: dict = field(default_factory=dict)

    def sign_in(self, user: AuthUser) -> str:
        token = uuid.uuid4().hex
        self.sessions[token] = user
        return token

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        return self.sessions.get(access_token)

    def sign_out(self, access_token: str) -> None:
        self.sessions.pop(access_token, None)

    def reset(self) -> None:
        self.sessions.clear()


def _user_from_payload(payload: dict) -> Optional[AuthUser]:
    user_id = payload.get("id")
    if not user_id:
        return None
    metadata = payload.get("user_metadata") or {}
    return AuthUser(
        id=user_id,
        email=payload.get("email") or "",
        full_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
        provider_id=metadata.get("provider_id") or metadata.get("sub"),
    )


@dataclass
class SupabaseAuthClient:
    """
    Resolves access tokens through the Supabase GoTrue REST API.
    """

    url: str
    anon_key: str
    timeout: float = 10.0

    def _headers(self, access_token: str) -> dict:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token}",
        }

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        try:
            response = requests.get(
                f"{self.url.rstrip('/')}/auth/v1/user",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Auth provider unreachable: %s", exc)
            return None
        if response.status_code != 200:
            if response.status_code not in (401, 403):
                logger.error(
                    "Unexpected auth provider response %s", response.status_code
                )
            return None
        try:
            return _user_from_payload(response.json())
        except ValueError as exc:
            logger.error("Invalid auth provider payload: %s", exc)
            return None

    def sign_out(self, access_token: str) -> None:
        try:
            response = requests.post(
                f"{self.url.rstrip('/')}/auth/v1/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
            if response.status_code >= 400:
                logger.warning("Sign-out returned %s", response.status_code)
        except requests.RequestException as exc:
            logger.error("Error signing out: %s", exc)
