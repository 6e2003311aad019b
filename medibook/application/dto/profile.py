from __future__ import annotations

from dataclasses import dataclass

from medibook.domain.entities.notification import Notification
from medibook.domain.entities.user import Profile


@dataclass(frozen=True)
class ProfileImageUpload:
    filename: str
    content: bytes
    content_type: str


@dataclass(frozen=True)
class UpdateProfileInput:
    full_name: str
    specialization: str | None = None
    profile_image: ProfileImageUpload | None = None


@dataclass(frozen=True)
class ProfileUpdateResult:
    ok: bool
    notification: Notification
    profile: Profile | None = None
