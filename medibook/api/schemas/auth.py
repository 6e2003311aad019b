from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from medibook.domain.entities.notification import Notification
from medibook.domain.entities.user import Profile, UserView


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)
    confirm_password: str | None = Field(default=None, max_length=256)
    role: Literal["patient", "doctor", "admin"]
    specialization: str | None = Field(default=None, max_length=120)


class NotificationResponse(BaseModel):
    kind: str
    title: str
    description: str
    variant: str

    @classmethod
    def from_domain(cls, notification: Notification) -> NotificationResponse:
        return cls(
            kind=notification.kind,
            title=notification.title,
            description=notification.description,
            variant=notification.variant,
        )


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    full_name: str
    email: str
    profile_image_url: str | None
    specialization: str | None
    is_approved: bool | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, profile: Profile) -> ProfileResponse:
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            full_name=profile.full_name,
            email=profile.email,
            profile_image_url=profile.profile_image_url,
            specialization=profile.specialization,
            is_approved=profile.is_approved,
            updated_at=profile.updated_at,
        )


class UserViewResponse(BaseModel):
    id: str
    email: str
    name: str
    app_role: str | None
    profile: ProfileResponse | None

    @classmethod
    def from_domain(cls, user: UserView) -> UserViewResponse:
        return cls(
            id=user.id,
            email=user.email,
            name=user.display_name,
            app_role=user.role,
            profile=ProfileResponse.from_domain(user.profile) if user.profile is not None else None,
        )


class AuthResultResponse(BaseModel):
    ok: bool
    notification: NotificationResponse | None
    user: UserViewResponse | None = None
    redirect_to: str | None = None


class SessionResponse(BaseModel):
    state: str
    loading: bool
    user: UserViewResponse | None
