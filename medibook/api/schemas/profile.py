from __future__ import annotations

from pydantic import BaseModel, Field

from medibook.api.schemas.auth import NotificationResponse, ProfileResponse


class ProfileImageRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=120)
    data_base64: str = Field(..., min_length=1)


class UpdateProfileRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120)
    specialization: str | None = Field(default=None, max_length=120)
    profile_image: ProfileImageRequest | None = None


class UpdateProfileResponse(BaseModel):
    ok: bool
    notification: NotificationResponse
    profile: ProfileResponse | None = None


class PendingDoctorResponse(BaseModel):
    user_id: str
    full_name: str
    email: str
    specialization: str | None
