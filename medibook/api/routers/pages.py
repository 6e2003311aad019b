from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException

from medibook.api.deps import get_auth_session_manager, require_path_role, require_roles
from medibook.api.schemas.auth import NotificationResponse, ProfileResponse, UserViewResponse
from medibook.api.schemas.profile import UpdateProfileRequest, UpdateProfileResponse
from medibook.application.dto.profile import ProfileImageUpload, UpdateProfileInput
from medibook.application.services.auth_session_manager import AuthSessionManager
from medibook.domain.entities.user import UserView


router = APIRouter()

PENDING_APPROVAL_MESSAGE = "Your doctor account is pending approval by an administrator."


def _page(name: str, user: UserView) -> dict:
    return {"page": name, "user": UserViewResponse.from_domain(user)}


@router.get("/login")
async def login_page(
    status: str | None = None,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    user = manager.user
    return {
        "page": "login",
        "message": PENDING_APPROVAL_MESSAGE if status == "pending-approval" else None,
        "user": UserViewResponse.from_domain(user) if user is not None else None,
    }


@router.get("/patient")
async def patient_dashboard(user: UserView = Depends(require_roles("patient"))):
    return _page("patient_dashboard", user)


@router.get("/doctor")
async def doctor_dashboard(user: UserView = Depends(require_roles("doctor"))):
    return _page("doctor_dashboard", user)


@router.get("/admin")
async def admin_dashboard(user: UserView = Depends(require_roles("admin"))):
    return _page("admin_dashboard", user)


@router.get("/{role}/profile")
async def profile_settings(user: UserView = Depends(require_path_role)):
    return _page(f"{user.role}_profile", user)


@router.put("/{role}/profile", response_model=UpdateProfileResponse)
async def update_profile(
    req: UpdateProfileRequest,
    user: UserView = Depends(require_path_role),
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    _ = user
    image = None
    if req.profile_image is not None:
        try:
            content = base64.b64decode(req.profile_image.data_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=400, detail="profile_image.data_base64 is not valid base64.") from exc
        image = ProfileImageUpload(
            filename=req.profile_image.filename,
            content=content,
            content_type=req.profile_image.content_type,
        )

    result = await manager.update_profile(
        UpdateProfileInput(
            full_name=req.full_name,
            specialization=req.specialization,
            profile_image=image,
        )
    )
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.notification.description)
    return UpdateProfileResponse(
        ok=True,
        notification=NotificationResponse.from_domain(result.notification),
        profile=ProfileResponse.from_domain(result.profile),
    )
