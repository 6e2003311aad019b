from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from medibook.api.deps import (
    get_approve_doctor_use_case,
    get_list_pending_doctors_use_case,
    get_notification_center,
    require_roles,
)
from medibook.api.schemas.auth import ProfileResponse
from medibook.api.schemas.profile import PendingDoctorResponse
from medibook.application.use_cases.approve_doctor import ApproveDoctorUseCase
from medibook.application.use_cases.list_pending_doctors import ListPendingDoctorsUseCase
from medibook.domain.entities.user import UserView
from medibook.domain.exceptions import ProfileNotFoundError, ProfileStoreError
from medibook.domain.services import notifications
from medibook.infrastructure.notifications.notification_center import NotificationCenter


router = APIRouter()


@router.get("/admin/doctor-approvals", response_model=list[PendingDoctorResponse])
async def list_doctor_approvals(
    user: UserView = Depends(require_roles("admin")),
    use_case: ListPendingDoctorsUseCase = Depends(get_list_pending_doctors_use_case),
):
    _ = user
    try:
        doctors = await use_case.execute()
    except ProfileStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [
        PendingDoctorResponse(
            user_id=doctor.user_id,
            full_name=doctor.full_name,
            email=doctor.email,
            specialization=doctor.specialization,
        )
        for doctor in doctors
    ]


@router.post("/admin/doctor-approvals/{doctor_user_id}/approve", response_model=ProfileResponse)
async def approve_doctor(
    doctor_user_id: str,
    user: UserView = Depends(require_roles("admin")),
    use_case: ApproveDoctorUseCase = Depends(get_approve_doctor_use_case),
    notification_center: NotificationCenter = Depends(get_notification_center),
):
    _ = user
    try:
        profile = await use_case.execute(doctor_user_id=doctor_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProfileStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    notification_center.notify(notifications.doctor_approved(profile.full_name or profile.email))
    return ProfileResponse.from_domain(profile)
