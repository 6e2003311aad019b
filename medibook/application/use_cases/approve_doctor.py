from __future__ import annotations

from datetime import datetime, timezone

from medibook.application.ports.profile_port import ProfilePort
from medibook.domain.entities.user import Profile
from medibook.domain.services.profiles import profile_table_for_role


class ApproveDoctorUseCase:
    def __init__(self, *, profile_port: ProfilePort):
        self._profile_port = profile_port

    async def execute(self, *, doctor_user_id: str) -> Profile:
        user_id = doctor_user_id.strip()
        if not user_id:
            raise ValueError("doctor_user_id is required.")
        return await self._profile_port.update_profile(
            table=profile_table_for_role("doctor"),
            identity_id=user_id,
            fields={
                "is_approved": True,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
