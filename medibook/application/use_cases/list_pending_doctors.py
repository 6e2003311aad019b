from __future__ import annotations

from medibook.application.ports.profile_port import ProfilePort
from medibook.domain.entities.user import Profile
from medibook.domain.services.profiles import profile_table_for_role


class ListPendingDoctorsUseCase:
    def __init__(self, *, profile_port: ProfilePort):
        self._profile_port = profile_port

    async def execute(self) -> list[Profile]:
        profiles = await self._profile_port.list_profiles(
            table=profile_table_for_role("doctor"),
            filters={"is_approved": False},
        )
        return [profile for profile in profiles if profile.is_approved is False]
