from __future__ import annotations

from typing import Protocol

from medibook.domain.entities.user import Profile


class ProfilePort(Protocol):
    async def get_profile(self, *, table: str, identity_id: str) -> Profile | None:
        ...

    async def update_profile(self, *, table: str, identity_id: str, fields: dict) -> Profile:
        ...

    async def list_profiles(self, *, table: str, filters: dict) -> list[Profile]:
        ...
