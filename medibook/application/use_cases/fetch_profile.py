from __future__ import annotations

import asyncio
import logging

from medibook.application.ports.profile_port import ProfilePort
from medibook.domain.entities.role import Role
from medibook.domain.entities.user import Profile
from medibook.domain.exceptions import ProfileFetchError, ProfileNotFoundError, ProfileStoreError
from medibook.domain.services.profiles import profile_table_for_role


logger = logging.getLogger(__name__)


class FetchProfileUseCase:
    def __init__(
        self,
        *,
        profile_port: ProfilePort,
        max_retries: int = 0,
        retry_backoff_ms: int = 250,
    ):
        self._profile_port = profile_port
        self._max_retries = max(max_retries, 0)
        self._retry_backoff_ms = max(retry_backoff_ms, 0)

    async def execute(self, *, identity_id: str, role: Role) -> Profile:
        table = profile_table_for_role(role)
        attempt = 0
        while True:
            try:
                profile = await self._profile_port.get_profile(table=table, identity_id=identity_id)
            except ProfileStoreError as exc:
                if attempt >= self._max_retries:
                    raise ProfileFetchError(str(exc)) from exc
                logger.warning(
                    "fetch_profile: query_failed retrying attempt=%s table=%s user_id=%s error=%s",
                    attempt + 1,
                    table,
                    identity_id,
                    exc,
                )
            else:
                if profile is not None:
                    return profile
                if attempt >= self._max_retries:
                    raise ProfileNotFoundError(f"No {table} row for user {identity_id}.")
                logger.info(
                    "fetch_profile: not_found retrying attempt=%s table=%s user_id=%s",
                    attempt + 1,
                    table,
                    identity_id,
                )
            await asyncio.sleep(self._retry_backoff_ms * (2**attempt) / 1000)
            attempt += 1
