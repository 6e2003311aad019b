from __future__ import annotations

import logging
from typing import Awaitable, Callable

import httpx

from medibook.domain.entities.user import Profile
from medibook.domain.exceptions import ProfileNotFoundError, ProfileStoreError
from medibook.infrastructure.clients.supabase_auth_client import extract_error_message
from medibook.infrastructure.mappers.profile_mapper import map_profile_row


logger = logging.getLogger(__name__)

AccessTokenProvider = Callable[[], Awaitable[str | None]]


def format_filter_value(value) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{'true' if value else 'false'}"
    return f"eq.{value}"


class SupabaseRestBase:
    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        access_token_provider: AccessTokenProvider,
        http_client: httpx.AsyncClient,
    ):
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._access_token_provider = access_token_provider
        self._http = http_client

    async def _auth_headers(self) -> dict[str, str]:
        token = await self._access_token_provider()
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token or self._anon_key}",
        }


class SupabaseProfileRepository(SupabaseRestBase):
    async def get_profile(self, *, table: str, identity_id: str) -> Profile | None:
        rows = await self._send(
            "GET",
            table,
            params={"select": "*", "user_id": format_filter_value(identity_id)},
        )
        if not rows:
            return None
        if len(rows) > 1:
            raise ProfileStoreError(f"Expected one {table} row for user {identity_id}, got {len(rows)}.")
        return map_profile_row(rows[0])

    async def update_profile(self, *, table: str, identity_id: str, fields: dict) -> Profile:
        rows = await self._send(
            "PATCH",
            table,
            params={"user_id": format_filter_value(identity_id)},
            json=fields,
            prefer="return=representation",
        )
        if not rows:
            raise ProfileNotFoundError(f"No {table} row for user {identity_id}.")
        logger.info(
            "supabase_profile_repository: updated table=%s user_id=%s fields=%s",
            table,
            identity_id,
            sorted(fields),
        )
        return map_profile_row(rows[0])

    async def list_profiles(self, *, table: str, filters: dict) -> list[Profile]:
        params = {"select": "*"}
        for column, value in filters.items():
            params[column] = format_filter_value(value)
        rows = await self._send("GET", table, params=params)
        return [map_profile_row(row) for row in rows]

    async def _send(
        self,
        method: str,
        table: str,
        *,
        params: dict,
        json: dict | None = None,
        prefer: str | None = None,
    ) -> list[dict]:
        headers = await self._auth_headers()
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}/rest/v1/{table}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise ProfileStoreError(f"Data service unavailable: {exc}") from exc

        if response.status_code >= 400:
            raise ProfileStoreError(extract_error_message(response))
        payload = response.json() if response.content else []
        if isinstance(payload, dict):
            return [payload]
        return [row for row in payload if isinstance(row, dict)]
