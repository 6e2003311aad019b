from __future__ import annotations

import logging

import httpx

from medibook.domain.exceptions import ProfileImageUploadError
from medibook.infrastructure.clients.supabase_auth_client import extract_error_message
from medibook.infrastructure.clients.supabase_rest_client import SupabaseRestBase


logger = logging.getLogger(__name__)


class SupabaseStorageClient(SupabaseRestBase):
    def public_url(self, *, bucket: str, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{bucket}/{path}"

    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str:
        headers = await self._auth_headers()
        headers.update(
            {
                "Content-Type": content_type,
                "Cache-Control": "max-age=3600",
                "x-upsert": "true",
            }
        )
        try:
            response = await self._http.post(
                f"{self._base_url}/storage/v1/object/{bucket}/{path}",
                content=content,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise ProfileImageUploadError(f"Storage service unavailable: {exc}") from exc

        if response.status_code >= 400:
            raise ProfileImageUploadError(extract_error_message(response))
        logger.info(
            "supabase_storage_client: uploaded bucket=%s path=%s bytes=%s",
            bucket,
            path,
            len(content),
        )
        return self.public_url(bucket=bucket, path=path)
