from __future__ import annotations

from typing import Protocol


class ProfileImagePort(Protocol):
    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str:
        ...
