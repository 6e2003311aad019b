from __future__ import annotations

from typing import Callable, Literal, Protocol

from medibook.domain.entities.user import Session


SessionEvent = Literal["SIGNED_IN", "SIGNED_OUT", "TOKEN_REFRESHED", "USER_UPDATED"]

SessionChangeCallback = Callable[[SessionEvent, Session | None], None]


class AuthPort(Protocol):
    async def verify_credentials(self, *, email: str, password: str) -> Session:
        ...

    async def create_identity(self, *, email: str, password: str, metadata: dict) -> Session | None:
        ...

    async def invalidate_session(self) -> None:
        ...

    async def get_current_session(self) -> Session | None:
        ...

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        ...
