from __future__ import annotations

from dataclasses import dataclass

from medibook.domain.entities.notification import Notification
from medibook.domain.entities.user import UserView


@dataclass(frozen=True)
class RegisterInput:
    name: str
    email: str
    password: str
    role: str
    specialization: str | None = None
    confirm_password: str | None = None


@dataclass(frozen=True)
class AuthOperationResult:
    ok: bool
    notification: Notification | None
    user: UserView | None = None
    redirect_to: str | None = None
