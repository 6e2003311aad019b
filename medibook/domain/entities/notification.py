from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


NotificationKind = Literal[
    "login_success",
    "login_failure",
    "login_role_missing",
    "register_success_patient",
    "register_success_doctor_pending",
    "register_failure",
    "logout_success",
    "logout_failure",
    "profile_not_found",
    "profile_fetch_error",
    "profile_updated",
    "profile_update_failure",
    "not_authenticated",
    "doctor_approved",
]

NotificationVariant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    description: str
    variant: NotificationVariant = "default"
