from __future__ import annotations

from typing import Literal


Role = Literal["patient", "doctor", "admin"]

ROLES: tuple[Role, ...] = ("patient", "doctor", "admin")


def parse_role(value: object) -> Role | None:
    """Returns the role for a metadata value, or None when it is not one."""
    if not isinstance(value, str):
        return None
    candidate = value.strip().lower()
    for role in ROLES:
        if candidate == role:
            return role
    return None
