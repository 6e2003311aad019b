from __future__ import annotations

from medibook.domain.entities.role import Role


PROFILE_TABLES: dict[Role, str] = {
    "patient": "patients",
    "doctor": "doctors",
    "admin": "admins",
}


def profile_table_for_role(role: Role) -> str:
    return PROFILE_TABLES[role]
