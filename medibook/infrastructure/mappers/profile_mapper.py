from __future__ import annotations

from datetime import datetime

from medibook.domain.entities.user import Profile


def _parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _optional_str(value) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def map_profile_row(row: dict) -> Profile:
    is_approved = row.get("is_approved")
    return Profile(
        id=str(row.get("id") or ""),
        user_id=str(row.get("user_id") or ""),
        full_name=str(row.get("full_name") or ""),
        email=str(row.get("email") or ""),
        profile_image_url=_optional_str(row.get("profile_image_url")),
        specialization=_optional_str(row.get("specialization")),
        is_approved=bool(is_approved) if is_approved is not None else None,
        updated_at=_parse_timestamp(row.get("updated_at")),
    )
