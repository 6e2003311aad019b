from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from medibook.domain.entities.role import Role


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str
    expires_at: datetime
    identity: Identity


@dataclass(frozen=True)
class Profile:
    id: str
    user_id: str
    full_name: str
    email: str
    profile_image_url: str | None
    specialization: str | None = None
    is_approved: bool | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class UserView:
    identity: Identity
    role: Role | None
    profile: Profile | None

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def email(self) -> str:
        return self.identity.email

    @property
    def display_name(self) -> str:
        if self.profile is not None and self.profile.full_name:
            return self.profile.full_name
        return self.identity.email
