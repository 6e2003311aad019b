from __future__ import annotations

import asyncio
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Callable

from medibook.application.services.auth_session_manager import AuthSessionManager
from medibook.application.use_cases.fetch_profile import FetchProfileUseCase
from medibook.application.use_cases.update_profile import UpdateProfileUseCase
from medibook.domain.entities.notification import Notification
from medibook.domain.entities.role import parse_role
from medibook.domain.entities.user import Identity, Profile, Session
from medibook.domain.exceptions import (
    AuthServiceError,
    InvalidCredentialsError,
    ProfileNotFoundError,
    ProfileStoreError,
)
from medibook.domain.services.profiles import profile_table_for_role
from medibook.infrastructure.mappers.profile_mapper import map_profile_row


def make_session(identity: Identity) -> Session:
    return Session(
        access_token=f"access-{identity.id}",
        refresh_token=f"refresh-{identity.id}",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        identity=identity,
    )


def make_profile(
    *,
    user_id: str,
    full_name: str,
    email: str,
    specialization: str | None = None,
    is_approved: bool | None = None,
) -> Profile:
    return Profile(
        id=f"profile-{user_id}",
        user_id=user_id,
        full_name=full_name,
        email=email,
        profile_image_url=None,
        specialization=specialization,
        is_approved=is_approved,
        updated_at=None,
    )


async def wait_for(predicate: Callable[[], bool], *, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was not reached")


class FakeProfileStore:
    def __init__(self):
        self.rows: dict[tuple[str, str], Profile] = {}
        self.failures: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def put(self, table: str, profile: Profile) -> None:
        self.rows[(table, profile.user_id)] = profile

    async def get_profile(self, *, table: str, identity_id: str) -> Profile | None:
        self.calls.append((table, identity_id))
        await asyncio.sleep(0)
        if identity_id in self.failures:
            raise ProfileStoreError(self.failures[identity_id])
        return self.rows.get((table, identity_id))

    async def update_profile(self, *, table: str, identity_id: str, fields: dict) -> Profile:
        await asyncio.sleep(0)
        current = self.rows.get((table, identity_id))
        if current is None:
            raise ProfileNotFoundError(f"No {table} row for user {identity_id}.")
        row = asdict(current)
        row.update(fields)
        updated = map_profile_row(row)
        self.rows[(table, identity_id)] = updated
        return updated

    async def list_profiles(self, *, table: str, filters: dict) -> list[Profile]:
        await asyncio.sleep(0)
        return [
            profile
            for (row_table, _), profile in self.rows.items()
            if row_table == table
            and all(getattr(profile, column) == value for column, value in filters.items())
        ]


class FakeAuthService:
    def __init__(self, *, profile_store: FakeProfileStore | None = None):
        self.accounts: dict[str, tuple[str, Identity]] = {}
        self.current: Session | None = None
        self.listeners: list = []
        self.logout_error: str | None = None
        self.invalidate_calls = 0
        self._profile_store = profile_store

    def add_account(self, *, user_id: str, email: str, password: str, metadata: dict) -> Identity:
        identity = Identity(id=user_id, email=email, metadata=dict(metadata))
        self.accounts[email] = (password, identity)
        return identity

    async def verify_credentials(self, *, email: str, password: str) -> Session:
        await asyncio.sleep(0)
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise InvalidCredentialsError("Invalid login credentials", status_code=400)
        session = make_session(account[1])
        self.current = session
        self.emit("SIGNED_IN", session)
        return session

    async def create_identity(self, *, email: str, password: str, metadata: dict) -> Session | None:
        await asyncio.sleep(0)
        if email in self.accounts:
            raise AuthServiceError("User already registered", status_code=422)
        identity = self.add_account(
            user_id=f"user-{len(self.accounts) + 1}",
            email=email,
            password=password,
            metadata=metadata,
        )
        # Stands in for the server-side trigger that creates the profile row.
        role = parse_role(metadata.get("role"))
        if self._profile_store is not None and role is not None:
            self._profile_store.put(
                profile_table_for_role(role),
                make_profile(
                    user_id=identity.id,
                    full_name=metadata.get("full_name", ""),
                    email=email,
                    specialization=metadata.get("specialization"),
                    is_approved=False if role == "doctor" else None,
                ),
            )
        return None

    async def invalidate_session(self) -> None:
        await asyncio.sleep(0)
        self.invalidate_calls += 1
        if self.logout_error is not None:
            raise AuthServiceError(self.logout_error, status_code=500)
        had_session = self.current is not None
        self.current = None
        if had_session:
            self.emit("SIGNED_OUT", None)

    async def get_current_session(self) -> Session | None:
        await asyncio.sleep(0)
        return self.current

    def on_session_change(self, callback):
        self.listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self.listeners:
                self.listeners.remove(callback)

        return _unsubscribe

    def emit(self, event: str, session: Session | None) -> None:
        for callback in list(self.listeners):
            callback(event, session)


class FakeImageStorage:
    def __init__(self):
        self.uploads: list[tuple[str, str, bytes, str]] = []

    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str:
        self.uploads.append((bucket, path, content, content_type))
        return f"https://cdn.example.com/{bucket}/{path}"


class RecordingNotifier:
    def __init__(self):
        self.items: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.items.append(notification)

    @property
    def kinds(self) -> list[str]:
        return [item.kind for item in self.items]


def seed_demo_accounts(
    auth_service: FakeAuthService,
    profile_store: FakeProfileStore,
    *,
    doctor_approved: bool = False,
) -> None:
    auth_service.add_account(
        user_id="1",
        email="patient@example.com",
        password="password123",
        metadata={"role": "patient", "full_name": "John Patient"},
    )
    profile_store.put(
        "patients",
        make_profile(user_id="1", full_name="John Patient", email="patient@example.com"),
    )
    auth_service.add_account(
        user_id="2",
        email="doctor@example.com",
        password="password123",
        metadata={"role": "doctor", "full_name": "Dr. Sarah Smith", "specialization": "Cardiology"},
    )
    profile_store.put(
        "doctors",
        make_profile(
            user_id="2",
            full_name="Dr. Sarah Smith",
            email="doctor@example.com",
            specialization="Cardiology",
            is_approved=doctor_approved,
        ),
    )
    auth_service.add_account(
        user_id="3",
        email="admin@example.com",
        password="password123",
        metadata={"role": "admin", "full_name": "Admin User"},
    )
    profile_store.put(
        "admins",
        make_profile(user_id="3", full_name="Admin User", email="admin@example.com"),
    )


def build_manager(
    *,
    auth_service,
    profile_store,
    notifier,
    image_storage=None,
) -> AuthSessionManager:
    return AuthSessionManager(
        auth_port=auth_service,
        fetch_profile_use_case=FetchProfileUseCase(profile_port=profile_store),
        update_profile_use_case=UpdateProfileUseCase(
            profile_port=profile_store,
            image_port=image_storage or FakeImageStorage(),
        ),
        notifier=notifier,
    )
