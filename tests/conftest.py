from __future__ import annotations

import pytest

from medibook.application.services.auth_session_manager import AuthSessionManager
from tests.fakes import FakeAuthService, FakeProfileStore, RecordingNotifier, build_manager, seed_demo_accounts


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def auth_service(profile_store: FakeProfileStore) -> FakeAuthService:
    service = FakeAuthService(profile_store=profile_store)
    seed_demo_accounts(service, profile_store)
    return service


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def manager(auth_service, profile_store, notifier) -> AuthSessionManager:
    return build_manager(auth_service=auth_service, profile_store=profile_store, notifier=notifier)
