from __future__ import annotations

import base64
from contextlib import asynccontextmanager

from fastapi import HTTPException
from fastapi.testclient import TestClient
import pytest

from medibook.api.deps import AppServices, RouteGateRedirect, require_path_role, require_roles
from medibook.application.use_cases.approve_doctor import ApproveDoctorUseCase
from medibook.application.use_cases.list_pending_doctors import ListPendingDoctorsUseCase
from medibook.infrastructure.notifications.notification_center import NotificationCenter
from medibook.main import create_app
from medibook.shared.config import Settings
from tests.fakes import FakeAuthService, FakeProfileStore, RecordingNotifier, build_manager, seed_demo_accounts


SETTINGS = Settings(
    supabase_url="https://project.supabase.co",
    supabase_anon_key="anon-key",
    session_storage_path="",
    request_timeout_seconds=5,
    token_refresh_margin_seconds=60,
    profile_fetch_max_retries=0,
    profile_fetch_retry_backoff_ms=0,
    profile_image_bucket="profile-images",
    notification_history_size=20,
    log_level="WARNING",
)


def _services_factory(auth_service: FakeAuthService, profile_store: FakeProfileStore, *, start: bool = True):
    @asynccontextmanager
    async def factory(settings: Settings):
        _ = settings
        notification_center = NotificationCenter(history_size=20)
        manager = build_manager(
            auth_service=auth_service,
            profile_store=profile_store,
            notifier=notification_center,
        )
        services = AppServices(
            auth_session_manager=manager,
            notification_center=notification_center,
            list_pending_doctors_use_case=ListPendingDoctorsUseCase(profile_port=profile_store),
            approve_doctor_use_case=ApproveDoctorUseCase(profile_port=profile_store),
        )
        if not start:
            yield services
            return
        async with manager:
            yield services

    return factory


@pytest.fixture
def client():
    profile_store = FakeProfileStore()
    auth_service = FakeAuthService(profile_store=profile_store)
    seed_demo_accounts(auth_service, profile_store)
    app = create_app(SETTINGS, services_factory=_services_factory(auth_service, profile_store))
    with TestClient(app) as test_client:
        yield test_client


def _login(client: TestClient, email: str, password: str = "password123"):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_protected_page_redirects_to_login_without_session(client):
    response = client.get("/patient", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_patient_login_opens_patient_dashboard_only(client):
    response = _login(client, "patient@example.com")
    assert response.status_code == 200
    body = response.json()
    assert body["redirect_to"] == "/patient"
    assert body["user"]["app_role"] == "patient"
    assert body["user"]["name"] == "John Patient"
    assert body["notification"]["description"] == "Welcome back, John Patient!"

    page = client.get("/patient", follow_redirects=False)
    assert page.status_code == 200
    assert page.json()["page"] == "patient_dashboard"

    other = client.get("/doctor", follow_redirects=False)
    assert other.status_code == 303
    assert other.headers["location"] == "/patient"


def test_login_failure_returns_service_message(client):
    response = _login(client, "patient@example.com", "bad-password")

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid login credentials"
    assert client.get("/auth/session").json()["user"] is None


def test_unapproved_doctor_is_redirected_with_pending_status(client):
    assert _login(client, "doctor@example.com").status_code == 200

    response = client.get("/doctor", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login?status=pending-approval"

    login_page = client.get("/login", params={"status": "pending-approval"})
    assert login_page.json()["message"] == "Your doctor account is pending approval by an administrator."


def test_admin_approval_unlocks_doctor_dashboard(client):
    assert _login(client, "admin@example.com").status_code == 200
    pending = client.get("/admin/doctor-approvals")
    assert pending.status_code == 200
    assert [doctor["user_id"] for doctor in pending.json()] == ["2"]

    approved = client.post("/admin/doctor-approvals/2/approve")
    assert approved.status_code == 200
    assert approved.json()["is_approved"] is True
    assert client.get("/admin/doctor-approvals").json() == []

    assert client.post("/auth/logout").json()["ok"] is True
    assert _login(client, "doctor@example.com").status_code == 200
    response = client.get("/doctor", follow_redirects=False)
    assert response.status_code == 200
    assert response.json()["page"] == "doctor_dashboard"


def test_approving_unknown_doctor_is_not_found(client):
    assert _login(client, "admin@example.com").status_code == 200

    response = client.post("/admin/doctor-approvals/nobody/approve")

    assert response.status_code == 404


def test_admin_pages_reject_other_roles(client):
    _login(client, "patient@example.com")

    response = client.get("/admin/doctor-approvals", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/patient"


def test_register_doctor_returns_pending_approval_notice(client):
    response = client.post(
        "/auth/register",
        json={
            "name": "Dr. New",
            "email": "newdoc@example.com",
            "password": "secret-pass",
            "confirm_password": "secret-pass",
            "role": "doctor",
            "specialization": "Dermatology",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["redirect_to"] == "/login"
    assert body["notification"]["kind"] == "register_success_doctor_pending"
    assert "pending approval" in body["notification"]["description"]


def test_register_rejects_short_password(client):
    response = client.post(
        "/auth/register",
        json={"name": "Pat", "email": "pat@example.com", "password": "short", "role": "patient"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Password must have at least 8 characters."


def test_logout_clears_session_and_notifications_drain(client):
    _login(client, "patient@example.com")
    assert client.get("/auth/session").json()["state"] == "authenticated"

    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json()["notification"]["kind"] == "logout_success"

    session = client.get("/auth/session").json()
    assert session["state"] == "unauthenticated"
    assert session["user"] is None

    kinds = [item["kind"] for item in client.get("/notifications").json()]
    assert kinds == ["login_success", "logout_success"]
    assert client.get("/notifications").json() == []


def test_refresh_profile_requires_session(client):
    response = client.post("/auth/profile/refresh")
    assert response.status_code == 401


def test_profile_update_with_image(client):
    _login(client, "patient@example.com")

    response = client.put(
        "/patient/profile",
        json={
            "full_name": "John Q. Patient",
            "profile_image": {
                "filename": "me.png",
                "content_type": "image/png",
                "data_base64": base64.b64encode(b"png-bytes").decode("ascii"),
            },
        },
    )

    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["full_name"] == "John Q. Patient"
    assert profile["profile_image_url"].startswith("https://cdn.example.com/profile-images/profiles/1-")
    assert client.get("/patient/profile").json()["user"]["name"] == "John Q. Patient"


def test_profile_update_rejects_invalid_image_payload(client):
    _login(client, "patient@example.com")

    response = client.put(
        "/patient/profile",
        json={
            "full_name": "John",
            "profile_image": {"filename": "me.png", "content_type": "image/png", "data_base64": "%%%"},
        },
    )

    assert response.status_code == 400


def test_unknown_role_profile_route_is_not_found(client):
    _login(client, "patient@example.com")
    assert client.get("/nurse/profile").status_code == 404


def test_protected_page_shows_placeholder_while_bootstrapping():
    profile_store = FakeProfileStore()
    auth_service = FakeAuthService(profile_store=profile_store)
    app = create_app(SETTINGS, services_factory=_services_factory(auth_service, profile_store, start=False))

    with TestClient(app) as test_client:
        response = test_client.get("/patient", follow_redirects=False)

    assert response.status_code == 202
    assert response.json() == {"status": "loading"}


def test_require_roles_raises_gate_redirect_while_manager_is_loading():
    manager = build_manager(
        auth_service=FakeAuthService(),
        profile_store=FakeProfileStore(),
        notifier=RecordingNotifier(),
    )
    dependency = require_roles("patient")

    with pytest.raises(RouteGateRedirect) as exc_info:
        dependency(manager=manager)

    assert exc_info.value.decision.outcome == "loading"


def test_require_path_role_rejects_unknown_role():
    manager = build_manager(
        auth_service=FakeAuthService(),
        profile_store=FakeProfileStore(),
        notifier=RecordingNotifier(),
    )

    with pytest.raises(HTTPException) as exc_info:
        require_path_role("nurse", manager)

    assert exc_info.value.status_code == 404
