from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable

import httpx
from fastapi import Depends, HTTPException, Request

from medibook.application.services.auth_session_manager import AuthSessionManager
from medibook.application.use_cases.approve_doctor import ApproveDoctorUseCase
from medibook.application.use_cases.fetch_profile import FetchProfileUseCase
from medibook.application.use_cases.list_pending_doctors import ListPendingDoctorsUseCase
from medibook.application.use_cases.update_profile import UpdateProfileUseCase
from medibook.domain.entities.role import ROLES, Role
from medibook.domain.entities.user import UserView
from medibook.domain.services.route_gate import RouteDecision, evaluate_route_access
from medibook.infrastructure.clients.session_storage import FileSessionStorage, MemorySessionStorage
from medibook.infrastructure.clients.supabase_auth_client import (
    SupabaseAuthClient,
    SupabaseClientSettings,
)
from medibook.infrastructure.clients.supabase_rest_client import SupabaseProfileRepository
from medibook.infrastructure.clients.supabase_storage_client import SupabaseStorageClient
from medibook.infrastructure.notifications.notification_center import NotificationCenter
from medibook.shared.config import Settings


@dataclass(frozen=True)
class AppServices:
    auth_session_manager: AuthSessionManager
    notification_center: NotificationCenter
    list_pending_doctors_use_case: ListPendingDoctorsUseCase
    approve_doctor_use_case: ApproveDoctorUseCase


ServicesFactory = Callable[[Settings], AsyncContextManager[AppServices]]


class RouteGateRedirect(Exception):
    def __init__(self, decision: RouteDecision):
        super().__init__(decision.outcome)
        self.decision = decision


@asynccontextmanager
async def build_services(settings: Settings) -> AsyncIterator[AppServices]:
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required.")

    if settings.session_storage_path:
        session_storage = FileSessionStorage(settings.session_storage_path)
    else:
        session_storage = MemorySessionStorage()

    async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as http_client:
        auth_client = SupabaseAuthClient(
            SupabaseClientSettings(
                url=settings.supabase_url,
                anon_key=settings.supabase_anon_key,
                timeout_seconds=settings.request_timeout_seconds,
                token_refresh_margin_seconds=settings.token_refresh_margin_seconds,
            ),
            storage=session_storage,
            http_client=http_client,
        )
        rest_options = {
            "base_url": settings.supabase_url,
            "anon_key": settings.supabase_anon_key,
            "access_token_provider": auth_client.get_access_token,
            "http_client": http_client,
        }
        profile_repository = SupabaseProfileRepository(**rest_options)
        notification_center = NotificationCenter(history_size=settings.notification_history_size)
        manager = AuthSessionManager(
            auth_port=auth_client,
            fetch_profile_use_case=FetchProfileUseCase(
                profile_port=profile_repository,
                max_retries=settings.profile_fetch_max_retries,
                retry_backoff_ms=settings.profile_fetch_retry_backoff_ms,
            ),
            update_profile_use_case=UpdateProfileUseCase(
                profile_port=profile_repository,
                image_port=SupabaseStorageClient(**rest_options),
                image_bucket=settings.profile_image_bucket,
            ),
            notifier=notification_center,
        )
        async with manager:
            yield AppServices(
                auth_session_manager=manager,
                notification_center=notification_center,
                list_pending_doctors_use_case=ListPendingDoctorsUseCase(profile_port=profile_repository),
                approve_doctor_use_case=ApproveDoctorUseCase(profile_port=profile_repository),
            )


def get_services(request: Request) -> AppServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services are not initialized.")
    return services


def get_auth_session_manager(services: AppServices = Depends(get_services)) -> AuthSessionManager:
    return services.auth_session_manager


def get_notification_center(services: AppServices = Depends(get_services)) -> NotificationCenter:
    return services.notification_center


def get_list_pending_doctors_use_case(
    services: AppServices = Depends(get_services),
) -> ListPendingDoctorsUseCase:
    return services.list_pending_doctors_use_case


def get_approve_doctor_use_case(services: AppServices = Depends(get_services)) -> ApproveDoctorUseCase:
    return services.approve_doctor_use_case


def _gate(manager: AuthSessionManager, roles: tuple[Role, ...]) -> UserView:
    decision = evaluate_route_access(
        user=manager.user,
        loading=manager.loading,
        required_roles=roles,
    )
    if decision.outcome != "render":
        raise RouteGateRedirect(decision)
    return manager.user


def require_roles(*roles: Role):
    def _dependency(manager: AuthSessionManager = Depends(get_auth_session_manager)) -> UserView:
        return _gate(manager, roles)

    return _dependency


def require_path_role(
    role: str,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
) -> UserView:
    if role not in ROLES:
        raise HTTPException(status_code=404, detail="Not Found")
    return _gate(manager, (role,))
