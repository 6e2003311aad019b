from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from medibook.api.deps import get_auth_session_manager
from medibook.api.schemas.auth import (
    AuthResultResponse,
    LoginRequest,
    NotificationResponse,
    RegisterRequest,
    SessionResponse,
    UserViewResponse,
)
from medibook.application.dto.auth import AuthOperationResult, RegisterInput
from medibook.application.services.auth_session_manager import AuthSessionManager


router = APIRouter()


def _result_response(result: AuthOperationResult) -> AuthResultResponse:
    return AuthResultResponse(
        ok=result.ok,
        notification=(
            NotificationResponse.from_domain(result.notification)
            if result.notification is not None
            else None
        ),
        user=UserViewResponse.from_domain(result.user) if result.user is not None else None,
        redirect_to=result.redirect_to,
    )


@router.post("/auth/login", response_model=AuthResultResponse)
async def login(
    req: LoginRequest,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    result = await manager.login(req.email, req.password)
    if not result.ok:
        raise HTTPException(status_code=401, detail=result.notification.description)
    return _result_response(result)


@router.post("/auth/register", response_model=AuthResultResponse, status_code=201)
async def register(
    req: RegisterRequest,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    result = await manager.register(
        RegisterInput(
            name=req.name,
            email=req.email,
            password=req.password,
            role=req.role,
            specialization=req.specialization,
            confirm_password=req.confirm_password,
        )
    )
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.notification.description)
    return _result_response(result)


@router.post("/auth/logout", response_model=AuthResultResponse)
async def logout(manager: AuthSessionManager = Depends(get_auth_session_manager)):
    # Local state is cleared even when the service call fails; ok carries the outcome.
    return _result_response(await manager.logout())


@router.get("/auth/session", response_model=SessionResponse)
async def current_session(manager: AuthSessionManager = Depends(get_auth_session_manager)):
    user = manager.user
    return SessionResponse(
        state=manager.state,
        loading=manager.loading,
        user=UserViewResponse.from_domain(user) if user is not None else None,
    )


@router.post("/auth/profile/refresh", response_model=AuthResultResponse)
async def refresh_profile(manager: AuthSessionManager = Depends(get_auth_session_manager)):
    if manager.session is None:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    return _result_response(await manager.refresh_profile())
