from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

import httpx
import jwt

from medibook.application.ports.auth_port import SessionChangeCallback, SessionEvent
from medibook.domain.entities.user import Identity, Session
from medibook.domain.exceptions import AuthServiceError, InvalidCredentialsError
from medibook.infrastructure.clients.session_storage import SessionStorage


logger = logging.getLogger(__name__)

INVALID_CREDENTIAL_CODES = {"invalid_credentials", "invalid_grant"}


@dataclass(frozen=True)
class SupabaseClientSettings:
    url: str
    anon_key: str
    timeout_seconds: float
    token_refresh_margin_seconds: int = 60


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def extract_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


def _error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    code = payload.get("error_code") or payload.get("error")
    return code if isinstance(code, str) else None


def identity_from_user(user: dict) -> Identity:
    user_id = user.get("id")
    if not user_id:
        raise AuthServiceError("Auth response is missing the user.")
    metadata = user.get("user_metadata")
    return Identity(
        id=str(user_id),
        email=str(user.get("email") or ""),
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
    )


def _token_expiry(access_token: str) -> datetime:
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise AuthServiceError("Auth response has an unreadable access token.") from exc
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AuthServiceError("Access token has no expiry.")
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def session_from_payload(payload: dict, *, now: datetime) -> Session:
    access_token = payload.get("access_token")
    refresh_token = payload.get("refresh_token")
    if not access_token or not refresh_token:
        raise AuthServiceError("Auth response is missing session tokens.")

    if payload.get("expires_at") is not None:
        expires_at = datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc)
    elif payload.get("expires_in") is not None:
        expires_at = now + timedelta(seconds=int(payload["expires_in"]))
    else:
        expires_at = _token_expiry(access_token)

    return Session(
        access_token=str(access_token),
        refresh_token=str(refresh_token),
        expires_at=expires_at,
        identity=identity_from_user(payload.get("user") or {}),
    )


def session_to_dict(session: Session) -> dict:
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": int(session.expires_at.timestamp()),
        "user": {
            "id": session.identity.id,
            "email": session.identity.email,
            "user_metadata": session.identity.metadata,
        },
    }


class SupabaseAuthClient:
    """Async client for a GoTrue-compatible auth service.

    It keeps the current session, persists it through ``storage`` and tells
    listeners about sign-in, sign-out and token refresh.
    """

    def __init__(
        self,
        settings: SupabaseClientSettings,
        *,
        storage: SessionStorage,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings
        self._base_url = settings.url.rstrip("/")
        self._storage = storage
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._owns_http = http_client is None
        self._session: Session | None = None
        self._listeners: list[SessionChangeCallback] = []
        self._refresh_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def current_session(self) -> Session | None:
        return self._session

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    async def verify_credentials(self, *, email: str, password: str) -> Session:
        payload = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = session_from_payload(payload, now=utcnow())
        self._store_session(session, event="SIGNED_IN")
        logger.info("supabase_auth_client: signed_in user_id=%s", session.identity.id)
        return session

    async def create_identity(self, *, email: str, password: str, metadata: dict) -> Session | None:
        payload = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata},
        )
        if not payload.get("access_token"):
            logger.info(
                "supabase_auth_client: signup_pending_confirmation user_id=%s",
                payload.get("id") or (payload.get("user") or {}).get("id"),
            )
            return None
        session = session_from_payload(payload, now=utcnow())
        self._store_session(session, event="SIGNED_IN")
        return session

    async def invalidate_session(self) -> None:
        session = self._session
        if session is None:
            self._storage.clear()
            return
        try:
            await self._request("POST", "/auth/v1/logout", access_token=session.access_token)
        except AuthServiceError as exc:
            if exc.status_code not in (401, 403, 404):
                raise
            logger.info(
                "supabase_auth_client: logout_session_already_invalid status=%s",
                exc.status_code,
            )
        finally:
            self._clear_session(emit=True)

    async def get_current_session(self) -> Session | None:
        session = self._session or self._load_stored_session()
        if session is None:
            return None

        if self._expires_soon(session):
            try:
                session = await self._refresh(session)
            except AuthServiceError as exc:
                logger.info("supabase_auth_client: stored_session_refresh_failed error=%s", exc)
                self._clear_session(emit=False)
                return None

        # Stored sessions are confirmed with the server before use.
        try:
            user = await self._request("GET", "/auth/v1/user", access_token=session.access_token)
        except AuthServiceError as exc:
            if exc.status_code in (401, 403):
                self._clear_session(emit=False)
                return None
            raise
        session = replace(session, identity=identity_from_user(user))
        self._store_session(session, event=None)
        return session

    async def refresh_session(self) -> Session:
        session = self._session
        if session is None:
            raise AuthServiceError("No session to refresh.", status_code=401)
        try:
            refreshed = await self._refresh(session)
        except AuthServiceError:
            self._clear_session(emit=True)
            raise
        self._emit("TOKEN_REFRESHED", refreshed)
        return refreshed

    async def get_access_token(self) -> str | None:
        session = self._session
        if session is None:
            return None
        if self._expires_soon(session):
            try:
                session = await self.refresh_session()
            except AuthServiceError as exc:
                logger.warning("supabase_auth_client: token_refresh_failed error=%s", exc)
                return None
        return session.access_token

    async def _refresh(self, session: Session) -> Session:
        async with self._refresh_lock:
            current = self._session
            if current is not None and current.refresh_token != session.refresh_token:
                return current
            payload = await self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": session.refresh_token},
            )
            refreshed = session_from_payload(payload, now=utcnow())
            self._store_session(refreshed, event=None)
            logger.info("supabase_auth_client: token_refreshed user_id=%s", refreshed.identity.id)
            return refreshed

    def _expires_soon(self, session: Session) -> bool:
        margin = timedelta(seconds=self._settings.token_refresh_margin_seconds)
        return session.expires_at - margin <= utcnow()

    def _load_stored_session(self) -> Session | None:
        data = self._storage.load()
        if not data:
            return None
        try:
            session = session_from_payload(data, now=utcnow())
        except (AuthServiceError, TypeError, ValueError) as exc:
            logger.warning("supabase_auth_client: stored_session_invalid error=%s", exc)
            self._storage.clear()
            return None
        self._session = session
        return session

    def _store_session(self, session: Session, *, event: SessionEvent | None) -> None:
        self._session = session
        self._storage.save(session_to_dict(session))
        if event is not None:
            self._emit(event, session)

    def _clear_session(self, *, emit: bool) -> None:
        had_session = self._session is not None
        self._session = None
        self._storage.clear()
        if emit and had_session:
            self._emit("SIGNED_OUT", None)

    def _emit(self, event: SessionEvent, session: Session | None) -> None:
        for callback in list(self._listeners):
            callback(event, session)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
        access_token: str | None = None,
    ) -> dict:
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {access_token or self._settings.anon_key}",
        }
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise AuthServiceError(f"Auth service unavailable: {exc}") from exc

        if response.status_code >= 400:
            message = extract_error_message(response)
            if (
                params is not None
                and params.get("grant_type") == "password"
                and response.status_code in (400, 401)
                and _error_code(response) in INVALID_CREDENTIAL_CODES
            ):
                raise InvalidCredentialsError(message, status_code=response.status_code)
            raise AuthServiceError(message, status_code=response.status_code)

        if not response.content:
            return {}
        payload = response.json()
        return payload if isinstance(payload, dict) else {}
