from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Literal

from medibook.application.dto.auth import AuthOperationResult, RegisterInput
from medibook.application.dto.profile import ProfileUpdateResult, UpdateProfileInput
from medibook.application.ports.auth_port import AuthPort, SessionEvent
from medibook.application.ports.notifier_port import NotifierPort
from medibook.application.use_cases.fetch_profile import FetchProfileUseCase
from medibook.application.use_cases.update_profile import UpdateProfileUseCase
from medibook.domain.entities.notification import Notification
from medibook.domain.entities.role import Role, parse_role
from medibook.domain.entities.user import Session, UserView
from medibook.domain.exceptions import (
    AuthServiceError,
    ProfileFetchError,
    ProfileImageUploadError,
    ProfileNotFoundError,
    ProfileStoreError,
    RegistrationInputError,
)
from medibook.domain.services import notifications
from medibook.domain.services.route_gate import LOGIN_ROUTE, has_role, home_route_for


logger = logging.getLogger(__name__)


SessionState = Literal[
    "bootstrapping",
    "unauthenticated",
    "authenticating",
    "authenticated_no_role",
    "authenticated",
]

UserViewListener = Callable[[UserView | None], None]

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class _ResolvedView:
    session: Session
    user: UserView
    notice: Notification | None


class AuthSessionManager:
    """Single owner of the process-wide composite user view.

    Two sources drive the view: the explicit operations below and the auth
    service's session-change notifications. Each triggering event takes the
    next sequence number, and a result is published only while its number is
    still the latest, so a slow profile fetch never overwrites a newer state.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        fetch_profile_use_case: FetchProfileUseCase,
        update_profile_use_case: UpdateProfileUseCase,
        notifier: NotifierPort,
    ):
        self._auth_port = auth_port
        self._fetch_profile = fetch_profile_use_case
        self._update_profile = update_profile_use_case
        self._notifier = notifier
        self._user: UserView | None = None
        self._session: Session | None = None
        self._loading = True
        self._in_flight = 0
        self._event_seq = 0
        self._pending_events: set[asyncio.Task] = set()
        self._listeners: list[UserViewListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    async def __aenter__(self) -> AuthSessionManager:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        await self.close()

    @property
    def user(self) -> UserView | None:
        return self._user

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def state(self) -> SessionState:
        if self._loading:
            return "bootstrapping"
        if self._in_flight:
            return "authenticating"
        if self._user is None:
            return "unauthenticated"
        if self._user.role is None:
            return "authenticated_no_role"
        return "authenticated"

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._auth_port.on_session_change(self._on_session_change)
        seq = self._next_seq()
        try:
            try:
                session = await self._auth_port.get_current_session()
            except AuthServiceError as exc:
                logger.warning("auth_session_manager: bootstrap_session_check_failed error=%s", exc)
                session = None

            if session is None:
                self._publish(seq=seq, session=None, user=None)
            else:
                self._publish_resolved(seq, await self._resolve(session))
            # A session event that arrived during bootstrap owns the first visible state.
            await self.settle()
        finally:
            self._loading = False
            self._emit()
        logger.info("auth_session_manager: bootstrapped state=%s", self.state)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._pending_events)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()

    async def settle(self) -> None:
        """Wait until every in-flight session-change handler has finished."""
        while self._pending_events:
            await asyncio.gather(*list(self._pending_events), return_exceptions=True)

    def subscribe(self, listener: UserViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def has_role(self, roles: Iterable[Role]) -> bool:
        return has_role(self._user, roles)

    async def login(self, email: str, password: str) -> AuthOperationResult:
        email = normalize_email(email)
        if not email or not password:
            return self._finish(
                ok=False,
                notification=notifications.login_failure("Email and password are required."),
            )

        self._in_flight += 1
        try:
            try:
                session = await self._auth_port.verify_credentials(email=email, password=password)
            except AuthServiceError as exc:
                logger.info(
                    "auth_session_manager: login_failed email=%s status=%s",
                    email,
                    exc.status_code,
                )
                return self._finish(ok=False, notification=notifications.login_failure(str(exc)))

            seq = self._next_seq()
            resolved = await self._resolve(session)
            published = self._publish_resolved(seq, resolved)
        finally:
            self._in_flight -= 1

        user = resolved.user
        logger.info(
            "auth_session_manager: login_succeeded user_id=%s role=%s published=%s",
            user.id,
            user.role,
            published,
        )
        if not published:
            # A newer event replaced this result; report whatever view is current.
            await self.settle()
            current = self._user
            if current is None or current.id != user.id:
                return self._finish(
                    ok=False,
                    notification=notifications.login_failure("Your session ended before sign-in completed."),
                    user=current,
                    redirect_to=LOGIN_ROUTE,
                )
            user = current
        if user.role is None:
            return self._finish(
                ok=True,
                notification=notifications.login_role_missing(),
                user=user,
                redirect_to=LOGIN_ROUTE,
            )
        return self._finish(
            ok=True,
            notification=notifications.login_success(user.display_name),
            user=user,
            redirect_to=home_route_for(user.role),
        )

    async def register(self, command: RegisterInput) -> AuthOperationResult:
        try:
            email, role, metadata = _validate_registration(command)
        except RegistrationInputError as exc:
            return self._finish(ok=False, notification=notifications.register_failure(str(exc)))

        self._in_flight += 1
        try:
            await self._auth_port.create_identity(
                email=email,
                password=command.password,
                metadata=metadata,
            )
        except AuthServiceError as exc:
            logger.info(
                "auth_session_manager: register_failed email=%s status=%s",
                email,
                exc.status_code,
            )
            return self._finish(ok=False, notification=notifications.register_failure(str(exc)))
        finally:
            self._in_flight -= 1

        logger.info("auth_session_manager: registered email=%s role=%s", email, role)
        return self._finish(
            ok=True,
            notification=notifications.register_success(role),
            redirect_to=LOGIN_ROUTE,
        )

    async def logout(self) -> AuthOperationResult:
        # Cleared before the service call so a failed sign-out never leaves a stale view.
        self._publish(seq=self._next_seq(), session=None, user=None)

        self._in_flight += 1
        try:
            await self._auth_port.invalidate_session()
        except AuthServiceError as exc:
            logger.warning("auth_session_manager: logout_failed error=%s", exc)
            return self._finish(
                ok=False,
                notification=notifications.logout_failure(str(exc)),
                redirect_to=LOGIN_ROUTE,
            )
        finally:
            self._in_flight -= 1

        logger.info("auth_session_manager: logged_out")
        return self._finish(
            ok=True,
            notification=notifications.logout_success(),
            redirect_to=LOGIN_ROUTE,
        )

    async def refresh_profile(self) -> AuthOperationResult:
        await self.settle()
        session = self._session
        if session is None:
            return self._finish(
                ok=False,
                notification=notifications.not_authenticated("refresh your profile"),
            )

        seq = self._next_seq()
        resolved = await self._resolve(session)
        if not self._publish_resolved(seq, resolved):
            await self.settle()
            user = self._user
            if user is None or user.id != session.identity.id:
                return self._finish(
                    ok=False,
                    notification=notifications.not_authenticated("refresh your profile"),
                    user=user,
                )
            return AuthOperationResult(
                ok=user.role is not None and user.profile is not None,
                notification=None,
                user=user,
            )

        user = resolved.user
        # The profile notice, if any, was already shown by the publish above.
        return AuthOperationResult(
            ok=user.role is not None and user.profile is not None,
            notification=resolved.notice,
            user=user,
        )

    async def update_profile(self, command: UpdateProfileInput) -> ProfileUpdateResult:
        await self.settle()
        user = self._user
        session = self._session
        if user is None or user.role is None or session is None:
            notice = notifications.not_authenticated("update your profile")
            self._notifier.notify(notice)
            return ProfileUpdateResult(ok=False, notification=notice)

        try:
            profile = await self._update_profile.execute(user=user, command=command)
        except (ProfileNotFoundError, ProfileStoreError, ProfileImageUploadError, ValueError) as exc:
            logger.warning(
                "auth_session_manager: profile_update_failed user_id=%s error=%s",
                user.id,
                exc,
            )
            notice = notifications.profile_update_failure(str(exc))
            self._notifier.notify(notice)
            return ProfileUpdateResult(ok=False, notification=notice)

        # Not a session event: patch the current view only while the same identity is signed in.
        await self.settle()
        current = self._user
        if self._session is None or current is None or current.id != user.id:
            logger.info("auth_session_manager: profile_update_not_applied user_id=%s", user.id)
            notice = notifications.not_authenticated("update your profile")
            self._notifier.notify(notice)
            return ProfileUpdateResult(ok=False, notification=notice, profile=profile)

        self._publish(seq=self._event_seq, session=self._session, user=replace(current, profile=profile))
        notice = notifications.profile_updated()
        self._notifier.notify(notice)
        return ProfileUpdateResult(ok=True, notification=notice, profile=profile)

    def _on_session_change(self, event: SessionEvent, session: Session | None) -> None:
        seq = self._next_seq()
        logger.debug("auth_session_manager: session_event event=%s seq=%s", event, seq)
        task = asyncio.get_running_loop().create_task(self._handle_session_change(session, seq))
        self._pending_events.add(task)
        task.add_done_callback(self._on_event_done)

    def _on_event_done(self, task: asyncio.Task) -> None:
        self._pending_events.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "auth_session_manager: session_event_handler_crashed error=%s",
                exc,
                exc_info=exc,
            )

    async def _handle_session_change(self, session: Session | None, seq: int) -> None:
        if session is None:
            self._publish(seq=seq, session=None, user=None)
            return
        self._publish_resolved(seq, await self._resolve(session))

    async def _resolve(self, session: Session) -> _ResolvedView:
        identity = session.identity
        role = parse_role(identity.metadata.get("role"))
        if role is None:
            logger.warning("auth_session_manager: role_missing user_id=%s", identity.id)
            return _ResolvedView(session=session, user=UserView(identity, None, None), notice=None)

        try:
            profile = await self._fetch_profile.execute(identity_id=identity.id, role=role)
        except ProfileNotFoundError:
            logger.info("auth_session_manager: profile_not_found user_id=%s role=%s", identity.id, role)
            return _ResolvedView(
                session=session,
                user=UserView(identity, role, None),
                notice=notifications.profile_not_found(),
            )
        except ProfileFetchError as exc:
            logger.warning(
                "auth_session_manager: profile_fetch_failed user_id=%s role=%s error=%s",
                identity.id,
                role,
                exc,
            )
            return _ResolvedView(
                session=session,
                user=UserView(identity, role, None),
                notice=notifications.profile_fetch_error(str(exc)),
            )
        return _ResolvedView(session=session, user=UserView(identity, role, profile), notice=None)

    def _next_seq(self) -> int:
        self._event_seq += 1
        return self._event_seq

    def _publish(self, *, seq: int, session: Session | None, user: UserView | None) -> bool:
        if seq != self._event_seq:
            logger.debug(
                "auth_session_manager: stale_result_dropped seq=%s latest=%s",
                seq,
                self._event_seq,
            )
            return False
        self._session = session
        self._user = user
        self._emit()
        return True

    def _publish_resolved(self, seq: int, resolved: _ResolvedView) -> bool:
        published = self._publish(seq=seq, session=resolved.session, user=resolved.user)
        if published and resolved.notice is not None:
            self._notifier.notify(resolved.notice)
        return published

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)

    def _finish(
        self,
        *,
        ok: bool,
        notification: Notification,
        user: UserView | None = None,
        redirect_to: str | None = None,
    ) -> AuthOperationResult:
        self._notifier.notify(notification)
        return AuthOperationResult(ok=ok, notification=notification, user=user, redirect_to=redirect_to)


def _validate_registration(command: RegisterInput) -> tuple[str, Role, dict]:
    name = command.name.strip()
    email = normalize_email(command.email)
    role = parse_role(command.role)

    if not name:
        raise RegistrationInputError("Name is required.")
    if not email or "@" not in email:
        raise RegistrationInputError("A valid email is required.")
    if len(command.password) < MIN_PASSWORD_LENGTH:
        raise RegistrationInputError(
            f"Password must have at least {MIN_PASSWORD_LENGTH} characters."
        )
    if command.confirm_password is not None and command.confirm_password != command.password:
        raise RegistrationInputError("Passwords do not match.")
    if role is None:
        raise RegistrationInputError(f"Unknown role: {command.role}.")

    metadata: dict = {"role": role, "full_name": name}
    if role == "doctor" and command.specialization:
        metadata["specialization"] = command.specialization.strip()
    return email, role, metadata
