from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from medibook.domain.entities.role import Role
from medibook.domain.entities.user import UserView


RouteOutcome = Literal[
    "loading",
    "render",
    "redirect_login",
    "redirect_home",
    "redirect_pending_approval",
]

LOGIN_ROUTE = "/login"

HOME_ROUTES: dict[Role, str] = {
    "patient": "/patient",
    "doctor": "/doctor",
    "admin": "/admin",
}


@dataclass(frozen=True)
class RouteDecision:
    outcome: RouteOutcome
    location: str | None = None
    pending_approval: bool = False


def home_route_for(role: Role) -> str:
    return HOME_ROUTES[role]


def is_pending_doctor(user: UserView | None) -> bool:
    """True only for a doctor whose profile carries an explicit unapproved flag."""
    if user is None or user.role != "doctor" or user.profile is None:
        return False
    return user.profile.is_approved is False


def has_role(user: UserView | None, roles: Iterable[Role]) -> bool:
    if user is None or user.role is None:
        return False
    if user.role not in set(roles):
        return False
    # Doctor access is gated on approval.
    return not is_pending_doctor(user)


def evaluate_route_access(
    *,
    user: UserView | None,
    loading: bool,
    required_roles: Iterable[Role],
) -> RouteDecision:
    """Decide what a protected route shows for the given session state.

    Rules are checked in order and the first match wins:

    1. loading -> neutral placeholder, never a redirect;
    2. no session, or a session without a resolved role -> login;
    3. role not effective for the route -> pending-approval login for an
       unapproved doctor, otherwise the home route of the user's own role;
    4. otherwise render.
    """
    if loading:
        return RouteDecision(outcome="loading")
    if user is None or user.role is None:
        return RouteDecision(outcome="redirect_login", location=LOGIN_ROUTE)
    if not has_role(user, required_roles):
        if is_pending_doctor(user):
            return RouteDecision(
                outcome="redirect_pending_approval",
                location=LOGIN_ROUTE,
                pending_approval=True,
            )
        return RouteDecision(outcome="redirect_home", location=home_route_for(user.role))
    return RouteDecision(outcome="render")
