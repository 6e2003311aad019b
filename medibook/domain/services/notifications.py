from __future__ import annotations

from medibook.domain.entities.notification import Notification
from medibook.domain.entities.role import Role


def login_success(display_name: str) -> Notification:
    return Notification(
        kind="login_success",
        title="Login successful",
        description=f"Welcome back, {display_name}!",
    )


def login_failure(message: str) -> Notification:
    return Notification(
        kind="login_failure",
        title="Login failed",
        description=message,
        variant="destructive",
    )


def login_role_missing() -> Notification:
    return Notification(
        kind="login_role_missing",
        title="Login incomplete",
        description="Your account has no role assigned. Please contact support.",
        variant="destructive",
    )


def register_success(role: Role) -> Notification:
    if role == "doctor":
        return Notification(
            kind="register_success_doctor_pending",
            title="Registration successful",
            description=(
                "Please check your email to verify your account. "
                "Your doctor profile is pending approval by an administrator."
            ),
        )
    return Notification(
        kind="register_success_patient",
        title="Registration successful",
        description="Please check your email to verify your account, then log in.",
    )


def register_failure(message: str) -> Notification:
    return Notification(
        kind="register_failure",
        title="Registration failed",
        description=message,
        variant="destructive",
    )


def logout_success() -> Notification:
    return Notification(
        kind="logout_success",
        title="Logged out",
        description="You have been successfully logged out.",
    )


def logout_failure(message: str) -> Notification:
    return Notification(
        kind="logout_failure",
        title="Logout failed",
        description=message,
        variant="destructive",
    )


def profile_not_found() -> Notification:
    return Notification(
        kind="profile_not_found",
        title="Profile not found",
        description="Your profile is still being set up. Please try again shortly.",
        variant="destructive",
    )


def profile_fetch_error(message: str) -> Notification:
    return Notification(
        kind="profile_fetch_error",
        title="Profile error",
        description=f"Failed to fetch your profile: {message}",
        variant="destructive",
    )


def profile_updated() -> Notification:
    return Notification(
        kind="profile_updated",
        title="Success",
        description="Profile updated successfully!",
    )


def profile_update_failure(message: str) -> Notification:
    return Notification(
        kind="profile_update_failure",
        title="Update Error",
        description=f"Failed to update profile: {message}",
        variant="destructive",
    )


def not_authenticated(action: str) -> Notification:
    return Notification(
        kind="not_authenticated",
        title="Error",
        description=f"You must be logged in to {action}.",
        variant="destructive",
    )


def doctor_approved(name: str) -> Notification:
    return Notification(
        kind="doctor_approved",
        title="Doctor Approved",
        description=f"{name}'s account has been approved.",
    )
