from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class AuthServiceError(DomainError):
    """The auth service rejected or failed a request."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentialsError(AuthServiceError):
    """Email and password do not match an identity."""


class ProfileNotFoundError(DomainError):
    """No profile row matches the user."""


class ProfileFetchError(DomainError):
    """The profile query itself failed."""


class ProfileStoreError(DomainError):
    """The row store rejected or failed a request."""


class ProfileImageUploadError(DomainError):
    """The profile image could not be stored."""


class NotAuthenticatedError(DomainError):
    """The operation needs a session with a resolved role."""


class RegistrationInputError(DomainError, ValueError):
    """Registration parameters are invalid."""
