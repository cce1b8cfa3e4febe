"""Typed failures reported by the account workflows."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for expected workflow failures."""

    code = "auth_error"


class EmailExistsError(AuthError):
    """Raised when attempting to register an email that is already on file."""

    code = "email_exists"

    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email '{email}' already exists")
        self.email = email


class UserNotFoundError(AuthError):
    """Raised when no user matches the supplied identity."""

    code = "user_not_found"


class TokenNotFoundError(AuthError):
    """Raised when a presented token cannot be matched to a record."""

    code = "token_not_found"

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} not found.")
        self.kind = kind


class TokenExpiredError(AuthError):
    """Raised when a presented token is past its expiry."""

    code = "token_expired"

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} has expired.")
        self.kind = kind


class InvalidCredentialsError(AuthError):
    """Raised when an email/password pair does not match."""

    code = "invalid_credentials"


class DeviceRevokedError(AuthError):
    """Raised when refresh has been disabled for the token's device."""

    code = "device_revoked"


class RefreshLimitExceededError(AuthError):
    """Raised when a refresh token has been exchanged too many times."""

    code = "limit_exceeded"


class DeviceNotFoundError(AuthError):
    """Raised when a user has no session for the given device identifier."""

    code = "device_not_found"

    def __init__(self, device_id: str) -> None:
        super().__init__(f"No session found for device '{device_id}'.")
        self.device_id = device_id


class PersistenceFailureError(AuthError):
    """Raised when the underlying store fails."""

    code = "persistence_failure"


__all__ = [
    "AuthError",
    "DeviceNotFoundError",
    "DeviceRevokedError",
    "EmailExistsError",
    "InvalidCredentialsError",
    "PersistenceFailureError",
    "RefreshLimitExceededError",
    "TokenExpiredError",
    "TokenNotFoundError",
    "UserNotFoundError",
]
