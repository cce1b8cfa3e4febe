"""Service layer for account workflows."""

from .auth import AuthService
from .authenticator import Authenticator, PasswordAuthenticator, Principal
from .email import (
    EmailDeliveryError,
    build_confirmation_email,
    build_password_reset_email,
    send_confirmation_email,
    send_password_reset_email,
)
from .email_verification import build_confirmation_link
from .errors import (
    AuthError,
    DeviceNotFoundError,
    DeviceRevokedError,
    EmailExistsError,
    InvalidCredentialsError,
    PersistenceFailureError,
    RefreshLimitExceededError,
    TokenExpiredError,
    TokenNotFoundError,
    UserNotFoundError,
)
from .password_reset import build_password_reset_link
from .results import Failure, Result, Success
from .tokens import IssuedToken

__all__ = [
    "AuthError",
    "AuthService",
    "Authenticator",
    "DeviceNotFoundError",
    "DeviceRevokedError",
    "EmailDeliveryError",
    "EmailExistsError",
    "Failure",
    "InvalidCredentialsError",
    "IssuedToken",
    "PasswordAuthenticator",
    "PersistenceFailureError",
    "Principal",
    "RefreshLimitExceededError",
    "Result",
    "Success",
    "TokenExpiredError",
    "TokenNotFoundError",
    "UserNotFoundError",
    "build_confirmation_email",
    "build_confirmation_link",
    "build_password_reset_email",
    "build_password_reset_link",
    "send_confirmation_email",
    "send_password_reset_email",
]
