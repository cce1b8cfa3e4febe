"""Application schema exports."""

from .auth import (
    DeviceInfo,
    DeviceRead,
    EmailTokenRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetLinkRequest,
    PasswordResetRequest,
    RegistrationRequest,
    TokenRefreshRequest,
    TokenResponse,
    UpdatePasswordRequest,
    UserRead,
)

__all__ = [
    "DeviceInfo",
    "DeviceRead",
    "EmailTokenRequest",
    "LoginRequest",
    "LoginResponse",
    "LogoutRequest",
    "MessageResponse",
    "PasswordResetLinkRequest",
    "PasswordResetRequest",
    "RegistrationRequest",
    "TokenRefreshRequest",
    "TokenResponse",
    "UpdatePasswordRequest",
    "UserRead",
]
