"""Authentication-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class RegistrationRequest(BaseModel):
    """Schema for creating a user via email/password registration."""

    email: EmailStr
    password: str = Field(min_length=8)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class DeviceInfo(BaseModel):
    """Client-supplied description of the device a session is bound to."""

    device_id: str = Field(min_length=1, max_length=255)
    device_type: Optional[str] = Field(default=None, max_length=64)
    notification_token: Optional[str] = Field(default=None, max_length=512)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class LoginRequest(BaseModel):
    """Schema for logging in with email and password from a device."""

    email: EmailStr
    password: str
    device_info: DeviceInfo

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class EmailTokenRequest(BaseModel):
    """Carries an existing email verification token."""

    token: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class TokenRefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class LogoutRequest(BaseModel):
    device_id: str = Field(min_length=1, max_length=255)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class UpdatePasswordRequest(BaseModel):
    """Payload required to change the password of an authenticated user."""

    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)

    model_config = ConfigDict(frozen=True)


class PasswordResetLinkRequest(BaseModel):
    email: EmailStr

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class PasswordResetRequest(BaseModel):
    """Payload completing a password reset with a mailed token."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=8)
    confirm_password: str

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordResetRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class UserRead(BaseModel):
    """Schema representing the public view of a user."""

    id: uuid.UUID
    email: EmailStr
    is_email_verified: bool
    email_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class DeviceRead(BaseModel):
    device_id: str
    device_type: Optional[str] = None
    is_refresh_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class TokenResponse(BaseModel):
    """Schema for returning an access token to the client."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int

    model_config = ConfigDict(frozen=True)


class LoginResponse(TokenResponse):
    """Access token plus the device-bound refresh token issued at login."""

    refresh_token: str


class MessageResponse(BaseModel):
    message: str

    model_config = ConfigDict(frozen=True)


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
