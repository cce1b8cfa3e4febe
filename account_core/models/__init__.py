"""ORM model exports."""

from .user import User
from .email_verification_token import EmailVerificationToken, TokenStatus
from .password_reset_token import PasswordResetToken
from .user_device import UserDevice
from .refresh_token import RefreshToken

__all__ = [
    "EmailVerificationToken",
    "PasswordResetToken",
    "RefreshToken",
    "TokenStatus",
    "User",
    "UserDevice",
]
