"""Helpers for the password reset token lifecycle."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from account_core.core.config import settings
from account_core.core.security import generate_token_value, hash_token
from account_core.models.password_reset_token import PasswordResetToken
from account_core.models.user import User
from account_core.services.tokens import IssuedToken, append_query, ensure_unexpired

TOKEN_KIND = "Password reset token"


def issue_password_reset_token(
    db: Session,
    user: User,
    *,
    now: datetime,
    expires_in: timedelta | None = None,
    token_factory: Callable[[], str] = generate_token_value,
    single_active: bool | None = None,
) -> IssuedToken[PasswordResetToken]:
    """Create and stage a reset token for the user.

    Outstanding tokens stay valid unless ``single_active`` (defaulting to
    ``PASSWORD_RESET_SINGLE_ACTIVE_TOKEN``) asks for them to be discarded.
    """

    if single_active is None:
        single_active = settings.password_reset_single_active_token
    if single_active:
        discard_password_reset_tokens(db, user.id)

    expiry = expires_in or timedelta(minutes=settings.password_reset_token_expire_minutes)
    raw_token = token_factory()
    record = PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        expires_at=now + expiry,
    )
    db.add(record)
    db.flush()
    return IssuedToken(value=raw_token, record=record)


def find_password_reset_token(db: Session, raw_token: str) -> Optional[PasswordResetToken]:
    statement = select(PasswordResetToken).where(
        PasswordResetToken.token_hash == hash_token(raw_token),
    )
    return db.execute(statement).scalar_one_or_none()


def verify_expiration(token: PasswordResetToken, *, now: datetime) -> None:
    ensure_unexpired(token.expires_at, now, TOKEN_KIND)


def discard_password_reset_tokens(db: Session, user_id: uuid.UUID) -> int:
    """Hard-delete every reset token held by the user."""

    result = db.execute(
        delete(PasswordResetToken)
        .where(PasswordResetToken.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def build_password_reset_link(token: str) -> str:
    return append_query(settings.password_reset_base_url, token=token)


__all__ = [
    "TOKEN_KIND",
    "build_password_reset_link",
    "discard_password_reset_tokens",
    "find_password_reset_token",
    "issue_password_reset_token",
    "verify_expiration",
]
