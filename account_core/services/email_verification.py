"""Helpers for the email verification token lifecycle."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from account_core.core.config import settings
from account_core.core.security import generate_token_value, hash_token
from account_core.models.email_verification_token import EmailVerificationToken, TokenStatus
from account_core.models.user import User
from account_core.services.errors import TokenExpiredError, TokenNotFoundError
from account_core.services.tokens import IssuedToken, append_query, ensure_unexpired

TOKEN_KIND = "Email verification token"


def _default_expiry() -> timedelta:
    return timedelta(minutes=settings.email_verification_token_expire_minutes)


def issue_verification_token(
    db: Session,
    user: User,
    *,
    now: datetime,
    expires_in: timedelta | None = None,
    token_factory: Callable[[], str] = generate_token_value,
) -> IssuedToken[EmailVerificationToken]:
    """Create and stage a new PENDING token for the user.

    Any PENDING token the user still holds is moved to EXPIRED first so at
    most one token per user can be confirmed.
    """

    db.execute(
        update(EmailVerificationToken)
        .where(
            EmailVerificationToken.user_id == user.id,
            EmailVerificationToken.status == TokenStatus.PENDING,
        )
        .values(status=TokenStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )

    raw_token = token_factory()
    record = EmailVerificationToken(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        status=TokenStatus.PENDING,
        expires_at=now + (expires_in or _default_expiry()),
    )
    db.add(record)
    db.flush()
    return IssuedToken(value=raw_token, record=record)


def find_verification_token(db: Session, raw_token: str) -> Optional[EmailVerificationToken]:
    statement = select(EmailVerificationToken).where(
        EmailVerificationToken.token_hash == hash_token(raw_token),
    )
    return db.execute(statement).scalar_one_or_none()


def verify_expiration(token: EmailVerificationToken, *, now: datetime) -> None:
    """Fail with ``TokenExpiredError`` if the token is past its expiry.

    The token status is left untouched; the caller owns the transition.
    """

    ensure_unexpired(token.expires_at, now, TOKEN_KIND)


def regenerate_verification_token(
    db: Session,
    token: EmailVerificationToken,
    *,
    now: datetime,
    expires_in: timedelta | None = None,
    token_factory: Callable[[], str] = generate_token_value,
) -> Optional[IssuedToken[EmailVerificationToken]]:
    """Give an unconfirmed token a new value and expiry.

    Returns ``None`` when the owner is already verified or the token is
    CONFIRMED. A PENDING token keeps its identity; a token already moved to
    EXPIRED is replaced by a newly issued one instead of being revived.
    """

    user = token.user
    if user.is_email_verified or token.status == TokenStatus.CONFIRMED:
        return None

    if token.status == TokenStatus.EXPIRED:
        return issue_verification_token(
            db, user, now=now, expires_in=expires_in, token_factory=token_factory
        )

    raw_token = token_factory()
    token.token_hash = hash_token(raw_token)
    token.expires_at = now + (expires_in or _default_expiry())
    db.add(token)
    db.flush()
    return IssuedToken(value=raw_token, record=token)


def confirm_verification_token(
    db: Session,
    token: EmailVerificationToken,
    *,
    now: datetime,
) -> bool:
    """Move the token to CONFIRMED and flag its owner as verified.

    The token moves first and only out of PENDING; the user flag is written
    only when that succeeded. If the token left PENDING in the meantime, its
    current status decides: EXPIRED raises ``TokenExpiredError`` and
    CONFIRMED returns ``False`` without touching the user. ``False`` is also
    returned when the user turned out to be verified already. The caller
    commits both writes in one transaction.
    """

    user = token.user
    token_result = db.execute(
        update(EmailVerificationToken)
        .where(
            EmailVerificationToken.id == token.id,
            EmailVerificationToken.status == TokenStatus.PENDING,
        )
        .values(status=TokenStatus.CONFIRMED, confirmed_at=now)
        .execution_options(synchronize_session=False)
    )
    if token_result.rowcount != 1:
        current = db.get(EmailVerificationToken, token.id, populate_existing=True)
        if current is None:
            raise TokenNotFoundError(TOKEN_KIND)
        if current.status == TokenStatus.EXPIRED:
            raise TokenExpiredError(TOKEN_KIND)
        db.expire(user)
        return False

    user_result = db.execute(
        update(User)
        .where(User.id == token.user_id, User.is_email_verified.is_(False))
        .values(is_email_verified=True, email_verified_at=now)
        .execution_options(synchronize_session=False)
    )
    db.expire(token)
    db.expire(user)
    return user_result.rowcount == 1


def expire_stale_verification_tokens(db: Session, *, now: datetime) -> int:
    """Move PENDING tokens whose expiry has passed to EXPIRED."""

    result = db.execute(
        update(EmailVerificationToken)
        .where(
            EmailVerificationToken.status == TokenStatus.PENDING,
            EmailVerificationToken.expires_at <= now,
        )
        .values(status=TokenStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def build_confirmation_link(token: str) -> str:
    """Construct the externally visible confirmation link for a token."""

    return append_query(settings.email_confirmation_base_url, token=token)


__all__ = [
    "TOKEN_KIND",
    "build_confirmation_link",
    "confirm_verification_token",
    "expire_stale_verification_tokens",
    "find_verification_token",
    "issue_verification_token",
    "regenerate_verification_token",
    "verify_expiration",
]
