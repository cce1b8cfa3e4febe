"""Repository helpers for interacting with user records."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from account_core.core.security import PasswordHasher
from account_core.models.user import User
from account_core.schemas.auth import RegistrationRequest


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_exists(db: Session, email: str) -> bool:
    """Return whether an account already uses this email address."""

    statement = select(exists().where(User.email == normalize_email(email)))
    return bool(db.execute(statement).scalar())


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Fetch a user by email address."""

    statement = select(User).where(User.email == normalize_email(email))
    return db.execute(statement).scalar_one_or_none()


def get_user_by_id(db: Session, user_id: uuid.UUID) -> Optional[User]:
    return db.get(User, user_id)


def build_user(request: RegistrationRequest, hasher: PasswordHasher) -> User:
    """Create an unsaved, unverified user from registration input."""

    return User(
        email=normalize_email(str(request.email)),
        hashed_password=hasher.hash(request.password),
        is_email_verified=False,
    )


def save_user(db: Session, user: User) -> User:
    """Stage the user and flush so constraint violations surface immediately."""

    db.add(user)
    db.flush()
    return user


__all__ = [
    "build_user",
    "email_exists",
    "get_user_by_email",
    "get_user_by_id",
    "normalize_email",
    "save_user",
]
