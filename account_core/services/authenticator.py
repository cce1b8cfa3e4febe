"""Credential verification and the authenticated principal handle."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from account_core.core.security import PasswordHasher
from account_core.models.user import User
from account_core.services.errors import InvalidCredentialsError
from account_core.services.users import get_user_by_email


@dataclass(frozen=True)
class Principal:
    """Identity produced by successful credential verification."""

    user_id: uuid.UUID
    email: str
    user: User

    @classmethod
    def for_user(cls, user: User) -> "Principal":
        return cls(user_id=user.id, email=user.email, user=user)


class Authenticator(Protocol):
    def authenticate(self, email: str, password: str) -> Principal:
        ...


class PasswordAuthenticator:
    """Compare an email/password pair against the stored credential hash."""

    def __init__(self, db: Session, hasher: PasswordHasher) -> None:
        self._db = db
        self._hasher = hasher

    def authenticate(self, email: str, password: str) -> Principal:
        user = get_user_by_email(self._db, email)
        if user is None or not self._hasher.matches(user.hashed_password, password):
            raise InvalidCredentialsError("Invalid email or password.")
        return Principal.for_user(user)


__all__ = ["Authenticator", "PasswordAuthenticator", "Principal"]
