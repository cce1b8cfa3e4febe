"""Security helpers for password hashing and opaque token generation."""

from __future__ import annotations

import hashlib
import secrets
from typing import Protocol

from passlib.context import CryptContext

from account_core.core.config import settings


_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class PasswordHasher(Protocol):
    """Hashing primitive used for stored credentials."""

    def hash(self, plain: str) -> str:
        ...

    def matches(self, hashed: str, plain: str) -> bool:
        ...


class PasslibPasswordHasher:
    """Password hasher backed by a passlib ``CryptContext``."""

    def __init__(self, context: CryptContext | None = None) -> None:
        self._context = context or _pwd_context

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def matches(self, hashed: str, plain: str) -> bool:
        if not hashed:
            return False
        return self._context.verify(plain, hashed)


def generate_token_value() -> str:
    """Return an unpredictable URL-safe value for opaque tokens."""

    return secrets.token_urlsafe(settings.opaque_token_bytes)


def hash_token(raw_token: str) -> str:
    """Digest an opaque token for storage and lookup."""

    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


__all__ = [
    "PasslibPasswordHasher",
    "PasswordHasher",
    "generate_token_value",
    "hash_token",
]
