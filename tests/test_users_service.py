"""Unit tests for user repository helpers."""

from __future__ import annotations

import uuid

import pytest
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from account_core.core.security import PasslibPasswordHasher
from account_core.models.user import User
from account_core.schemas.auth import RegistrationRequest
from account_core.services.users import (
    build_user,
    email_exists,
    get_user_by_email,
    get_user_by_id,
    normalize_email,
    save_user,
)

FAST_HASHER = PasslibPasswordHasher(CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


def _create_user(db: Session, email: str = "user@example.com", password: str = "secret123") -> User:
    user = build_user(RegistrationRequest(email=email, password=password), FAST_HASHER)
    save_user(db, user)
    db.commit()
    db.refresh(user)
    return user


def test_normalize_email_trims_and_lowercases() -> None:
    assert normalize_email("  Someone@Example.COM ") == "someone@example.com"


def test_build_user_hashes_password_and_starts_unverified() -> None:
    user = build_user(RegistrationRequest(email="New@Example.com", password="secret123"), FAST_HASHER)

    assert user.email == "new@example.com"
    assert user.is_email_verified is False
    assert FAST_HASHER.matches(user.hashed_password, "secret123")


def test_email_exists_is_case_insensitive(db_session: Session) -> None:
    _create_user(db_session, "case@example.com")

    assert email_exists(db_session, "CASE@example.com") is True
    assert email_exists(db_session, "other@example.com") is False


def test_lookups_by_email_and_id(db_session: Session) -> None:
    user = _create_user(db_session)

    assert get_user_by_email(db_session, "USER@example.com").id == user.id
    assert get_user_by_id(db_session, user.id) is user
    assert get_user_by_id(db_session, uuid.uuid4()) is None


def test_save_user_surfaces_unique_violation(db_session: Session) -> None:
    _create_user(db_session, "taken@example.com")

    with pytest.raises(IntegrityError):
        save_user(db_session, User(email="taken@example.com", hashed_password="x"))
    db_session.rollback()
