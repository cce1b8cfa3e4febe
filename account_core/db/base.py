"""SQLAlchemy declarative base for ORM models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Import model modules so SQLAlchemy registers the mappers during startup.
from account_core.models import (  # noqa: E402,F401
    email_verification_token,
    password_reset_token,
    refresh_token,
    user,
    user_device,
)


__all__ = ["Base"]
