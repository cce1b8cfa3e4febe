"""User device ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import expression

from account_core.db.base import Base

if TYPE_CHECKING:
    from account_core.models.refresh_token import RefreshToken


class UserDevice(Base):
    """A client-identified session channel owning exactly one refresh token.

    The (user_id, device_id) pair is unique so concurrent logins from the
    same device cannot both persist a session.
    """

    __tablename__ = "user_devices"
    __table_args__ = (
        UniqueConstraint("user_id", "device_id", name="uq_user_devices_user_id_device_id"),
        Index("ix_user_devices_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    device_id: Mapped[str] = mapped_column(String(255), nullable=False)
    device_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notification_token: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    is_refresh_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=expression.true(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    refresh_token: Mapped[Optional["RefreshToken"]] = relationship(
        "RefreshToken",
        back_populates="user_device",
        uselist=False,
        cascade="all, delete-orphan",
    )


__all__ = ["UserDevice"]
