"""Registry for user devices and their refresh tokens."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from account_core.core.config import settings
from account_core.core.security import generate_token_value, hash_token
from account_core.models.refresh_token import RefreshToken
from account_core.models.user_device import UserDevice
from account_core.schemas.auth import DeviceInfo
from account_core.services.errors import (
    DeviceRevokedError,
    RefreshLimitExceededError,
    TokenNotFoundError,
)
from account_core.services.tokens import IssuedToken, ensure_unexpired

TOKEN_KIND = "Refresh token"


def find_devices_by_user(db: Session, user_id: uuid.UUID) -> list[UserDevice]:
    statement = (
        select(UserDevice)
        .where(UserDevice.user_id == user_id)
        .order_by(UserDevice.created_at)
    )
    return list(db.execute(statement).scalars())


def find_device(db: Session, user_id: uuid.UUID, device_id: str) -> Optional[UserDevice]:
    statement = select(UserDevice).where(
        UserDevice.user_id == user_id,
        UserDevice.device_id == device_id,
    )
    return db.execute(statement).scalar_one_or_none()


def create_device(device_info: DeviceInfo) -> UserDevice:
    """Build an unsaved device record; the caller links user and token."""

    return UserDevice(
        device_id=device_info.device_id,
        device_type=device_info.device_type,
        notification_token=device_info.notification_token,
        is_refresh_active=True,
    )


def create_refresh_token(
    *,
    now: datetime,
    expires_in: timedelta | None = None,
    token_factory: Callable[[], str] = generate_token_value,
) -> IssuedToken[RefreshToken]:
    """Build an unsaved refresh token with a zero use count."""

    expiry = expires_in or timedelta(minutes=settings.refresh_token_expire_minutes)
    raw_token = token_factory()
    record = RefreshToken(
        token_hash=hash_token(raw_token),
        expires_at=now + expiry,
        refresh_count=0,
    )
    return IssuedToken(value=raw_token, record=record)


def delete_refresh_token(db: Session, token_id: uuid.UUID) -> None:
    db.execute(delete(RefreshToken).where(RefreshToken.id == token_id))


def delete_device(db: Session, device: UserDevice) -> None:
    """Remove a device together with the refresh token it owns."""

    token_id = db.execute(
        select(RefreshToken.id).where(RefreshToken.user_device_id == device.id)
    ).scalar_one_or_none()
    if token_id is not None:
        delete_refresh_token(db, token_id)
    db.execute(delete(UserDevice).where(UserDevice.id == device.id))


def find_refresh_token(db: Session, raw_token: str) -> Optional[RefreshToken]:
    statement = select(RefreshToken).where(RefreshToken.token_hash == hash_token(raw_token))
    return db.execute(statement).scalar_one_or_none()


def verify_expiration(token: RefreshToken, *, now: datetime) -> None:
    ensure_unexpired(token.expires_at, now, TOKEN_KIND)


def verify_refresh_availability(token: RefreshToken, *, max_uses: int | None = None) -> None:
    """Apply device-level refresh policy independently of plain expiry."""

    if max_uses is None:
        max_uses = settings.refresh_token_max_uses
    if not token.user_device.is_refresh_active:
        raise DeviceRevokedError("Refresh blocked for this device. Please log in again.")
    if max_uses and token.refresh_count >= max_uses:
        raise RefreshLimitExceededError("Refresh token use limit reached. Please log in again.")


def increase_count(db: Session, token: RefreshToken, *, max_uses: int | None = None) -> int:
    """Atomically bump the use count and return the new value.

    The increment is a single UPDATE conditional on the device still being
    refresh-active and the count being under the limit, so a concurrent
    revoke or exchange of the same token is seen by the write itself.
    """

    if max_uses is None:
        max_uses = settings.refresh_token_max_uses
    active_devices = select(UserDevice.id).where(UserDevice.is_refresh_active.is_(True))
    statement = update(RefreshToken).where(
        RefreshToken.id == token.id,
        RefreshToken.user_device_id.in_(active_devices),
    )
    if max_uses:
        statement = statement.where(RefreshToken.refresh_count < max_uses)
    result = db.execute(
        statement.values(refresh_count=RefreshToken.refresh_count + 1).execution_options(
            synchronize_session=False
        )
    )
    current = db.get(RefreshToken, token.id, populate_existing=True)
    if current is None:
        raise TokenNotFoundError(TOKEN_KIND)
    if result.rowcount != 1:
        device = db.get(UserDevice, current.user_device_id, populate_existing=True)
        if device is None or not device.is_refresh_active:
            raise DeviceRevokedError("Refresh blocked for this device. Please log in again.")
        raise RefreshLimitExceededError("Refresh token use limit reached. Please log in again.")
    return current.refresh_count


def set_refresh_active(db: Session, device: UserDevice, active: bool) -> UserDevice:
    device.is_refresh_active = active
    db.add(device)
    db.flush()
    return device


__all__ = [
    "TOKEN_KIND",
    "create_device",
    "create_refresh_token",
    "delete_device",
    "delete_refresh_token",
    "find_device",
    "find_devices_by_user",
    "find_refresh_token",
    "increase_count",
    "set_refresh_active",
    "verify_expiration",
    "verify_refresh_availability",
]
