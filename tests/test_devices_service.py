"""Unit tests for the device and refresh token registry."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from account_core.models.refresh_token import RefreshToken
from account_core.models.user_device import UserDevice
from account_core.schemas.auth import DeviceInfo
from account_core.services import devices
from account_core.services.errors import (
    DeviceRevokedError,
    RefreshLimitExceededError,
    TokenExpiredError,
)


def _persist_session(db_session, user, clock, device_id: str = "D1", **token_kwargs):
    device = devices.create_device(DeviceInfo(device_id=device_id, device_type="android"))
    issued = devices.create_refresh_token(now=clock(), **token_kwargs)
    device.user_id = user.id
    device.refresh_token = issued.record
    db_session.add(device)
    db_session.commit()
    return device, issued


def test_create_device_starts_active() -> None:
    device = devices.create_device(
        DeviceInfo(device_id="D1", device_type="ios", notification_token="push")
    )

    assert device.is_refresh_active is True
    assert device.device_type == "ios"
    assert device.notification_token == "push"


def test_create_refresh_token_starts_unused(clock) -> None:
    issued = devices.create_refresh_token(now=clock(), expires_in=timedelta(hours=1))

    assert issued.record.refresh_count == 0
    assert issued.record.expires_at == clock() + timedelta(hours=1)
    assert issued.record.token_hash != issued.value


def test_find_refresh_token_by_raw_value(db_session, make_user, clock) -> None:
    user = make_user()
    device, issued = _persist_session(db_session, user, clock)

    found = devices.find_refresh_token(db_session, issued.value)

    assert found is not None
    assert found.user_device is device
    assert devices.find_refresh_token(db_session, "bogus") is None


def test_find_device_is_scoped_to_user(db_session, make_user, clock) -> None:
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    _persist_session(db_session, alice, clock, "shared-id")

    assert devices.find_device(db_session, alice.id, "shared-id") is not None
    assert devices.find_device(db_session, bob.id, "shared-id") is None


def test_delete_device_removes_its_token(db_session, make_user, clock) -> None:
    user = make_user()
    device, _ = _persist_session(db_session, user, clock)
    _persist_session(db_session, user, clock, "D2")

    devices.delete_device(db_session, device)
    db_session.commit()

    assert db_session.execute(select(func.count()).select_from(UserDevice)).scalar_one() == 1
    assert db_session.execute(select(func.count()).select_from(RefreshToken)).scalar_one() == 1


def test_verify_expiration(db_session, make_user, clock) -> None:
    user = make_user()
    _, issued = _persist_session(db_session, user, clock, expires_in=timedelta(minutes=1))

    devices.verify_expiration(issued.record, now=clock())
    with pytest.raises(TokenExpiredError):
        devices.verify_expiration(issued.record, now=clock() + timedelta(minutes=1))


def test_verify_refresh_availability(db_session, make_user, clock) -> None:
    user = make_user()
    device, issued = _persist_session(db_session, user, clock)

    devices.verify_refresh_availability(issued.record, max_uses=0)

    issued.record.refresh_count = 3
    with pytest.raises(RefreshLimitExceededError):
        devices.verify_refresh_availability(issued.record, max_uses=3)

    devices.set_refresh_active(db_session, device, False)
    with pytest.raises(DeviceRevokedError):
        devices.verify_refresh_availability(issued.record, max_uses=0)


def test_increase_count_returns_new_value(db_session, make_user, clock) -> None:
    user = make_user()
    _, issued = _persist_session(db_session, user, clock)

    assert devices.increase_count(db_session, issued.record, max_uses=0) == 1
    assert devices.increase_count(db_session, issued.record, max_uses=0) == 2
    db_session.commit()

    assert issued.record.refresh_count == 2


def test_increase_count_is_bounded_by_limit(db_session, make_user, clock) -> None:
    user = make_user()
    _, issued = _persist_session(db_session, user, clock)

    assert devices.increase_count(db_session, issued.record, max_uses=1) == 1
    with pytest.raises(RefreshLimitExceededError):
        devices.increase_count(db_session, issued.record, max_uses=1)
    db_session.commit()

    assert issued.record.refresh_count == 1


def test_increase_count_refuses_inactive_device(db_session, make_user, clock) -> None:
    user = make_user()
    device, issued = _persist_session(db_session, user, clock)
    db_session.execute(
        update(UserDevice)
        .where(UserDevice.id == device.id)
        .values(is_refresh_active=False)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(DeviceRevokedError):
        devices.increase_count(db_session, issued.record, max_uses=0)
    db_session.commit()

    assert issued.record.refresh_count == 0


def test_find_devices_by_user_lists_every_device(db_session, make_user, clock) -> None:
    user = make_user()
    _persist_session(db_session, user, clock, "D1")
    _persist_session(db_session, user, clock, "D2")

    found = {device.device_id for device in devices.find_devices_by_user(db_session, user.id)}

    assert found == {"D1", "D2"}
