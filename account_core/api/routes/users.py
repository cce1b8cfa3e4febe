"""Routes for the authenticated user's own account."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from account_core.api.dependencies import get_auth_service, require_active_user
from account_core.api.errors import unwrap
from account_core.schemas.auth import DeviceRead, MessageResponse, UpdatePasswordRequest, UserRead
from account_core.services import AuthService, Principal

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserRead)
def read_current_user(principal: Principal = Depends(require_active_user)) -> UserRead:
    return UserRead.model_validate(principal.user)


@router.post("/me/password", response_model=MessageResponse)
def change_password(
    payload: UpdatePasswordRequest,
    principal: Principal = Depends(require_active_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Replace the password after checking the current one."""

    unwrap(service.update_password(principal, payload))
    return MessageResponse(message="Password updated.")


@router.get("/me/devices", response_model=list[DeviceRead])
def list_devices(
    principal: Principal = Depends(require_active_user),
    service: AuthService = Depends(get_auth_service),
) -> list[DeviceRead]:
    return [DeviceRead.model_validate(device) for device in service.list_devices(principal)]


@router.post("/me/devices/{device_id}/revoke", response_model=DeviceRead)
def revoke_device(
    device_id: str,
    principal: Principal = Depends(require_active_user),
    service: AuthService = Depends(get_auth_service),
) -> DeviceRead:
    """Stop a device from exchanging its refresh token; its row is kept."""

    device = unwrap(service.revoke_device(principal, device_id))
    return DeviceRead.model_validate(device)


__all__ = ["router"]
