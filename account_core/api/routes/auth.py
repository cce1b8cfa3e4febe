"""Authentication API routes."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from account_core.api.dependencies import get_auth_service, require_active_user
from account_core.api.errors import unwrap
from account_core.api.rate_limit import limiter
from account_core.core.config import settings
from account_core.schemas.auth import (
    EmailTokenRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetLinkRequest,
    PasswordResetRequest,
    RegistrationRequest,
    TokenRefreshRequest,
    TokenResponse,
    UserRead,
)
from account_core.services import (
    AuthService,
    Failure,
    Principal,
    UserNotFoundError,
    build_confirmation_link,
    build_password_reset_link,
    send_confirmation_email,
    send_password_reset_email,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_RESET_LINK_MESSAGE = "If an account exists for this email, a reset link has been sent."


def _expires_in(service: AuthService) -> int:
    return int(service.codec.expires_delta.total_seconds())


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: RegistrationRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
) -> UserRead:
    """Register a new user and queue a confirmation email."""

    user, issued = unwrap(service.register_with_verification(payload))
    background_tasks.add_task(
        send_confirmation_email, user.email, build_confirmation_link(issued.value)
    )
    return UserRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login_user(
    request: Request,
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate by email/password and open a session for the device."""

    principal = unwrap(service.authenticate(payload))
    if settings.require_verified_email_for_login and not principal.user.is_email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address must be confirmed before logging in.",
        )

    refresh = unwrap(service.create_refresh_token_for_device(principal, payload.device_info))
    return LoginResponse(
        access_token=service.generate_access_token(principal),
        refresh_token=refresh.value,
        expires_in=_expires_in(service),
    )


@router.get("/confirm")
def confirm_email(
    token: str = Query(...),
    service: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """Validate a confirmation token and redirect to the configured URL."""

    result = service.confirm_email(token)
    if isinstance(result, Failure):
        return RedirectResponse(
            settings.email_confirmation_failure_redirect_url,
            status_code=status.HTTP_303_SEE_OTHER,
        )
    return RedirectResponse(
        settings.email_confirmation_success_redirect_url,
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/resend-confirmation", response_model=MessageResponse)
def resend_confirmation_email(
    payload: EmailTokenRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Give an unconfirmed token a fresh value and re-send the email."""

    issued = unwrap(service.recreate_registration_token(payload.token))
    if issued is None:
        return MessageResponse(message="Account is already confirmed.")

    background_tasks.add_task(
        send_confirmation_email,
        issued.record.user.email,
        build_confirmation_link(issued.value),
    )
    return MessageResponse(message="Confirmation email resent.")


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def refresh_access_token(
    request: Request,
    payload: TokenRefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    access_token = unwrap(service.refresh_access_token(payload))
    return TokenResponse(access_token=access_token, expires_in=_expires_in(service))


@router.post(
    "/password/reset-link",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(settings.login_rate_limit)
def request_password_reset(
    request: Request,
    payload: PasswordResetLinkRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Mail a reset link; the answer is the same whether or not the account exists."""

    result = service.generate_password_reset_token(payload)
    if isinstance(result, Failure):
        if isinstance(result.error, UserNotFoundError):
            logger.info("Password reset requested for an unknown email")
            return MessageResponse(message=_RESET_LINK_MESSAGE)
        unwrap(result)

    issued = result.value
    background_tasks.add_task(
        send_password_reset_email,
        issued.record.user.email,
        build_password_reset_link(issued.value),
    )
    return MessageResponse(message=_RESET_LINK_MESSAGE)


@router.post("/password/reset", response_model=MessageResponse)
def reset_password(
    payload: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    unwrap(service.reset_password(payload))
    return MessageResponse(message="Password has been reset.")


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: LogoutRequest,
    principal: Principal = Depends(require_active_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """End the session of one of the caller's devices."""

    unwrap(service.logout(principal, payload))
    return MessageResponse(message="Logged out.")


__all__ = ["router"]
