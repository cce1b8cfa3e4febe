"""Authentication dependencies for API routes."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from account_core.core.config import settings
from account_core.core.tokens import AccessTokenCodec, InvalidAccessTokenError, get_token_codec
from account_core.db.session import get_db
from account_core.services.auth import AuthService
from account_core.services.authenticator import Principal
from account_core.services.users import get_user_by_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def _credentials_exception() -> HTTPException:
    """Return a standardised HTTP 401 exception for auth failures."""

    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    codec: Annotated[AccessTokenCodec, Depends(get_token_codec)],
) -> AuthService:
    return AuthService(db, codec=codec)


def require_active_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
    codec: Annotated[AccessTokenCodec, Depends(get_token_codec)],
) -> Principal:
    """Validate a bearer token and return the principal it was issued to."""

    try:
        claims = codec.decode_access_token(token)
    except InvalidAccessTokenError as exc:
        raise _credentials_exception() from exc

    try:
        user_id = uuid.UUID(claims.subject)
    except ValueError as exc:
        raise _credentials_exception() from exc

    user = get_user_by_id(db, user_id)
    if user is None:
        raise _credentials_exception()

    if settings.require_verified_email_for_login and not user.is_email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address must be confirmed before accessing this resource.",
        )

    return Principal.for_user(user)


__all__ = ["get_auth_service", "oauth2_scheme", "require_active_user"]
