"""Translate workflow results into HTTP responses."""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, status

from account_core.services.errors import (
    AuthError,
    DeviceNotFoundError,
    DeviceRevokedError,
    EmailExistsError,
    InvalidCredentialsError,
    PersistenceFailureError,
    RefreshLimitExceededError,
    TokenExpiredError,
    TokenNotFoundError,
    UserNotFoundError,
)
from account_core.services.results import Failure, Result

T = TypeVar("T")

_STATUS_BY_ERROR: dict[type[AuthError], int] = {
    EmailExistsError: status.HTTP_400_BAD_REQUEST,
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    TokenNotFoundError: status.HTTP_404_NOT_FOUND,
    DeviceNotFoundError: status.HTTP_404_NOT_FOUND,
    TokenExpiredError: status.HTTP_410_GONE,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    DeviceRevokedError: status.HTTP_403_FORBIDDEN,
    RefreshLimitExceededError: status.HTTP_403_FORBIDDEN,
    PersistenceFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(error: AuthError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    if isinstance(error, PersistenceFailureError):
        detail = "Service temporarily unavailable. Please try again."
    else:
        detail = str(error)
    return HTTPException(status_code=status_code, detail=detail)


def unwrap(result: Result[T]) -> T:
    """Return the success value or raise the matching ``HTTPException``."""

    if isinstance(result, Failure):
        raise http_error(result.error)
    return result.value


__all__ = ["http_error", "unwrap"]
