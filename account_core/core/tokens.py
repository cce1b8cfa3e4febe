"""Signed access-token codec."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt

from account_core.core.clock import Clock, utc_now
from account_core.core.config import Settings, settings

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
ACCESS_TOKEN_TYPE = "access"
_DEV_SECRET = "dev-secret-key"


class SigningKeyError(RuntimeError):
    """Raised at startup when the signing configuration is unusable."""


class InvalidAccessTokenError(Exception):
    """Raised when an access token cannot be decoded or has expired."""


@dataclass(frozen=True)
class AccessTokenClaims:
    """Claims carried by a decoded access token."""

    subject: str
    issued_at: datetime
    expires_at: datetime


class AccessTokenCodec:
    """Issue and parse signed, time-limited access tokens.

    The codec is a pure function of the signing key, the claims and the
    injected clock. Expiry is checked against that clock rather than the
    wall clock so tests can drive it deterministically.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(minutes=30),
        clock: Clock = utc_now,
    ) -> None:
        if not secret_key:
            raise SigningKeyError("JWT signing key must not be empty.")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise SigningKeyError(f"Unsupported JWT algorithm '{algorithm}'.")
        if expires_delta <= timedelta(0):
            raise SigningKeyError("Access token lifetime must be positive.")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expires_delta = expires_delta
        self._clock = clock

    @property
    def expires_delta(self) -> timedelta:
        return self._expires_delta

    def issue_access_token(self, user_id: Any) -> str:
        """Create a signed JWT access token for a user identifier."""

        issued_at = self._clock()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._expires_delta).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_access_token(self, token: str) -> AccessTokenClaims:
        """Validate a token's signature, type and expiry and return its claims."""

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            raise InvalidAccessTokenError("Access token could not be decoded.") from exc

        subject = payload.get("sub")
        expires = payload.get("exp")
        if payload.get("type") != ACCESS_TOKEN_TYPE or not subject or not isinstance(expires, int):
            raise InvalidAccessTokenError("Access token is malformed.")

        expires_at = datetime.fromtimestamp(expires, tz=timezone.utc)
        if self._clock() >= expires_at:
            raise InvalidAccessTokenError("Access token has expired.")

        issued_at = datetime.fromtimestamp(int(payload.get("iat", 0)), tz=timezone.utc)
        return AccessTokenClaims(subject=str(subject), issued_at=issued_at, expires_at=expires_at)


def build_token_codec(config: Settings, *, clock: Clock = utc_now) -> AccessTokenCodec:
    """Construct a codec from settings, failing fast on misconfiguration."""

    if config.secret_key == _DEV_SECRET:
        logger.warning("JWT_SECRET_KEY is using the development default")
    return AccessTokenCodec(
        config.secret_key,
        algorithm=config.jwt_algorithm,
        expires_delta=timedelta(minutes=config.access_token_expire_minutes),
        clock=clock,
    )


@lru_cache(maxsize=1)
def get_token_codec() -> AccessTokenCodec:
    """Return the process-wide codec built from the application settings."""

    return build_token_codec(settings)


__all__ = [
    "AccessTokenClaims",
    "AccessTokenCodec",
    "InvalidAccessTokenError",
    "SigningKeyError",
    "build_token_codec",
    "get_token_codec",
]
