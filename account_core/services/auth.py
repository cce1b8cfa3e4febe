"""Account workflows composed from the token stores and the device registry.

Every public workflow runs as one transaction against the session it was
given: the work is committed when it completes and rolled back when it
raises. Expected failures come back as ``Failure`` values carrying a typed
``AuthError``; store faults are reported as ``PersistenceFailureError``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from account_core.core.clock import Clock, utc_now
from account_core.core.config import Settings, settings
from account_core.core.security import PasslibPasswordHasher, PasswordHasher, generate_token_value
from account_core.core.tokens import AccessTokenCodec, build_token_codec
from account_core.models.email_verification_token import EmailVerificationToken, TokenStatus
from account_core.models.password_reset_token import PasswordResetToken
from account_core.models.refresh_token import RefreshToken
from account_core.models.user import User
from account_core.models.user_device import UserDevice
from account_core.schemas.auth import (
    DeviceInfo,
    LoginRequest,
    LogoutRequest,
    PasswordResetLinkRequest,
    PasswordResetRequest,
    RegistrationRequest,
    TokenRefreshRequest,
    UpdatePasswordRequest,
)
from account_core.services import devices, email_verification, password_reset
from account_core.services.authenticator import Authenticator, PasswordAuthenticator, Principal
from account_core.services.errors import (
    AuthError,
    DeviceNotFoundError,
    EmailExistsError,
    InvalidCredentialsError,
    PersistenceFailureError,
    TokenExpiredError,
    TokenNotFoundError,
    UserNotFoundError,
)
from account_core.services.results import Failure, Result, Success
from account_core.services.tokens import IssuedToken
from account_core.services.users import (
    build_user,
    email_exists,
    get_user_by_email,
    normalize_email,
    save_user,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthService:
    """Registration, login, verification, refresh and password workflows."""

    def __init__(
        self,
        db: Session,
        *,
        config: Settings | None = None,
        codec: AccessTokenCodec | None = None,
        hasher: PasswordHasher | None = None,
        authenticator: Authenticator | None = None,
        clock: Clock = utc_now,
        token_factory: Callable[[], str] = generate_token_value,
    ) -> None:
        self.db = db
        self.config = config or settings
        self.clock = clock
        self.hasher = hasher or PasslibPasswordHasher()
        self.codec = codec or build_token_codec(self.config, clock=clock)
        self.authenticator = authenticator or PasswordAuthenticator(db, self.hasher)
        self.token_factory = token_factory

    def _run(self, operation: str, work: Callable[[], T], *, attempts: int = 1) -> Result[T]:
        attempt = 1
        while True:
            try:
                value = work()
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if attempt < attempts:
                    logger.warning(
                        "%s conflicted with a concurrent write (attempt %d/%d), retrying",
                        operation,
                        attempt,
                        attempts,
                    )
                    attempt += 1
                    continue
                logger.error("%s failed on a constraint violation", operation, exc_info=exc)
                return self._persistence_failure(operation, exc)
            except AuthError as exc:
                self.db.rollback()
                logger.info("%s failed: %s", operation, exc.code)
                return Failure(exc)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("%s failed in the persistence layer", operation)
                return self._persistence_failure(operation, exc)
            return Success(value)

    def _verification_ttl(self) -> timedelta:
        return timedelta(minutes=self.config.email_verification_token_expire_minutes)

    @staticmethod
    def _persistence_failure(operation: str, exc: Exception) -> Failure:
        error = PersistenceFailureError(f"{operation} could not be persisted.")
        error.__cause__ = exc
        return Failure(error)

    def _create_user(self, request: RegistrationRequest) -> User:
        email = normalize_email(str(request.email))
        if email_exists(self.db, email):
            raise EmailExistsError(email)
        user = build_user(request, self.hasher)
        try:
            save_user(self.db, user)
        except IntegrityError as exc:
            raise EmailExistsError(email) from exc
        logger.info("Registered user %s", user.id)
        return user

    def _issue_verification(self, user: User) -> IssuedToken[EmailVerificationToken]:
        return email_verification.issue_verification_token(
            self.db,
            user,
            now=self.clock(),
            expires_in=self._verification_ttl(),
            token_factory=self.token_factory,
        )

    def register(self, request: RegistrationRequest) -> Result[User]:
        """Create an unverified user; the email must not be on file yet."""

        return self._run("register", lambda: self._create_user(request))

    def register_with_verification(
        self, request: RegistrationRequest
    ) -> Result[tuple[User, IssuedToken[EmailVerificationToken]]]:
        """Register and issue the first verification token in one transaction.

        Either both the user and its token are stored or neither is, so a
        failed issue never leaves an account nobody can confirm.
        """

        def work() -> tuple[User, IssuedToken[EmailVerificationToken]]:
            user = self._create_user(request)
            return user, self._issue_verification(user)

        return self._run("register_with_verification", work)

    def authenticate(self, request: LoginRequest) -> Result[Principal]:
        return self._run(
            "authenticate",
            lambda: self.authenticator.authenticate(str(request.email), request.password),
        )

    def issue_email_verification(self, user: User) -> Result[IssuedToken[EmailVerificationToken]]:
        return self._run("issue_email_verification", lambda: self._issue_verification(user))

    def confirm_email(self, raw_token: str) -> Result[User]:
        """Consume a verification token and mark its owner verified.

        Confirming for a user who is already verified succeeds without any
        write, so repeated calls with the same token are harmless.
        """

        def work() -> User:
            token = email_verification.find_verification_token(self.db, raw_token)
            if token is None:
                raise TokenNotFoundError(email_verification.TOKEN_KIND)

            user = token.user
            if user.is_email_verified:
                logger.info("User %s already verified", user.id)
                return user

            email_verification.verify_expiration(token, now=self.clock())
            if token.status == TokenStatus.EXPIRED:
                raise TokenExpiredError(email_verification.TOKEN_KIND)

            if not email_verification.confirm_verification_token(self.db, token, now=self.clock()):
                logger.info("User %s was verified by a concurrent request", user.id)
            return user

        return self._run("confirm_email", work)

    def recreate_registration_token(
        self, raw_token: str
    ) -> Result[Optional[IssuedToken[EmailVerificationToken]]]:
        """Refresh an unconfirmed token; ``Success(None)`` means nothing to do."""

        def work() -> Optional[IssuedToken[EmailVerificationToken]]:
            token = email_verification.find_verification_token(self.db, raw_token)
            if token is None:
                raise TokenNotFoundError(email_verification.TOKEN_KIND)
            issued = email_verification.regenerate_verification_token(
                self.db,
                token,
                now=self.clock(),
                expires_in=self._verification_ttl(),
                token_factory=self.token_factory,
            )
            if issued is None:
                logger.info("Verification token for user %s already confirmed", token.user_id)
            return issued

        return self._run("recreate_registration_token", work)

    def update_password(self, principal: Principal, request: UpdatePasswordRequest) -> Result[User]:
        def work() -> User:
            user = get_user_by_email(self.db, principal.email)
            if user is None:
                raise UserNotFoundError(f"No matching user found: {principal.email}")
            if not self.hasher.matches(user.hashed_password, request.old_password):
                raise InvalidCredentialsError("Current password is incorrect.")
            user.hashed_password = self.hasher.hash(request.new_password)
            self.db.add(user)
            self.db.flush()
            return user

        return self._run("update_password", work)

    def generate_access_token(self, principal: Principal) -> str:
        return self.codec.issue_access_token(principal.user_id)

    def create_refresh_token_for_device(
        self, principal: Principal, device_info: DeviceInfo
    ) -> Result[IssuedToken[RefreshToken]]:
        """Open a session for the device, superseding any previous one.

        A session already held by the same device identifier is deleted
        before the new device and refresh token are stored; other devices of
        the user are untouched. When a concurrent login for the same device
        wins the unique (user, device) constraint, the whole step is retried.
        """

        def work() -> IssuedToken[RefreshToken]:
            for existing in devices.find_devices_by_user(self.db, principal.user_id):
                if existing.device_id == device_info.device_id:
                    logger.info("Superseding session of user %s on an existing device", principal.user_id)
                    devices.delete_device(self.db, existing)

            device = devices.create_device(device_info)
            issued = devices.create_refresh_token(
                now=self.clock(),
                expires_in=timedelta(minutes=self.config.refresh_token_expire_minutes),
                token_factory=self.token_factory,
            )
            device.user_id = principal.user_id
            device.refresh_token = issued.record
            self.db.add(device)
            self.db.flush()
            return issued

        return self._run(
            "create_refresh_token_for_device",
            work,
            attempts=max(1, self.config.device_login_max_attempts),
        )

    def refresh_access_token(self, request: TokenRefreshRequest) -> Result[str]:
        """Exchange a refresh token for a new access token.

        Expiry, device availability and the use-count increment run in that
        order against the same record; each must pass before the next runs.
        """

        def work() -> str:
            token = devices.find_refresh_token(self.db, request.refresh_token)
            if token is None:
                raise TokenNotFoundError(devices.TOKEN_KIND)
            max_uses = self.config.refresh_token_max_uses
            devices.verify_expiration(token, now=self.clock())
            devices.verify_refresh_availability(token, max_uses=max_uses)
            devices.increase_count(self.db, token, max_uses=max_uses)
            return self.codec.issue_access_token(token.user_device.user_id)

        return self._run("refresh_access_token", work)

    def generate_password_reset_token(
        self, request: PasswordResetLinkRequest
    ) -> Result[IssuedToken[PasswordResetToken]]:
        def work() -> IssuedToken[PasswordResetToken]:
            user = get_user_by_email(self.db, str(request.email))
            if user is None:
                raise UserNotFoundError("No matching user found for the given email.")
            return password_reset.issue_password_reset_token(
                self.db,
                user,
                now=self.clock(),
                expires_in=timedelta(minutes=self.config.password_reset_token_expire_minutes),
                token_factory=self.token_factory,
                single_active=self.config.password_reset_single_active_token,
            )

        return self._run("generate_password_reset_token", work)

    def reset_password(self, request: PasswordResetRequest) -> Result[User]:
        """Set a new password with a reset token; the user's reset tokens are then spent."""

        def work() -> User:
            token = password_reset.find_password_reset_token(self.db, request.token)
            if token is None:
                raise TokenNotFoundError(password_reset.TOKEN_KIND)
            password_reset.verify_expiration(token, now=self.clock())

            encoded = self.hasher.hash(request.password)
            user = token.user
            user.hashed_password = encoded
            self.db.add(user)
            self.db.flush()
            password_reset.discard_password_reset_tokens(self.db, user.id)
            return user

        return self._run("reset_password", work)

    def logout(self, principal: Principal, request: LogoutRequest) -> Result[None]:
        def work() -> None:
            device = devices.find_device(self.db, principal.user_id, request.device_id)
            if device is None:
                raise DeviceNotFoundError(request.device_id)
            devices.delete_device(self.db, device)

        return self._run("logout", work)

    def revoke_device(self, principal: Principal, device_id: str) -> Result[UserDevice]:
        """Block refresh for one of the user's devices without deleting it."""

        def work() -> UserDevice:
            device = devices.find_device(self.db, principal.user_id, device_id)
            if device is None:
                raise DeviceNotFoundError(device_id)
            return devices.set_refresh_active(self.db, device, False)

        return self._run("revoke_device", work)

    def list_devices(self, principal: Principal) -> list[UserDevice]:
        return devices.find_devices_by_user(self.db, principal.user_id)

    def expire_stale_verification_tokens(self) -> Result[int]:
        return self._run(
            "expire_stale_verification_tokens",
            lambda: email_verification.expire_stale_verification_tokens(self.db, now=self.clock()),
        )


__all__ = ["AuthService"]
