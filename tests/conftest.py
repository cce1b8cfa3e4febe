"""Shared pytest fixtures for account service tests."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import main  # noqa: E402
from account_core.core.config import settings  # noqa: E402
from account_core.core.security import PasslibPasswordHasher  # noqa: E402
from account_core.core.tokens import AccessTokenCodec, get_token_codec  # noqa: E402
from account_core.db.base import Base  # noqa: E402
from account_core.db.session import get_db  # noqa: E402
from account_core.api.dependencies import get_auth_service  # noqa: E402
from account_core.models.user import User  # noqa: E402
from account_core.schemas.auth import RegistrationRequest  # noqa: E402
from account_core.services.auth import AuthService  # noqa: E402


@compiles(UUID, "sqlite")
def compile_uuid_sqlite(_element, _compiler, **_kw) -> str:
    """Render UUID columns as TEXT for the SQLite test database."""

    return "TEXT"


TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    bind=test_engine,
    autocommit=False,
    autoflush=False,
    future=True,
)

Base.metadata.create_all(bind=test_engine)

# Minimum bcrypt cost keeps the suite fast.
FAST_HASHER = PasslibPasswordHasher(CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


class FrozenClock:
    """Controllable time source; starts at a fixed UTC instant."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class SyncASGITestClient:
    """Synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app) -> None:
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def __enter__(self) -> "SyncASGITestClient":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture(autouse=True)
def verify_connection_tracker(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, int], None, None]:
    """Track how many times the startup connection verifier is called."""

    tracker = {"calls": 0, "migrations": 0}

    def fake_verify_connection() -> None:
        tracker["calls"] += 1

    def fake_run_migrations() -> None:
        tracker["migrations"] += 1

    monkeypatch.setattr(main, "verify_connection", fake_verify_connection)
    monkeypatch.setattr(main, "run_migrations", fake_run_migrations)
    yield tracker


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    """Provide a clean database session for each test."""

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def codec(clock: FrozenClock) -> AccessTokenCodec:
    return AccessTokenCodec(
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        clock=clock,
    )


@pytest.fixture()
def auth_service(db_session: Session, codec: AccessTokenCodec, clock: FrozenClock) -> AuthService:
    return AuthService(db_session, codec=codec, hasher=FAST_HASHER, clock=clock)


@pytest.fixture(autouse=True)
def override_dependencies(
    db_session: Session,
    codec: AccessTokenCodec,
    auth_service: AuthService,
) -> Generator[None, None, None]:
    """Point the FastAPI dependencies at the test session, codec and clock."""

    def _get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            pass

    main.app.dependency_overrides[get_db] = _get_db
    main.app.dependency_overrides[get_token_codec] = lambda: codec
    main.app.dependency_overrides[get_auth_service] = lambda: auth_service
    yield
    main.app.dependency_overrides.clear()


@pytest.fixture()
def client() -> Generator[SyncASGITestClient, None, None]:
    """Synchronous test client backed by httpx's ASGI transport."""

    with SyncASGITestClient(main.app) as test_client:
        yield test_client


@pytest.fixture()
def user_credentials() -> dict[str, str]:
    """Default credentials used to register/login test users."""

    return {"email": "user@example.com", "password": "secret123"}


@pytest.fixture()
def device_info() -> dict[str, str]:
    return {"device_id": "device-1", "device_type": "ios", "notification_token": "push-1"}


@pytest.fixture(autouse=True)
def capture_outbound_email(monkeypatch: pytest.MonkeyPatch) -> Generator[list[dict[str, str]], None, None]:
    """Record outbound confirmation and reset emails for assertions."""

    sent: list[dict[str, str]] = []

    def _capture(kind: str):
        def _send(recipient: str, link: str) -> None:
            sent.append({"kind": kind, "recipient": recipient, "link": link})

        return _send

    monkeypatch.setattr(
        "account_core.api.routes.auth.send_confirmation_email", _capture("confirmation")
    )
    monkeypatch.setattr(
        "account_core.api.routes.auth.send_password_reset_email", _capture("password_reset")
    )
    yield sent


def create_user(
    service: AuthService,
    email: str = "user@example.com",
    password: str = "secret123",
    *,
    verified: bool = True,
) -> User:
    """Register a user through the service, optionally marking it verified."""

    result = service.register(RegistrationRequest(email=email, password=password))
    assert result.ok, result
    user = result.value
    if verified:
        user.is_email_verified = True
        user.email_verified_at = service.clock()
        service.db.commit()
    return user


@pytest.fixture()
def verified_user(auth_service: AuthService, user_credentials: dict[str, str]) -> User:
    return create_user(auth_service, **user_credentials)


@pytest.fixture()
def login_tokens(
    client: SyncASGITestClient,
    verified_user: User,
    user_credentials: dict[str, str],
    device_info: dict[str, str],
) -> dict[str, str]:
    """Log the verified user in on ``device_info`` and return the token payload."""

    response = client.post(
        "/api/v1/auth/login",
        json={**user_credentials, "device_info": device_info},
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture()
def auth_headers(login_tokens: dict[str, str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {login_tokens['access_token']}"}


@pytest.fixture()
def make_user(auth_service: AuthService):
    """Factory fixture wrapping ``create_user`` for the test's service."""

    def _make(email: str = "user@example.com", password: str = "secret123", *, verified: bool = True) -> User:
        return create_user(auth_service, email, password, verified=verified)

    return _make
