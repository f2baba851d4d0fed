"""
tests/conftest.py -- Shared fixtures for the campus events API tests.

  - mongoengine is connected once per session to an in-memory mongomock client;
    every collection is dropped after each test.
  - The application lifespan is replaced by one that wires test settings, a
    real TokenService and a recording notifier into app.state, so no SMTP,
    Mongo or Redis server is needed.
  - Redis is a MagicMock: cache misses always, rate-limit windows are always open.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient
from mongoengine import connect, disconnect

import app.connections.redis as redis_connection
from app.models.booking import Booking
from app.models.cart import Cart
from app.models.event import Event
from app.models.order import Order
from app.models.user import User
from app.services.auth import hash_password
from app.services.token import TokenService
from app.utils.base.errors import EmailDeliveryError
from app.utils.config import Settings
from main import app

DOCUMENTS = (User, Event, Booking, Cart, Order)


class RecordingNotifier:
    """Stands in for EmailNotifier; remembers every delivery attempt."""

    def __init__(self) -> None:
        self.attempts: list[tuple[str, str]] = []
        self.otps: dict[str, str] = {}
        self.reset_tokens: dict[str, str] = {}
        self.fail = False

    def send_verification_otp(self, to: str, otp: str) -> None:
        self.attempts.append(("otp", to))
        if self.fail:
            raise EmailDeliveryError()
        self.otps[to] = otp

    def send_password_reset(self, to: str, name: str, token: str) -> None:
        self.attempts.append(("reset", to))
        if self.fail:
            raise EmailDeliveryError()
        self.reset_tokens[to] = token


@pytest.fixture(scope="session", autouse=True)
def mongo() -> Generator[None, None, None]:
    connect("campus_test", host="mongodb://localhost", alias="default", mongo_client_class=mongomock.MongoClient)
    yield
    disconnect(alias="default")


@pytest.fixture(autouse=True)
def clean_collections(mongo) -> Generator[None, None, None]:
    yield
    for document in DOCUMENTS:
        document.drop_collection()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        debug=False,
        jwt_secret_key="test-secret-key-that-is-long-enough-for-hs256",
        jwt_expires_in_days=1,
        frontend_url="https://campus.test",
    )


@pytest.fixture
def tokens(test_settings: Settings) -> TokenService:
    return TokenService.from_settings(test_settings)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def redis_client() -> MagicMock:
    client = MagicMock()
    client.ttl.return_value = -2
    client.get.return_value = None
    client.setex.return_value = True
    client.delete.return_value = 0
    return client


@pytest.fixture
def client(
    test_settings: Settings,
    tokens: TokenService,
    notifier: RecordingNotifier,
    redis_client: MagicMock,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[TestClient, None, None]:
    monkeypatch.setattr(redis_connection, "_redis_client", redis_client)

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = test_settings
        app.state.token_service = tokens
        app.state.notifier = notifier
        yield

    original = app.router.lifespan_context
    app.router.lifespan_context = test_lifespan
    with TestClient(app) as test_client:
        yield test_client
    app.router.lifespan_context = original


@pytest.fixture
def make_user() -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(
        role: str = "student",
        email: str | None = None,
        password: str = "Password1",
        verified: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=f"{role.title()} {counter['n']}",
            email=email or f"{role}{counter['n']}@campus.edu",
            role=role,
            password=hash_password(password),
            is_verified=verified,
        )
        user.save()
        return user

    return _make_user


@pytest.fixture
def auth_headers(tokens: TokenService) -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens.issue(str(user.id))}"}

    return _headers
