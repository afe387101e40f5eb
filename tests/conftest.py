"""
Shared fixtures: settings backed by a per-test SQLite file, a capturing mailer,
an HTTP client and direct service access.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from authsvc.config.database import create_engine_from_settings, create_session_factory, init_models
from authsvc.config.settings import load_settings
from authsvc.main import create_app
from authsvc.services.token_service import TokenIssuer
from authsvc.services.user_store import UserStore


class FakeMailer:
    """Records OTP mails instead of talking to an SMTP server."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_otp(self, user, otp: str, expire_minutes: int) -> None:
        self.sent.append({"email": user.email, "otp": otp, "minutes": expire_minutes})

    @property
    def last_otp(self) -> str:
        return self.sent[-1]["otp"]


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime.utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        _env_file=None,
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}",
        email_from="noreply@authsvc.io",
        smtp_host="smtp.authsvc.io",
        smtp_username="mailer",
        smtp_password="mailer-password",
    )


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer(settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def client(settings, mailer):
    app = create_app(settings)
    app.state.mailer = mailer
    with TestClient(app) as c:
        yield c


@pytest_asyncio.fixture
async def session_factory(settings):
    engine = create_engine_from_settings(settings)
    await init_models(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    async with session_factory() as session:
        yield UserStore(session)
