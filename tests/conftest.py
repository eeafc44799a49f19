"""
Shared test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during tests, and provides the in-memory database plus a seeding helper for
the four principal collections.
"""

import pytest

from config import (
    AppSettings,
    DatabaseSettings,
    JWTSettings,
    LoggingSettings,
    OTPSettings,
    SentrySettings,
    SmsSettings,
)
from repositories.credential_store import COLLECTIONS
from schemas.models.user import Role
from shared.crypto import hash_password
from shared.datetime_utils import utcnow
from tests.fakes import TEST_SECRET, FakeDatabase, FrozenClock, RecordingSmsProvider


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=JWTSettings(jwt_secret=TEST_SECRET),
        otp=OTPSettings(),
        sms=SmsSettings(),
        logging=LoggingSettings(),
        sentry=SentrySettings(),
        cleanup_legacy_tokens=False,
    )


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(utcnow().replace(microsecond=0))


@pytest.fixture
def sms() -> RecordingSmsProvider:
    return RecordingSmsProvider()


@pytest.fixture
def seed_user(db):
    """Insert a principal source record; returns its id as a string."""

    async def _seed(role: Role, email: str, /, password: str = "Secret123!", **fields) -> str:
        collection_name, _ = COLLECTIONS[role]
        doc = {"email": email, "password": hash_password(password), **fields}
        result = await db[collection_name].insert_one(doc)
        return str(result.inserted_id)

    return _seed
