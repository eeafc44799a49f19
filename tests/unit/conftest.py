"""
Unit test fixtures: repositories and services over the in-memory database.

The codec, the OTP engine and the auth flows all run on the frozen clock.
"""

import pytest

from repositories.credential_store import CredentialStore
from repositories.otp_repository import OtpRepository
from repositories.token_repository import TokenRepository
from services.auth_service import AuthService
from services.jwt_codec import JwtCodec
from services.otp_service import OtpService
from services.principal_resolver import PrincipalResolver
from services.token_service import TokenService


@pytest.fixture
def token_repo(db) -> TokenRepository:
    return TokenRepository.from_db(db)


@pytest.fixture
def otp_repo(db) -> OtpRepository:
    return OtpRepository.from_db(db)


@pytest.fixture
def credentials(db) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture
def resolver(credentials) -> PrincipalResolver:
    return PrincipalResolver(credentials)


@pytest.fixture
def codec(settings, clock) -> JwtCodec:
    return JwtCodec(settings.jwt, clock=clock)


@pytest.fixture
def token_service(token_repo) -> TokenService:
    return TokenService(token_repo)


@pytest.fixture
def otp_service(otp_repo, sms, settings, clock) -> OtpService:
    return OtpService(otp_repo, sms, settings.otp, clock=clock)


@pytest.fixture
def auth_service(resolver, credentials, codec, token_service, otp_service, clock):
    return AuthService(
        resolver, credentials, codec, token_service, otp_service, clock=clock
    )
