"""
Response DTOs for authentication endpoints.

JwtResponse                POST /api/auth/signin  (200)
TokenRefreshResponse       POST /api/auth/refresh  (200)
OTPVerificationResponse    POST /api/auth/verify-otp  (200 / 400)
UserProfileResponse        GET  /api/auth/me  (200)
SessionResponse            GET  /api/auth/sessions  (200, list)

All serialise with camelCase keys.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class JwtResponse(_CamelResponse):
    """Response body for POST /api/auth/signin (200)."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    id: str
    name: Optional[str] = None
    email: str
    profile_photo_url: Optional[str] = None
    roles: list[str]


class TokenRefreshResponse(_CamelResponse):
    """Response body for POST /api/auth/refresh (200)."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


class OTPVerificationResponse(_CamelResponse):
    """Outcome of an OTP verification attempt.

    Wrong code, expiry and lockout are ordinary outcomes reported through the
    flags, not errors. The stored code is never echoed back.
    """

    success: bool
    message: str
    attempts: int
    max_attempts: int
    max_attempts_reached: bool = False
    otp_expired: bool = False


class UserProfileResponse(_CamelResponse):
    """Response body for GET /api/auth/me (200)."""

    id: str
    name: Optional[str] = None
    email: str
    username: Optional[str] = None
    role: str
    roles: list[str]
    contact_information: Optional[str] = None
    profile_photo_url: Optional[str] = None


class SessionResponse(_CamelResponse):
    """One active ledger row of the caller, as listed by GET /api/auth/sessions."""

    correlation_id: Optional[str] = None
    token_type: str
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    current: bool = False
