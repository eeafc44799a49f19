"""
Request DTOs for authentication endpoints.

LoginRequest                POST /api/auth/signin
TokenRefreshRequest         POST /api/auth/refresh
SendOTPRequest              POST /api/auth/send-otp
VerifyOTPRequest            POST /api/auth/verify-otp
SignupRequest               POST /api/auth/signup
ChangePasswordRequest       POST /api/auth/change-password
ForgotPasswordOTPRequest    POST /api/auth/forgot-password/send-otp
ForgotPasswordVerifyRequest POST /api/auth/forgot-password/verify-otp
ResetPasswordRequest        POST /api/auth/forgot-password/reset
CheckUsernameRequest        POST /api/auth/check-username
CheckEmailRequest           POST /api/auth/check-email
CheckPhoneRequest           POST /api/auth/check-phone

Bodies are camelCase on the wire; snake_case names are accepted as well.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from schemas.models.user import Role
from shared.validators import (
    LOCAL_PHONE_PATTERN,
    OTP_CODE_PATTERN,
    PREFIXED_PHONE_PATTERN,
    validate_username,
)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class LoginRequest(_CamelRequest):
    """Request body for POST /api/auth/signin."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenRefreshRequest(_CamelRequest):
    """Request body for POST /api/auth/refresh."""

    refresh_token: str = Field(min_length=1)


class SendOTPRequest(_CamelRequest):
    """Request body for POST /api/auth/send-otp.

    ``phone_number`` is the 10-digit local number.
    """

    email: EmailStr
    phone_number: str = Field(pattern=LOCAL_PHONE_PATTERN)


class VerifyOTPRequest(_CamelRequest):
    """Request body for POST /api/auth/verify-otp.

    ``phone_number`` may carry the 63 country prefix (12 digits); it is
    normalised to the local form before the challenge lookup.
    """

    email: EmailStr
    phone_number: str = Field(pattern=PREFIXED_PHONE_PATTERN)
    otp_code: str = Field(pattern=OTP_CODE_PATTERN)


class SignupRequest(_CamelRequest):
    """Request body for POST /api/auth/signup.

    A verified OTP challenge for (contact_information, email) must exist.
    """

    name: str = Field(min_length=1)
    email: EmailStr
    username: str = Field(min_length=1)
    password: str = Field(min_length=6, max_length=40)
    role: Optional[Role] = None
    contact_information: str = Field(pattern=PREFIXED_PHONE_PATTERN)
    blood_type: Optional[str] = None
    address: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    sex: Optional[str] = None
    birth_date: Optional[date] = None

    @field_validator("username", mode="after")
    @classmethod
    def _validate_username(cls, v: str) -> str:
        if not validate_username(v):
            raise ValueError(
                "username must be 3-40 letters, digits, underscores, dots or hyphens"
            )
        return v


class ChangePasswordRequest(_CamelRequest):
    """Request body for POST /api/auth/change-password.

    The OTP is verified inline against (phone, email).
    """

    email: EmailStr
    phone: str = Field(pattern=PREFIXED_PHONE_PATTERN)
    otp_code: str = Field(pattern=OTP_CODE_PATTERN)
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=40)


class ForgotPasswordOTPRequest(_CamelRequest):
    """Request body for POST /api/auth/forgot-password/send-otp."""

    email: EmailStr


class ResetPasswordRequest(_CamelRequest):
    """Request body for POST /api/auth/forgot-password/reset.

    Requires the OTP to have been verified through /verify-otp first.
    """

    email: EmailStr
    new_password: str = Field(min_length=8, max_length=40)


class ForgotPasswordVerifyRequest(_CamelRequest):
    """Request body for POST /api/auth/forgot-password/verify-otp.

    The phone number is taken from the account, not the request.
    """

    email: EmailStr
    otp_code: str = Field(pattern=OTP_CODE_PATTERN)


class CheckUsernameRequest(_CamelRequest):
    """Request body for POST /api/auth/check-username."""

    username: str = Field(min_length=1)


class CheckEmailRequest(_CamelRequest):
    """Request body for POST /api/auth/check-email."""

    email: EmailStr


class CheckPhoneRequest(_CamelRequest):
    """Request body for POST /api/auth/check-phone.

    Separators are ignored; the number is matched in its local, 63-prefixed
    and 0-prefixed forms.
    """

    phone: str = Field(min_length=1)
