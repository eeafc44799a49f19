"""
OTP challenge document model.

Maps to the `otps` MongoDB collection, keyed by (phone_number, email).

otp_code stores SHA-256(code): the plain OTP is never stored.
attempts counts verification tries and never exceeds max_attempts.
verified flips once, on the first matching attempt; the row is then deleted
when the flow that needed proof consumes it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc


class ChallengeState(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    LOCKED = "LOCKED"
    EXPIRED = "EXPIRED"


class OtpChallengeDoc(MongoBaseModel):
    """Document model for the `otps` collection."""

    phone_number: str
    email: str
    otp_code: str
    verified: bool = False
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=5, ge=1)
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(now) > ensure_utc(self.expires_at)

    def state(self, now: datetime) -> ChallengeState:
        """Derive the lifecycle state; checks run in the same order as verify()."""
        if self.verified:
            return ChallengeState.VERIFIED
        if self.is_expired(now):
            return ChallengeState.EXPIRED
        if self.attempts >= self.max_attempts:
            return ChallengeState.LOCKED
        return ChallengeState.PENDING

    def is_active(self, now: datetime) -> bool:
        return self.state(now) is ChallengeState.PENDING

    @classmethod
    def key_filter(cls, phone_number: str, email: str) -> dict:
        return {"phone_number": phone_number, "email": email}
