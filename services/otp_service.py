"""
OTP challenge engine.

A challenge is bound to (phone_number, email) and moves through:

    PENDING --wrong code--> PENDING (attempts + 1)
    PENDING --wrong code, attempts == max--> LOCKED
    PENDING --match--> VERIFIED (consumed once, then deleted)
    PENDING --now > expires_at--> EXPIRED

LOCKED, EXPIRED and VERIFIED are terminal; only send() opens a new challenge.

Resend policy: send() replaces whatever challenge exists for the key with a
fresh code and a zeroed attempt counter. A still-active challenge younger
than the resend cooldown is kept and the request is rejected with
RateLimitError, so resending cannot be used to reset the attempt budget in a
tight loop.

Verification outcomes are OTPVerificationResponse values, never exceptions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from config import OTPSettings
from errors import RateLimitError, UnexpectedError
from infrastructure.sms.protocol import SmsProvider
from repositories.otp_repository import OtpRepository
from schemas.dto.responses.auth import OTPVerificationResponse
from schemas.models.otp import ChallengeState, OtpChallengeDoc
from shared.crypto import hash_otp, otp_matches
from shared.datetime_utils import Clock, ensure_utc, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger
from shared.validators import DEFAULT_COUNTRY_CODE, normalize_phone, to_international

log = get_logger(__name__)

MSG_NO_CHALLENGE = "No valid OTP found. Please request a new OTP."
MSG_EXPIRED = "OTP has expired. Please request a new OTP."
MSG_LOCKED = "Maximum attempts reached. Please request a new OTP."
MSG_ALREADY_USED = "OTP has already been used. Please request a new OTP."
MSG_WRONG_CODE = "Invalid OTP code. Please try again."
MSG_VERIFIED = "OTP verified successfully"


class OtpService:
    def __init__(
        self,
        repository: OtpRepository,
        sms_provider: SmsProvider,
        settings: OTPSettings,
        country_code: str = DEFAULT_COUNTRY_CODE,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = repository
        self._sms = sms_provider
        self._settings = settings
        self._country_code = country_code
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self._settings.otp_max_attempts

    def _key(self, phone_number: str) -> str:
        return normalize_phone(phone_number, self._country_code)

    async def send(self, phone_number: str, email: str) -> str:
        """Open a fresh challenge for (phone_number, email) and dispatch its code.

        Returns:
            A user-facing confirmation message.

        Raises:
            RateLimitError: an active challenge was issued within the cooldown.
            UnexpectedError: the SMS provider reported a dispatch failure.
        """
        phone_key = self._key(phone_number)
        now = self._clock()

        existing = await self._repo.find(phone_key, email)
        if existing is not None and existing.is_active(now):
            age = now - ensure_utc(existing.created_at)
            cooldown = timedelta(seconds=self._settings.otp_resend_cooldown_seconds)
            if age < cooldown:
                retry_after = int((cooldown - age).total_seconds()) + 1
                log.warning("otp_resend_throttled", email=email, retry_after=retry_after)
                raise RateLimitError(
                    "An OTP was sent recently. Please wait before requesting another.",
                    details={"retry_after_seconds": retry_after},
                )

        code = generate_otp_code(self._settings.otp_length)
        challenge = OtpChallengeDoc(
            phone_number=phone_key,
            email=email,
            otp_code=hash_otp(code),
            verified=False,
            attempts=0,
            max_attempts=self.max_attempts,
            created_at=now,
            expires_at=now + timedelta(seconds=self._settings.otp_expiry_seconds),
        )
        await self._repo.replace(challenge)

        expiry_minutes = max(1, self._settings.otp_expiry_seconds // 60)
        if not await self._sms.send_otp(phone_key, code, expiry_minutes):
            await self._repo.delete(phone_key, email)
            log.error("otp_dispatch_failed", email=email)
            raise UnexpectedError("Failed to send OTP")

        log.info("otp_sent", email=email, replaced=existing is not None)
        return f"OTP sent successfully to {to_international(phone_key, self._country_code)}"

    async def verify(
        self, phone_number: str, email: str, code: str
    ) -> OTPVerificationResponse:
        phone_key = self._key(phone_number)
        now = self._clock()

        challenge = await self._repo.find(phone_key, email)
        closed = self._closed_response(challenge, now)
        if closed is not None:
            return closed

        matched = otp_matches(code, challenge.otp_code)
        updated = await self._repo.record_attempt(challenge, matched=matched, now=now)
        if updated is None:
            # Closed by a concurrent attempt between our read and write
            current = await self._repo.find(phone_key, email)
            return self._closed_response(current, now) or self._response(
                False, MSG_LOCKED, challenge, max_attempts_reached=True
            )

        if matched:
            log.info("otp_verified", email=email, attempts=updated.attempts)
            return self._response(True, MSG_VERIFIED, updated)

        reached = updated.attempts >= updated.max_attempts
        log.warning(
            "otp_verification_failed",
            email=email,
            reason="max_attempts" if reached else "wrong_code",
            attempts=updated.attempts,
        )
        return self._response(
            False,
            MSG_LOCKED if reached else MSG_WRONG_CODE,
            updated,
            max_attempts_reached=reached,
        )

    def _closed_response(
        self, challenge: Optional[OtpChallengeDoc], now: datetime
    ) -> Optional[OTPVerificationResponse]:
        """Response for a missing or terminal challenge; None while it is still open."""
        if challenge is None:
            return OTPVerificationResponse(
                success=False,
                message=MSG_NO_CHALLENGE,
                attempts=0,
                max_attempts=self.max_attempts,
                max_attempts_reached=False,
                otp_expired=True,
            )
        state = challenge.state(now)
        if state is ChallengeState.VERIFIED:
            return self._response(False, MSG_ALREADY_USED, challenge)
        if state is ChallengeState.EXPIRED:
            return self._response(False, MSG_EXPIRED, challenge, otp_expired=True)
        if state is ChallengeState.LOCKED:
            return self._response(
                False, MSG_LOCKED, challenge, max_attempts_reached=True
            )
        return None

    @staticmethod
    def _response(
        success: bool,
        message: str,
        challenge: OtpChallengeDoc,
        *,
        max_attempts_reached: bool = False,
        otp_expired: bool = False,
    ) -> OTPVerificationResponse:
        return OTPVerificationResponse(
            success=success,
            message=message,
            attempts=challenge.attempts,
            max_attempts=challenge.max_attempts,
            max_attempts_reached=max_attempts_reached,
            otp_expired=otp_expired,
        )

    async def is_verified(self, phone_number: str, email: str) -> bool:
        challenge = await self._repo.find(self._key(phone_number), email)
        return challenge is not None and challenge.verified

    async def consume_verified(self, phone_number: str, email: str) -> bool:
        """Delete the verified challenge for the key; True exactly once per verification."""
        consumed = await self._repo.consume_verified(self._key(phone_number), email)
        if consumed:
            log.info("otp_consumed", email=email)
        return consumed
