"""Unit tests for the OTP challenge engine."""

import asyncio

import pytest

from config import OTPSettings
from errors import RateLimitError, UnexpectedError
from services.otp_service import (
    MSG_ALREADY_USED,
    MSG_EXPIRED,
    MSG_LOCKED,
    MSG_NO_CHALLENGE,
    OtpService,
)
from shared.crypto import hash_otp
from tests.fakes import RecordingSmsProvider

PHONE = "09171234567"
EMAIL = "a@x.com"


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestSend:
    async def test_stores_digest_not_code(self, otp_service, sms, db):
        message = await otp_service.send(PHONE, EMAIL)
        stored = db["otps"].docs[0]
        assert stored["otp_code"] == hash_otp(sms.last_code)
        assert sms.last_code not in stored.values()
        assert stored["attempts"] == 0
        assert stored["verified"] is False
        assert stored["max_attempts"] == 5
        assert message.startswith("OTP sent successfully to +63")

    async def test_dispatch_carries_expiry_minutes(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        phone, code, minutes = sms.sent[0]
        assert phone == "9171234567"
        assert len(code) == 6 and code.isdigit()
        assert minutes == 5

    async def test_prefixed_phone_shares_local_key(self, otp_service, sms, db):
        await otp_service.send("639171234567", EMAIL)
        assert db["otps"].docs[0]["phone_number"] == "9171234567"
        result = await otp_service.verify("9171234567", EMAIL, sms.last_code)
        assert result.success

    @pytest.mark.parametrize("verify_as", ["639171234567", "9171234567", "+639171234567"])
    async def test_trunk_zero_phone_shares_local_key(self, otp_service, sms, db, verify_as):
        await otp_service.send("09171234567", EMAIL)
        assert db["otps"].docs[0]["phone_number"] == "9171234567"
        result = await otp_service.verify(verify_as, EMAIL, sms.last_code)
        assert result.success

    async def test_resend_within_cooldown_is_rate_limited(self, otp_service, clock):
        await otp_service.send(PHONE, EMAIL)
        clock.advance(seconds=10)
        with pytest.raises(RateLimitError) as exc:
            await otp_service.send(PHONE, EMAIL)
        assert exc.value.details["retry_after_seconds"] > 0

    async def test_resend_after_cooldown_replaces_challenge(
        self, otp_service, sms, clock, db
    ):
        await otp_service.send(PHONE, EMAIL)
        first = sms.last_code
        await otp_service.verify(PHONE, EMAIL, _wrong(first))
        clock.advance(seconds=31)

        await otp_service.send(PHONE, EMAIL)
        assert len(db["otps"].docs) == 1
        assert db["otps"].docs[0]["attempts"] == 0
        assert db["otps"].docs[0]["otp_code"] == hash_otp(sms.last_code)

    async def test_resend_allowed_immediately_after_lockout(
        self, otp_service, sms, clock
    ):
        await otp_service.send(PHONE, EMAIL)
        for _ in range(5):
            await otp_service.verify(PHONE, EMAIL, _wrong(sms.last_code))
        await otp_service.send(PHONE, EMAIL)
        result = await otp_service.verify(PHONE, EMAIL, sms.last_code)
        assert result.success

    async def test_dispatch_failure_removes_challenge(self, otp_repo, settings, clock, db):
        service = OtpService(
            otp_repo, RecordingSmsProvider(succeed=False), settings.otp, clock=clock
        )
        with pytest.raises(UnexpectedError):
            await service.send(PHONE, EMAIL)
        assert db["otps"].docs == []


class TestVerify:
    async def test_scenario_correct_first_try(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        result = await otp_service.verify(PHONE, EMAIL, sms.last_code)
        assert result.success is True
        assert result.attempts == 1
        assert result.max_attempts == 5
        assert result.max_attempts_reached is False
        assert result.otp_expired is False

    async def test_scenario_lockout_beats_correct_code(self, otp_service, sms, db):
        await otp_service.send(PHONE, EMAIL)
        code = sms.last_code
        for _ in range(5):
            await otp_service.verify(PHONE, EMAIL, _wrong(code))
        result = await otp_service.verify(PHONE, EMAIL, code)
        assert result.success is False
        assert result.max_attempts_reached is True
        assert result.message == MSG_LOCKED
        assert db["otps"].docs[0]["verified"] is False
        assert db["otps"].docs[0]["attempts"] == 5

    async def test_each_wrong_attempt_counts_once(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        for expected in range(1, 6):
            result = await otp_service.verify(PHONE, EMAIL, _wrong(sms.last_code))
            assert result.attempts == expected
            assert result.success is False
        assert result.max_attempts_reached is True

    async def test_attempts_never_exceed_max(self, otp_service, sms, db):
        await otp_service.send(PHONE, EMAIL)
        for _ in range(9):
            await otp_service.verify(PHONE, EMAIL, _wrong(sms.last_code))
        assert db["otps"].docs[0]["attempts"] == 5

    async def test_concurrent_wrong_attempts_stay_bounded(self, otp_service, sms, db):
        await otp_service.send(PHONE, EMAIL)
        wrong = _wrong(sms.last_code)
        results = await asyncio.gather(
            *(otp_service.verify(PHONE, EMAIL, wrong) for _ in range(12))
        )
        assert db["otps"].docs[0]["attempts"] == 5
        assert all(not r.success for r in results)

    async def test_expired(self, otp_service, sms, clock):
        await otp_service.send(PHONE, EMAIL)
        clock.advance(seconds=301)
        result = await otp_service.verify(PHONE, EMAIL, sms.last_code)
        assert result.success is False
        assert result.otp_expired is True
        assert result.message == MSG_EXPIRED
        assert result.attempts == 0

    async def test_valid_exactly_at_expiry(self, otp_service, sms, clock):
        await otp_service.send(PHONE, EMAIL)
        clock.advance(seconds=300)
        assert (await otp_service.verify(PHONE, EMAIL, sms.last_code)).success

    async def test_no_challenge(self, otp_service):
        result = await otp_service.verify(PHONE, EMAIL, "123456")
        assert result.success is False
        assert result.otp_expired is True
        assert result.attempts == 0
        assert result.message == MSG_NO_CHALLENGE

    async def test_success_is_single_use(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        code = sms.last_code
        assert (await otp_service.verify(PHONE, EMAIL, code)).success
        replay = await otp_service.verify(PHONE, EMAIL, code)
        assert replay.success is False
        assert replay.message == MSG_ALREADY_USED
        assert replay.max_attempts_reached is False
        assert replay.otp_expired is False

    async def test_key_is_phone_and_email(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        other = await otp_service.verify(PHONE, "b@x.com", sms.last_code)
        assert other.success is False
        assert other.message == MSG_NO_CHALLENGE

    async def test_response_never_echoes_code(self, otp_service, sms):
        await otp_service.send(PHONE, EMAIL)
        result = await otp_service.verify(PHONE, EMAIL, sms.last_code)
        assert sms.last_code not in result.model_dump_json()

    async def test_configured_max_attempts(self, otp_repo, sms, clock):
        service = OtpService(otp_repo, sms, OTPSettings(otp_max_attempts=3), clock=clock)
        await service.send(PHONE, EMAIL)
        for _ in range(3):
            result = await service.verify(PHONE, EMAIL, _wrong(sms.last_code))
        assert result.max_attempts_reached is True
        assert result.max_attempts == 3


class TestConsume:
    async def test_consume_verified_once(self, otp_service, sms, db):
        await otp_service.send(PHONE, EMAIL)
        await otp_service.verify(PHONE, EMAIL, sms.last_code)
        assert await otp_service.is_verified(PHONE, EMAIL)
        assert await otp_service.consume_verified(PHONE, EMAIL) is True
        assert await otp_service.consume_verified(PHONE, EMAIL) is False
        assert db["otps"].docs == []

    async def test_unverified_challenge_not_consumed(self, otp_service):
        await otp_service.send(PHONE, EMAIL)
        assert await otp_service.is_verified(PHONE, EMAIL) is False
        assert await otp_service.consume_verified(PHONE, EMAIL) is False
