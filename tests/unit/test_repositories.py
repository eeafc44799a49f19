"""Unit tests for the repository layer and index bootstrap."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from errors import ConflictError
from repositories.indexes import ensure_indexes
from schemas.models.otp import OtpChallengeDoc
from schemas.models.user import DonorDoc, Role


def _challenge(clock, **overrides) -> OtpChallengeDoc:
    data = dict(
        phone_number="9171234567",
        email="a@x.com",
        otp_code="digest",
        created_at=clock(),
        expires_at=clock() + timedelta(minutes=5),
    )
    data.update(overrides)
    return OtpChallengeDoc(**data)


# ── indexes ───────────────────────────────────────────────────────────────────


class TestEnsureIndexes:
    async def test_creates_expected_indexes(self, db):
        await ensure_indexes(db, otp_retention_seconds=120)

        token_fields = {ix["fields"]: ix for ix in db["tokens"].indexes}
        assert token_fields[("token",)]["unique"] is True
        assert ("correlation_id",) in token_fields

        otp_fields = {ix["fields"]: ix for ix in db["otps"].indexes}
        assert otp_fields[("phone_number", "email")]["unique"] is True
        assert otp_fields[("expires_at",)]["expireAfterSeconds"] == 120

        for name in ("users", "users_admin", "users_hospital", "users_bloodbank"):
            assert any(
                ix["fields"] == ("email",) and ix.get("unique")
                for ix in db[name].indexes
            )

    async def test_failure_does_not_raise(self):
        collection = MagicMock()
        collection.create_index = AsyncMock(side_effect=OperationFailure("denied"))
        db = MagicMock()
        db.__getitem__.return_value = collection
        await ensure_indexes(db)


# ── OtpRepository ─────────────────────────────────────────────────────────────


class TestOtpRepository:
    async def test_replace_keeps_one_row_per_key(self, otp_repo, clock, db):
        await otp_repo.replace(_challenge(clock, otp_code="first"))
        await otp_repo.replace(_challenge(clock, otp_code="second"))
        assert len(db["otps"].docs) == 1
        assert (await otp_repo.find("9171234567", "a@x.com")).otp_code == "second"

    async def test_record_attempt_increments(self, otp_repo, clock):
        stored = await otp_repo.replace(_challenge(clock))
        updated = await otp_repo.record_attempt(stored, matched=False, now=clock())
        assert updated.attempts == 1
        assert updated.verified is False

    async def test_record_attempt_match_sets_verified(self, otp_repo, clock):
        stored = await otp_repo.replace(_challenge(clock))
        updated = await otp_repo.record_attempt(stored, matched=True, now=clock())
        assert updated.verified is True

    @pytest.mark.parametrize(
        "overrides",
        [{"attempts": 5}, {"verified": True}],
        ids=["locked", "verified"],
    )
    async def test_record_attempt_refuses_closed(self, otp_repo, clock, overrides):
        stored = await otp_repo.replace(_challenge(clock, **overrides))
        assert await otp_repo.record_attempt(stored, matched=False, now=clock()) is None

    async def test_record_attempt_refuses_expired(self, otp_repo, clock):
        stored = await otp_repo.replace(_challenge(clock))
        later = clock() + timedelta(minutes=6)
        assert await otp_repo.record_attempt(stored, matched=True, now=later) is None

    async def test_stale_read_cannot_overshoot(self, otp_repo, clock, db):
        stale = await otp_repo.replace(_challenge(clock, attempts=4))
        await otp_repo.record_attempt(stale, matched=False, now=clock())
        assert await otp_repo.record_attempt(stale, matched=False, now=clock()) is None
        assert db["otps"].docs[0]["attempts"] == 5


# ── CredentialStore ───────────────────────────────────────────────────────────


class TestCredentialStore:
    async def test_insert_and_find_donor(self, credentials):
        donor_id = await credentials.insert_donor(
            DonorDoc(email="d@x.com", username="dee", password="h")
        )
        found = await credentials.find_by_email(Role.DONOR, "d@x.com")
        assert str(found.id) == donor_id
        assert await credentials.email_exists(Role.DONOR, "d@x.com")
        assert await credentials.username_exists(Role.DONOR, "dee")
        assert not await credentials.email_exists(Role.ADMIN, "d@x.com")

    async def test_duplicate_email_is_conflict(self, credentials, db):
        await ensure_indexes(db)
        await credentials.insert_donor(DonorDoc(email="d@x.com", username="one"))
        with pytest.raises(ConflictError):
            await credentials.insert_donor(DonorDoc(email="d@x.com", username="two"))

    async def test_update_password_in_own_collection(self, credentials, seed_user, clock, db):
        hospital_id = await seed_user(Role.HOSPITAL, "h@x.com", hospital_name="H")
        assert await credentials.update_password(Role.HOSPITAL, hospital_id, "new-hash", clock())
        row = db["users_hospital"].docs[0]
        assert row["password"] == "new-hash"
        assert row["updated_at"] == clock()

    async def test_update_password_admin_has_no_timestamps(self, credentials, seed_user, clock, db):
        admin_id = await seed_user(Role.ADMIN, "a@x.com")
        await credentials.update_password(Role.ADMIN, admin_id, "new-hash", clock())
        assert "updated_at" not in db["users_admin"].docs[0]

    async def test_update_password_unknown_id(self, credentials, clock):
        assert not await credentials.update_password(
            Role.DONOR, str(ObjectId()), "h", clock()
        )
