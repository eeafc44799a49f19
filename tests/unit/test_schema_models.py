"""Unit tests for MongoDB document models."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.otp import ChallengeState, OtpChallengeDoc
from schemas.models.token import StoredTokenDoc, TokenType
from schemas.models.user import BloodBankUserDoc, DonorDoc, Principal, Role


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def oid():
    return ObjectId()


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = oid()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(oid())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


# ── MongoBaseModel ─────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()

    def test_to_mongo_keeps_set_id(self):
        o = oid()
        assert MongoBaseModel.model_validate({"_id": o}).to_mongo()["_id"] == o

    def test_legacy_row_keys_ignored(self):
        o = oid()
        doc = DonorDoc.from_mongo(
            {"_id": o, "email": "d@x.com", "_class": "RedSource.entities.User"}
        )
        assert doc.id_str == str(o)
        assert "_class" not in doc.to_mongo()


# ── StoredTokenDoc ────────────────────────────────────────────────────────────

class TestStoredTokenDoc:
    def test_defaults(self):
        doc = StoredTokenDoc(token="t", owner_id="o")
        assert doc.token_type == "ACCESS"
        assert doc.revoked is False
        assert doc.expired is False
        assert doc.correlation_id is None
        assert doc.is_valid

    def test_enum_stored_as_plain_string(self):
        mongo = StoredTokenDoc(token="t", owner_id="o", token_type=TokenType.REFRESH).to_mongo()
        assert mongo["token_type"] == "REFRESH"
        assert type(mongo["token_type"]) is str

    @pytest.mark.parametrize(
        "revoked, expired", [(True, False), (False, True), (True, True)]
    )
    def test_flags_invalidate(self, revoked, expired):
        doc = StoredTokenDoc(token="t", owner_id="o", revoked=revoked, expired=expired)
        assert not doc.is_valid


# ── OtpChallengeDoc ───────────────────────────────────────────────────────────

class TestOtpChallengeDoc:
    def _make(self, **overrides):
        t = now()
        base = {
            "phone_number": "9171234567",
            "email": "a@x.com",
            "otp_code": "digest",
            "created_at": t,
            "expires_at": t + timedelta(minutes=5),
        }
        base.update(overrides)
        return OtpChallengeDoc.model_validate(base)

    def test_pending(self):
        doc = self._make()
        assert doc.state(now()) is ChallengeState.PENDING
        assert doc.is_active(now())

    def test_expired(self):
        doc = self._make()
        assert doc.state(now() + timedelta(minutes=6)) is ChallengeState.EXPIRED

    def test_locked(self):
        doc = self._make(attempts=5, max_attempts=5)
        assert doc.state(now()) is ChallengeState.LOCKED

    def test_verified_wins(self):
        doc = self._make(verified=True, attempts=5)
        assert doc.state(now() + timedelta(hours=1)) is ChallengeState.VERIFIED

    def test_naive_expiry_treated_as_utc(self):
        naive = (now() + timedelta(minutes=5)).replace(tzinfo=None)
        assert not self._make(expires_at=naive).is_expired(now())

    def test_negative_attempts_rejected(self):
        with pytest.raises(ValueError):
            self._make(attempts=-1)

    def test_key_filter(self):
        assert OtpChallengeDoc.key_filter("9171234567", "a@x.com") == {
            "phone_number": "9171234567",
            "email": "a@x.com",
        }


# ── Source records / Principal ────────────────────────────────────────────────

class TestSourceRecords:
    def test_stored_role_not_modelled(self):
        doc = DonorDoc.model_validate({"_id": oid(), "email": "d@x.com", "role": "ADMIN"})
        assert not hasattr(doc, "role")

    def test_bloodbank_optional_extras(self):
        doc = BloodBankUserDoc.model_validate(
            {"email": "b@x.com", "coordinates": {"lat": 14.6, "lng": 121.0}}
        )
        assert doc.coordinates.lat == 14.6
        assert doc.preferred_bloodtypes == []


class TestPrincipal:
    def test_authorities_and_roles(self):
        p = Principal(id="1", role=Role.HOSPITAL, email="h@x.com")
        assert p.authorities == ["ROLE_HOSPITAL"]
        assert p.has_role(Role.ADMIN, Role.HOSPITAL)
        assert not p.has_role(Role.DONOR)

    def test_frozen(self):
        p = Principal(id="1", role=Role.DONOR, email="d@x.com")
        with pytest.raises(ValueError):
            p.email = "other@x.com"

    def test_hash_hidden_from_repr(self):
        p = Principal(id="1", role=Role.DONOR, email="d@x.com", password_hash="$argon2id$x")
        assert "argon2" not in repr(p)
