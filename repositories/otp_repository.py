"""
OTP challenge repository: the `otps` collection.

record_attempt() is the only write on the verify path. It increments the
counter with a single find_one_and_update whose filter re-checks the
challenge is still open (unverified, unexpired, below the attempt limit), so
two racing verifications can never push attempts past max_attempts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument

from repositories.base import BaseRepository
from schemas.models.otp import OtpChallengeDoc


class OtpRepository(BaseRepository[OtpChallengeDoc]):
    collection_name = "otps"
    model = OtpChallengeDoc

    async def find(self, phone_number: str, email: str) -> Optional[OtpChallengeDoc]:
        return self._to_model(
            await self._col.find_one(OtpChallengeDoc.key_filter(phone_number, email))
        )

    async def replace(self, doc: OtpChallengeDoc) -> OtpChallengeDoc:
        """Store *doc* as the only challenge for its key."""
        data = doc.to_mongo()
        data.pop("_id", None)
        await self._col.replace_one(
            OtpChallengeDoc.key_filter(doc.phone_number, doc.email), data, upsert=True
        )
        return await self.find(doc.phone_number, doc.email) or doc

    async def record_attempt(
        self,
        challenge: OtpChallengeDoc,
        *,
        matched: bool,
        now: datetime,
    ) -> Optional[OtpChallengeDoc]:
        """Count one attempt, flagging the challenge verified when *matched*.

        Returns the updated challenge, or None when it closed between the
        caller's read and this write.
        """
        query = {
            **OtpChallengeDoc.key_filter(challenge.phone_number, challenge.email),
            "verified": False,
            "attempts": {"$lt": challenge.max_attempts},
            "expires_at": {"$gte": now},
        }
        update = {"$inc": {"attempts": 1}, "$set": {"verified": matched}}
        updated = await self._col.find_one_and_update(
            query, update, return_document=ReturnDocument.AFTER
        )
        return self._to_model(updated)

    async def delete(self, phone_number: str, email: str) -> int:
        result = await self._col.delete_many(
            OtpChallengeDoc.key_filter(phone_number, email)
        )
        return result.deleted_count

    async def consume_verified(self, phone_number: str, email: str) -> bool:
        result = await self._col.delete_one(
            {**OtpChallengeDoc.key_filter(phone_number, email), "verified": True}
        )
        return result.deleted_count == 1
