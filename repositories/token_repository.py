"""
Token ledger repository: the `tokens` collection.

Flag updates are single-document (or filtered multi-document) `$set`
operations guarded on the current flag value, so repeating one is a no-op
and the returned count says whether anything actually changed.
"""

from __future__ import annotations

from typing import Optional

from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from repositories.base import BaseRepository
from schemas.models.token import StoredTokenDoc, TokenType

LEGACY_ROW_FILTER = {
    "$or": [
        {"correlation_id": {"$exists": False}},
        {"correlation_id": None},
        {"correlation_id": ""},
    ]
}


class TokenRepository(BaseRepository[StoredTokenDoc]):
    collection_name = "tokens"
    model = StoredTokenDoc

    async def upsert(self, doc: StoredTokenDoc) -> StoredTokenDoc:
        data = doc.to_mongo()
        data.pop("_id", None)
        try:
            await self._col.replace_one({"token": doc.token}, data, upsert=True)
        except DuplicateKeyError as exc:
            raise ConflictError("Token already recorded") from exc
        return await self.find_by_token(doc.token) or doc

    async def find_by_token(self, token: str) -> Optional[StoredTokenDoc]:
        return self._to_model(await self._col.find_one({"token": token}))

    async def find_valid_by_owner(self, owner_id: str) -> list[StoredTokenDoc]:
        return await self._find_many(
            {"owner_id": owner_id, "revoked": False, "expired": False}
        )

    async def set_revoked(self, token: str) -> bool:
        result = await self._col.update_one(
            {"token": token, "revoked": False}, {"$set": {"revoked": True}}
        )
        return result.modified_count == 1

    async def revoke_by_owner(
        self, owner_id: str, token_type: Optional[TokenType] = None
    ) -> int:
        query: dict = {"owner_id": owner_id, "revoked": False}
        if token_type is not None:
            query["token_type"] = token_type.value
        result = await self._col.update_many(query, {"$set": {"revoked": True}})
        return result.modified_count

    async def revoke_by_correlation(self, correlation_id: str) -> int:
        result = await self._col.update_many(
            {"correlation_id": correlation_id, "revoked": False},
            {"$set": {"revoked": True}},
        )
        return result.modified_count

    async def mark_expired(self, token: str) -> bool:
        result = await self._col.update_one(
            {"token": token, "expired": False}, {"$set": {"expired": True}}
        )
        return result.modified_count == 1

    async def delete_legacy(self) -> int:
        result = await self._col.delete_many(LEGACY_ROW_FILTER)
        return result.deleted_count
