"""
Base class for MongoDB repositories.

A repository owns exactly one collection (or, for CredentialStore, a fixed
set of them) and speaks in document models. pymongo errors propagate to the
caller except DuplicateKeyError, which becomes a ConflictError.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Type, TypeVar

from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.base import MongoBaseModel

DocT = TypeVar("DocT", bound=MongoBaseModel)


class BaseRepository(Generic[DocT]):
    collection_name: str = ""
    model: Type[DocT]

    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    @classmethod
    def from_db(cls, db: Any) -> "BaseRepository[DocT]":
        return cls(db[cls.collection_name])

    def _to_model(self, data: Optional[dict]) -> Optional[DocT]:
        if data is None:
            return None
        return self.model.model_validate(data)

    async def _find_many(self, query: dict) -> list[DocT]:
        docs = await self._col.find(query).to_list(None)
        return [self.model.model_validate(doc) for doc in docs]
