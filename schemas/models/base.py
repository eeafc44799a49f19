"""
Shared base for the RedSource document models.

Every stored shape (the four principal collections, the `tokens` ledger and
the `otps` challenges) is a MongoBaseModel. Rows written by the earlier
deployment carry extra keys (Spring's `_class`, profile fields this service
never reads); validation ignores them, so a legacy row always loads.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """ObjectId accepted from BSON or its 24-hex string, serialised as the string."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


class MongoBaseModel(BaseModel):
    """A stored document; `_id` is exposed as `id`.

    to_mongo()   dumps for insert/upsert, leaving `_id` out until Mongo assigns it
    from_mongo() loads a `find_one` result, passing None through
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    @property
    def id_str(self) -> str:
        """The id as principals and ledger rows reference it."""
        return str(self.id)

    def to_mongo(self) -> dict:
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        if data is None:
            return None
        return cls.model_validate(data)
