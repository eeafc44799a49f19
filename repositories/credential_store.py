"""
Credential store: read access to the four principal collections, plus the
few writes the auth flows perform (donor signup, password updates).

Email uniqueness is enforced per collection (unique index), not across
collections; cross-collection precedence is the resolver's business.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Type

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.base import MongoBaseModel
from schemas.models.user import (
    AdminDoc,
    BloodBankUserDoc,
    DonorDoc,
    HospitalDoc,
    Role,
)

COLLECTIONS: dict[Role, tuple[str, Type[MongoBaseModel]]] = {
    Role.ADMIN: ("users_admin", AdminDoc),
    Role.DONOR: ("users", DonorDoc),
    Role.HOSPITAL: ("users_hospital", HospitalDoc),
    Role.BLOODBANK: ("users_bloodbank", BloodBankUserDoc),
}


def _object_id(value: str) -> Any:
    return ObjectId(value) if ObjectId.is_valid(value) else value


class CredentialStore:
    def __init__(self, db: Any) -> None:
        self._collections = {
            role: (db[name], model) for role, (name, model) in COLLECTIONS.items()
        }

    async def find_by_email(self, role: Role, email: str) -> Optional[MongoBaseModel]:
        collection, model = self._collections[role]
        return model.from_mongo(await collection.find_one({"email": email}))

    async def email_exists(self, role: Role, email: str) -> bool:
        collection, _ = self._collections[role]
        return await collection.count_documents({"email": email}, limit=1) > 0

    async def username_exists(self, role: Role, username: str) -> bool:
        collection, _ = self._collections[role]
        return await collection.count_documents({"username": username}, limit=1) > 0

    async def contact_exists(self, role: Role, numbers: Iterable[str]) -> bool:
        collection, _ = self._collections[role]
        query = {"contact_information": {"$in": list(numbers)}}
        return await collection.count_documents(query, limit=1) > 0

    async def insert_donor(self, donor: DonorDoc) -> str:
        collection, _ = self._collections[Role.DONOR]
        try:
            result = await collection.insert_one(donor.to_mongo())
        except DuplicateKeyError as exc:
            raise ConflictError("Email or username is already in use") from exc
        return str(result.inserted_id)

    async def update_password(
        self, role: Role, principal_id: str, password_hash: str, now: datetime
    ) -> bool:
        collection, _ = self._collections[role]
        updates: dict = {"password": password_hash}
        if role is not Role.ADMIN:
            updates["updated_at"] = now
        result = await collection.update_one(
            {"_id": _object_id(principal_id)}, {"$set": updates}
        )
        return result.matched_count == 1
