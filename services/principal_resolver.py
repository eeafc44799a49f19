"""
Principal resolution across the four credential collections.

Collections are probed in a fixed order, ADMIN > DONOR > HOSPITAL > BLOODBANK,
and the first match wins. Email is unique within a collection but not across
them, so an address present in two collections always resolves to the
higher-priority role.

Each source shape has exactly one adapter below; nothing else copies fields
from a source record into a Principal.
"""

from __future__ import annotations

from typing import Callable, Optional

from errors import NotFoundError
from repositories.credential_store import CredentialStore
from schemas.models.user import (
    AdminDoc,
    BloodBankUserDoc,
    DonorDoc,
    HospitalDoc,
    Principal,
    Role,
)

RESOLUTION_ORDER: tuple[Role, ...] = (
    Role.ADMIN,
    Role.DONOR,
    Role.HOSPITAL,
    Role.BLOODBANK,
)


def from_admin(doc: AdminDoc) -> Principal:
    return Principal(
        id=doc.id_str,
        role=Role.ADMIN,
        email=doc.email,
        display_name=doc.name,
        username=doc.username,
        password_hash=doc.password,
    )


def from_donor(doc: DonorDoc) -> Principal:
    return Principal(
        id=doc.id_str,
        role=Role.DONOR,
        email=doc.email,
        display_name=doc.name,
        username=doc.username,
        password_hash=doc.password,
        contact_information=doc.contact_information,
        profile_photo_url=doc.profile_photo_url,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


def from_hospital(doc: HospitalDoc) -> Principal:
    return Principal(
        id=doc.id_str,
        role=Role.HOSPITAL,
        email=doc.email,
        display_name=doc.hospital_name,
        username=doc.username,
        password_hash=doc.password,
        contact_information=doc.phone,
        profile_photo_url=doc.profile_photo_url,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


def from_bloodbank(doc: BloodBankUserDoc) -> Principal:
    return Principal(
        id=doc.id_str,
        role=Role.BLOODBANK,
        email=doc.email,
        display_name=doc.name,
        username=doc.username,
        password_hash=doc.password,
        contact_information=doc.contact_information,
        profile_photo_url=doc.profile_photo_url,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


ADAPTERS: dict[Role, Callable[..., Principal]] = {
    Role.ADMIN: from_admin,
    Role.DONOR: from_donor,
    Role.HOSPITAL: from_hospital,
    Role.BLOODBANK: from_bloodbank,
}


class PrincipalResolver:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    async def find(self, email: str) -> Optional[Principal]:
        for role in RESOLUTION_ORDER:
            doc = await self._store.find_by_email(role, email)
            if doc is not None:
                return ADAPTERS[role](doc)
        return None

    async def resolve(self, email: str) -> Principal:
        principal = await self.find(email)
        if principal is None:
            raise NotFoundError("Principal not found")
        return principal
