"""
Principal source document models.

Four collections hold credentials, each with its own shape:
- `users`            DonorDoc
- `users_admin`      AdminDoc
- `users_hospital`   HospitalDoc
- `users_bloodbank`  BloodBankUserDoc

Some of these collections also carry a stored `role` field. It is deliberately
not modelled: a principal's role is decided by the collection it was found
in (see services.principal_resolver), never by a field on the record.

The password hash lives under `password` in every collection.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import MongoBaseModel


class Role(str, Enum):
    DONOR = "DONOR"
    ADMIN = "ADMIN"
    HOSPITAL = "HOSPITAL"
    BLOODBANK = "BLOODBANK"

    @property
    def authority(self) -> str:
        return f"ROLE_{self.value}"


class DonorDoc(MongoBaseModel):
    """Document model for the `users` collection (blood donors)."""

    name: Optional[str] = None
    email: str
    username: Optional[str] = None
    password: Optional[str] = None
    contact_information: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    blood_type: Optional[str] = None
    address: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminDoc(MongoBaseModel):
    """Document model for the `users_admin` collection."""

    name: Optional[str] = None
    email: str
    username: Optional[str] = None
    password: Optional[str] = None


class HospitalDoc(MongoBaseModel):
    """Document model for the `users_hospital` collection."""

    hospital_name: Optional[str] = None
    email: str
    username: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    hospital_id: Optional[str] = None
    license_number: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Coordinates(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class BloodBankUserDoc(MongoBaseModel):
    """Document model for the `users_bloodbank` collection.

    The display name is stored under `name`; contact number under
    `contact_information`.
    """

    name: Optional[str] = None
    email: str
    username: Optional[str] = None
    password: Optional[str] = None
    contact_information: Optional[str] = None
    address: Optional[str] = None
    bloodbank_id: Optional[str] = None
    license_number: Optional[str] = None
    profile_photo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    operating_hours: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    preferred_bloodtypes: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Principal(BaseModel):
    """Unified, read-only identity resolved from any of the four collections."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    email: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    password_hash: Optional[str] = Field(default=None, repr=False)
    contact_information: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def authorities(self) -> list[str]:
        return [self.role.authority]

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
