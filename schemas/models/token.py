"""
Token ledger document model.

Maps to the `tokens` MongoDB collection.

One row per issued JWT (access and refresh). `token` is the unique key.
`revoked` and `expired` are independent flags:
- revoked flips on logout, logout-all, rotation, password change and re-login
- expired flips lazily the first time validation reports the token expired

correlation_id groups the rows of one login session. Rows written before the
field existed have none and are swept by TokenService.cleanup_legacy_rows().
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict

from schemas.models.base import MongoBaseModel


class TokenType(str, Enum):
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"


class StoredTokenDoc(MongoBaseModel):
    """Document model for the `tokens` collection."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    token: str
    owner_id: str
    subject: Optional[str] = None
    token_type: TokenType = TokenType.ACCESS
    revoked: bool = False
    expired: bool = False
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    correlation_id: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return not self.revoked and not self.expired
