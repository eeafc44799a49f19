"""
Index bootstrap for every collection the auth subsystem touches.

Called once from the application lifespan. Index creation is idempotent on
the server side; a failure is logged and does not stop startup.
"""

from __future__ import annotations

from typing import Any

from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from repositories.credential_store import COLLECTIONS
from schemas.models.user import Role
from shared.logging import get_logger

log = get_logger(__name__)


async def ensure_indexes(db: Any, otp_retention_seconds: int = 3600) -> None:
    try:
        tokens = db["tokens"]
        await tokens.create_index([("token", ASCENDING)], unique=True)
        await tokens.create_index(
            [("owner_id", ASCENDING), ("revoked", ASCENDING), ("expired", ASCENDING)]
        )
        await tokens.create_index([("correlation_id", ASCENDING)])

        otps = db["otps"]
        await otps.create_index(
            [("phone_number", ASCENDING), ("email", ASCENDING)], unique=True
        )
        # TTL only garbage-collects; expiry itself is decided by timestamp checks
        await otps.create_index(
            [("expires_at", ASCENDING)], expireAfterSeconds=otp_retention_seconds
        )

        for role, (name, _) in COLLECTIONS.items():
            await db[name].create_index([("email", ASCENDING)], unique=True)
            if role is Role.DONOR:
                await db[name].create_index(
                    [("username", ASCENDING)], unique=True, sparse=True
                )
    except PyMongoError as e:
        log.warning("ensure_indexes_failed", error=str(e), error_type=type(e).__name__)
