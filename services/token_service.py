"""
Token service: bookkeeping for the token ledger.

Rows are never deleted in normal operation; revocation and expiry are flags.
The only deletion path is cleanup_legacy_rows(), a best-effort startup sweep
of rows written before correlation ids existed.
"""

from __future__ import annotations

from typing import Optional

from pymongo.errors import PyMongoError

from repositories.token_repository import TokenRepository
from schemas.models.token import StoredTokenDoc, TokenType
from services.jwt_codec import IssuedToken, TokenKind
from shared.logging import get_logger

log = get_logger(__name__)

_KIND_TO_TYPE = {TokenKind.ACCESS: TokenType.ACCESS, TokenKind.REFRESH: TokenType.REFRESH}


class TokenService:
    def __init__(self, repository: TokenRepository) -> None:
        self._repo = repository

    async def save(self, token: StoredTokenDoc) -> StoredTokenDoc:
        return await self._repo.upsert(token)

    async def record_issued(
        self, owner_id: str, issued: IssuedToken, correlation_id: str
    ) -> StoredTokenDoc:
        doc = StoredTokenDoc(
            token=issued.token,
            owner_id=owner_id,
            subject=issued.subject,
            token_type=_KIND_TO_TYPE[issued.kind],
            created_at=issued.issued_at,
            expires_at=issued.expires_at,
            correlation_id=correlation_id,
        )
        return await self.save(doc)

    async def find_by_token(self, token: str) -> Optional[StoredTokenDoc]:
        return await self._repo.find_by_token(token)

    async def find_all_valid(self, owner_id: str) -> list[StoredTokenDoc]:
        return await self._repo.find_valid_by_owner(owner_id)

    async def is_token_valid(self, token: str) -> bool:
        stored = await self._repo.find_by_token(token)
        return stored is not None and stored.is_valid

    async def revoke(self, token: str) -> bool:
        return await self._repo.set_revoked(token)

    async def revoke_all(self, owner_id: str) -> int:
        count = await self._repo.revoke_by_owner(owner_id)
        log.info("tokens_revoked_all", owner_id=owner_id, count=count)
        return count

    async def revoke_all_access(self, owner_id: str) -> int:
        return await self._repo.revoke_by_owner(owner_id, TokenType.ACCESS)

    async def revoke_session(self, correlation_id: str) -> int:
        return await self._repo.revoke_by_correlation(correlation_id)

    async def mark_expired(self, token: str) -> bool:
        """Flag *token* as expired in the ledger.

        Best-effort: an unknown token or an already-flagged row is a no-op.
        Returns True only when this call changed the row.
        """
        changed = await self._repo.mark_expired(token)
        if changed:
            log.info("ledger_row_expired")
        return changed

    async def cleanup_legacy_rows(self) -> int:
        """Delete ledger rows that predate correlation ids.

        Runs at startup. Idempotent; any failure is logged and reported as
        zero deletions so boot continues.
        """
        try:
            deleted = await self._repo.delete_legacy()
        except PyMongoError as e:
            log.warning(
                "legacy_token_cleanup_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0
        except Exception as e:
            log.error(
                "legacy_token_cleanup_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0
        if deleted:
            log.info("legacy_token_cleanup", deleted=deleted)
        return deleted
