"""
JWT codec: issues and verifies HS256 bearer tokens.

verify() is a pure function of the token, the signing key and the codec's
clock: PyJWT only checks signature, issuer, audience and required claims,
while exp and iat are compared against the injected clock with no leeway.
verify() never touches the token ledger. When it reports EXPIRED, recording
that fact (TokenService.mark_expired) is the caller's explicit next step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

import jwt

from config import JWTSettings
from shared.datetime_utils import Clock, ensure_utc, utcnow
from shared.generators import generate_token_id

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti"]


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class VerificationStatus(str, Enum):
    VALID = "VALID"
    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    UNSUPPORTED = "UNSUPPORTED"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    subject: str
    kind: TokenKind
    jti: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenVerification:
    status: VerificationStatus
    subject: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is VerificationStatus.VALID

    @property
    def is_expired(self) -> bool:
        return self.status is VerificationStatus.EXPIRED


class JwtCodec:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        if not settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set")
        self._settings = settings
        self._clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.access_token_ttl_seconds)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.refresh_token_ttl_seconds)

    def issue_access(self, subject: str) -> IssuedToken:
        return self._issue(subject, TokenKind.ACCESS, self.access_ttl)

    def issue_refresh(self, subject: str) -> IssuedToken:
        return self._issue(subject, TokenKind.REFRESH, self.refresh_ttl)

    def _issue(self, subject: str, kind: TokenKind, ttl: timedelta) -> IssuedToken:
        # JWT timestamps have second precision; keep the returned datetimes in step
        now = self._clock().replace(microsecond=0)
        expires_at = now + ttl
        jti = generate_token_id()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": jti,
            "type": kind.value,
        }
        token = jwt.encode(claims, self._settings.jwt_secret, algorithm=ALGORITHM)
        return IssuedToken(
            token=token,
            subject=subject,
            kind=kind,
            jti=jti,
            issued_at=now,
            expires_at=expires_at,
        )

    def verify(
        self, token: Optional[str], expected_kind: TokenKind = TokenKind.ACCESS
    ) -> TokenVerification:
        if not token:
            return TokenVerification(VerificationStatus.MALFORMED, reason="empty")
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[ALGORITHM],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidAlgorithmError:
            return TokenVerification(
                VerificationStatus.UNSUPPORTED, reason="algorithm_not_allowed"
            )
        except jwt.InvalidTokenError as e:
            return TokenVerification(
                VerificationStatus.MALFORMED, reason=type(e).__name__
            )

        exp, iat = claims["exp"], claims["iat"]
        if not (_is_timestamp(exp) and _is_timestamp(iat)):
            return TokenVerification(
                VerificationStatus.MALFORMED, reason="bad_timestamps"
            )
        now = ensure_utc(self._clock())
        if now >= datetime.fromtimestamp(exp, tz=timezone.utc):
            return TokenVerification(
                VerificationStatus.EXPIRED, subject=claims.get("sub"), reason="expired"
            )
        if datetime.fromtimestamp(iat, tz=timezone.utc) > now:
            return TokenVerification(
                VerificationStatus.MALFORMED, reason="issued_in_future"
            )

        if claims.get("type") != expected_kind.value:
            return TokenVerification(
                VerificationStatus.UNSUPPORTED,
                subject=claims.get("sub"),
                claims=claims,
                reason="unexpected_token_type",
            )
        return TokenVerification(
            VerificationStatus.VALID, subject=claims["sub"], claims=claims
        )
