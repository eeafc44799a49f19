"""
Authentication flows built on the codec, the token ledger, the OTP engine and
the principal resolver.

A login opens a session: one ACCESS and one REFRESH token recorded under a
fresh correlation id. Refreshing rotates the whole session (both old tokens
revoked, a new pair issued under the same correlation id); logging out
revokes it.

Failure messages on the credential and token paths are deliberately uniform
so callers cannot tell a missing account from a wrong password, or a revoked
token from a forged one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Optional

from errors import AuthenticationError, ConflictError, ValidationError
from repositories.credential_store import CredentialStore
from schemas.dto.requests.auth import ChangePasswordRequest, SignupRequest
from schemas.dto.responses.auth import (
    JwtResponse,
    OTPVerificationResponse,
    TokenRefreshResponse,
)
from schemas.models.token import StoredTokenDoc, TokenType
from schemas.models.user import DonorDoc, Principal, Role
from services.jwt_codec import IssuedToken, JwtCodec, TokenKind
from services.otp_service import MSG_NO_CHALLENGE, OtpService
from services.principal_resolver import PrincipalResolver
from services.token_service import TokenService
from shared.crypto import hash_password, password_needs_rehash, verify_password
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_correlation_id
from shared.logging import get_logger, log_with_context
from shared.validators import phone_variants

log = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_TOKEN = "Invalid or expired token"
INVALID_REFRESH = "Refresh token is not valid"
PHONE_NOT_VERIFIED = "Phone number not verified. Please verify your phone number first."
RESET_OTP_SENT = "If the account exists, an OTP has been sent to its registered phone number."
SAME_PASSWORD = "New password must be different from the current password"
INVALID_PHONE = "Invalid phone number format"


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller of a request."""

    principal: Principal
    token: str
    stored: StoredTokenDoc


class AuthService:
    def __init__(
        self,
        resolver: PrincipalResolver,
        credentials: CredentialStore,
        codec: JwtCodec,
        tokens: TokenService,
        otp: OtpService,
        clock: Clock = utcnow,
    ) -> None:
        self._resolver = resolver
        self._credentials = credentials
        self._codec = codec
        self._tokens = tokens
        self._otp = otp
        self._clock = clock

    # ── Sessions ────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> JwtResponse:
        principal = await self._resolver.find(email)
        if principal is None:
            log.warning("login_failed", email=email, reason="unknown_principal")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not verify_password(password, principal.password_hash):
            log.warning("login_failed", email=email, reason="bad_credentials")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if password_needs_rehash(principal.password_hash):
            await self._credentials.update_password(
                principal.role, principal.id, hash_password(password), self._clock()
            )
            log.info("password_rehashed", user_id=principal.id, role=principal.role.value)

        revoked = await self._tokens.revoke_all_access(principal.id)
        access, refresh = await self._issue_pair(principal, generate_correlation_id())

        log.info(
            "login_success",
            user_id=principal.id,
            role=principal.role.value,
            revoked_access=revoked,
        )
        return JwtResponse(
            access_token=access.token,
            refresh_token=refresh.token,
            id=principal.id,
            name=principal.display_name,
            email=principal.email,
            profile_photo_url=principal.profile_photo_url,
            roles=principal.authorities,
        )

    async def _issue_pair(
        self, principal: Principal, correlation_id: str
    ) -> tuple[IssuedToken, IssuedToken]:
        access = self._codec.issue_access(principal.email)
        refresh = self._codec.issue_refresh(principal.email)
        await self._tokens.record_issued(principal.id, access, correlation_id)
        await self._tokens.record_issued(principal.id, refresh, correlation_id)
        return access, refresh

    async def refresh(self, refresh_token: str) -> TokenRefreshResponse:
        """Rotate the session *refresh_token* belongs to.

        The presented token is claimed by revoking it; only the caller whose
        revoke changed the row may issue the new pair, so a replayed or
        concurrently reused refresh token is rejected.
        """
        result = self._codec.verify(refresh_token, TokenKind.REFRESH)
        if result.is_expired:
            await self._tokens.mark_expired(refresh_token)
        if not result.is_valid:
            log.warning("refresh_rejected", reason=result.status.value)
            raise AuthenticationError(INVALID_REFRESH)

        stored = await self._tokens.find_by_token(refresh_token)
        if (
            stored is None
            or not stored.is_valid
            or stored.token_type != TokenType.REFRESH.value
        ):
            log.warning("refresh_rejected", reason="ledger")
            raise AuthenticationError(INVALID_REFRESH)

        principal = await self._resolver.find(result.subject)
        if principal is None or principal.id != stored.owner_id:
            log.warning("refresh_rejected", reason="owner_mismatch")
            raise AuthenticationError(INVALID_REFRESH)

        if not await self._tokens.revoke(refresh_token):
            log.warning("refresh_rejected", reason="replayed", user_id=principal.id)
            raise AuthenticationError(INVALID_REFRESH)

        correlation_id = stored.correlation_id or generate_correlation_id()
        await self._tokens.revoke_session(correlation_id)
        access, refresh = await self._issue_pair(principal, correlation_id)

        log.info("session_rotated", user_id=principal.id, correlation_id=correlation_id)
        return TokenRefreshResponse(access_token=access.token, refresh_token=refresh.token)

    async def authenticate(self, token: Optional[str]) -> AuthContext:
        """Resolve a bearer access token to its caller.

        Raises:
            AuthenticationError: for any invalid, expired, revoked or orphaned
                token. An expired token is flagged in the ledger first.
        """
        result = self._codec.verify(token, TokenKind.ACCESS)
        if result.is_expired:
            await self._tokens.mark_expired(token)
        if not result.is_valid:
            raise AuthenticationError(INVALID_TOKEN)

        stored = await self._tokens.find_by_token(token)
        if stored is None or not stored.is_valid:
            raise AuthenticationError(INVALID_TOKEN)

        principal = await self._resolver.find(result.subject)
        if principal is None or principal.id != stored.owner_id:
            raise AuthenticationError(INVALID_TOKEN)

        return AuthContext(principal=principal, token=token, stored=stored)

    async def logout(self, context: AuthContext) -> int:
        if context.stored.correlation_id:
            count = await self._tokens.revoke_session(context.stored.correlation_id)
        else:
            count = int(await self._tokens.revoke(context.token))
        log.info("logout", user_id=context.principal.id, revoked=count)
        return count

    async def logout_all(self, principal: Principal) -> int:
        return await self._tokens.revoke_all(principal.id)

    async def list_sessions(self, principal: Principal) -> list[StoredTokenDoc]:
        return await self._tokens.find_all_valid(principal.id)

    # ── Registration ────────────────────────────────────────────────────────

    async def send_signup_otp(self, phone_number: str, email: str) -> str:
        if await self._credentials.email_exists(Role.DONOR, email):
            raise ConflictError("Email is already in use", field="email")
        return await self._otp.send(phone_number, email)

    async def verify_otp(
        self, phone_number: str, email: str, code: str
    ) -> OTPVerificationResponse:
        return await self._otp.verify(phone_number, email, code)

    async def check_username(self, username: str) -> str:
        if await self._credentials.username_exists(Role.DONOR, username):
            raise ConflictError("Username is already taken", field="username")
        return "Username is available"

    async def check_email(self, email: str) -> str:
        if await self._credentials.email_exists(Role.DONOR, email):
            raise ConflictError("Email is already in use", field="email")
        return "Email is available"

    async def check_phone(self, phone: str) -> str:
        variants = phone_variants(phone)
        if variants is None:
            raise ValidationError(INVALID_PHONE, field="phone")
        if await self._credentials.contact_exists(Role.DONOR, variants):
            raise ConflictError("Phone number is already in use", field="phone")
        return "Phone number is available"

    async def _phone_in_use(self, phone: str) -> bool:
        variants = phone_variants(phone)
        return variants is not None and await self._credentials.contact_exists(
            Role.DONOR, variants
        )

    async def signup(self, request: SignupRequest) -> str:
        """Register a donor. Returns the new donor id.

        Only the DONOR role may self-register, and a verified OTP challenge
        for (contact_information, email) is consumed by this call.
        """
        if request.role not in (None, Role.DONOR):
            raise ValidationError("Only donor accounts can self-register", field="role")
        if await self._credentials.email_exists(Role.DONOR, request.email):
            raise ConflictError("Email is already in use", field="email")
        if request.username and await self._credentials.username_exists(
            Role.DONOR, request.username
        ):
            raise ConflictError("Username is already taken", field="username")
        if await self._phone_in_use(request.contact_information):
            raise ConflictError(
                "Phone number is already in use", field="contactInformation"
            )

        if not await self._otp.consume_verified(
            request.contact_information, request.email
        ):
            raise ValidationError(PHONE_NOT_VERIFIED, field="contactInformation")

        now = self._clock()
        birth = None
        if request.birth_date is not None:
            birth = datetime.combine(request.birth_date, time.min, tzinfo=timezone.utc)
        donor = DonorDoc(
            name=request.name,
            email=request.email,
            username=request.username,
            password=hash_password(request.password),
            contact_information=request.contact_information,
            date_of_birth=birth,
            blood_type=request.blood_type,
            address=request.address,
            age=request.age,
            sex=request.sex,
            created_at=now,
            updated_at=now,
        )
        donor_id = await self._credentials.insert_donor(donor)
        log.info("donor_registered", user_id=donor_id)
        return donor_id

    # ── Passwords ───────────────────────────────────────────────────────────

    async def change_password(self, request: ChangePasswordRequest) -> None:
        result = await self._otp.verify(request.phone, request.email, request.otp_code)
        if not result.success:
            raise ValidationError(
                result.message,
                field="otpCode",
                details=result.model_dump(by_alias=True),
            )

        principal = await self._resolver.find(request.email)
        if principal is None or not verify_password(
            request.old_password, principal.password_hash
        ):
            await self._otp.consume_verified(request.phone, request.email)
            raise AuthenticationError("Current password is incorrect")
        if verify_password(request.new_password, principal.password_hash):
            await self._otp.consume_verified(request.phone, request.email)
            raise ValidationError(SAME_PASSWORD, field="newPassword")

        await self._set_password(principal, request.new_password)
        await self._otp.consume_verified(request.phone, request.email)
        log.info("password_changed", user_id=principal.id)

    async def send_reset_otp(self, email: str) -> str:
        principal = await self._resolver.find(email)
        if principal is None or not principal.contact_information:
            log.warning("password_reset_unavailable", email=email)
            return RESET_OTP_SENT
        await self._otp.send(principal.contact_information, email)
        return RESET_OTP_SENT

    async def verify_password_reset_otp(
        self, email: str, code: str
    ) -> OTPVerificationResponse:
        principal = await self._resolver.find(email)
        if principal is None or not principal.contact_information:
            return OTPVerificationResponse(
                success=False,
                message=MSG_NO_CHALLENGE,
                attempts=0,
                max_attempts=self._otp.max_attempts,
                otp_expired=True,
            )
        return await self._otp.verify(principal.contact_information, email, code)

    async def reset_password(self, email: str, new_password: str) -> None:
        principal = await self._resolver.find(email)
        if principal is None or not principal.contact_information:
            raise ValidationError(PHONE_NOT_VERIFIED, field="otpCode")
        if not await self._otp.consume_verified(principal.contact_information, email):
            raise ValidationError(PHONE_NOT_VERIFIED, field="otpCode")
        if verify_password(new_password, principal.password_hash):
            raise ValidationError(SAME_PASSWORD, field="newPassword")

        await self._set_password(principal, new_password)
        log.info("password_reset", user_id=principal.id)

    async def _set_password(self, principal: Principal, new_password: str) -> None:
        await self._credentials.update_password(
            principal.role, principal.id, hash_password(new_password), self._clock()
        )
        revoked = await self._tokens.revoke_all(principal.id)
        log_with_context(log, user_id=principal.id, role=principal.role.value).info(
            "password_updated", revoked_sessions=revoked
        )
