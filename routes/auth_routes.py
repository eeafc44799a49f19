"""
Authentication endpoints under /api/auth.

POST /signin                         issue an access/refresh pair
POST /refresh                        rotate the session of a refresh token
POST /logout                         revoke the caller's session (bearer)
POST /logout-all                     revoke every token of the caller (bearer)
GET  /me                             profile of the caller (bearer)
GET  /sessions                       active ledger rows of the caller (bearer)
POST /send-otp                       signup OTP
POST /verify-otp                     verify an OTP (200 on success, 400 otherwise)
POST /signup                         donor self-registration
POST /check-username                 409 when the username is taken
POST /check-email                    409 when the email is registered
POST /check-phone                    409 when the number is registered, any form
POST /change-password                OTP + old password
POST /forgot-password/send-otp       reset OTP to the account's phone
POST /forgot-password/verify-otp     verify the reset OTP
POST /forgot-password/reset          set a new password after verification
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_auth_context, get_auth_service, get_current_principal
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    CheckEmailRequest,
    CheckPhoneRequest,
    CheckUsernameRequest,
    ForgotPasswordOTPRequest,
    ForgotPasswordVerifyRequest,
    LoginRequest,
    ResetPasswordRequest,
    SendOTPRequest,
    SignupRequest,
    TokenRefreshRequest,
    VerifyOTPRequest,
)
from schemas.dto.responses.auth import (
    JwtResponse,
    OTPVerificationResponse,
    SessionResponse,
    TokenRefreshResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import MessageResponse
from schemas.models.user import Principal
from services.auth_service import AuthContext, AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _otp_result(result: OTPVerificationResponse) -> JSONResponse:
    return JSONResponse(
        status_code=200 if result.success else 400,
        content=result.model_dump(by_alias=True),
    )


@router.post("/signin", response_model=JwtResponse, response_model_by_alias=True)
async def signin(
    body: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> JwtResponse:
    return await auth.login(body.email, body.password)


@router.post(
    "/refresh", response_model=TokenRefreshResponse, response_model_by_alias=True
)
async def refresh(
    body: TokenRefreshRequest, auth: AuthService = Depends(get_auth_service)
) -> TokenRefreshResponse:
    return await auth.refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    context: AuthContext = Depends(get_auth_context),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.logout(context)
    return MessageResponse(success=True, message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    principal: Principal = Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    count = await auth.logout_all(principal)
    return MessageResponse(success=True, message=f"Revoked {count} session token(s)")


@router.get("/me", response_model=UserProfileResponse, response_model_by_alias=True)
async def me(
    principal: Principal = Depends(get_current_principal),
) -> UserProfileResponse:
    return UserProfileResponse(
        id=principal.id,
        name=principal.display_name,
        email=principal.email,
        username=principal.username,
        role=principal.role.value,
        roles=principal.authorities,
        contact_information=principal.contact_information,
        profile_photo_url=principal.profile_photo_url,
    )


@router.get(
    "/sessions", response_model=list[SessionResponse], response_model_by_alias=True
)
async def sessions(
    context: AuthContext = Depends(get_auth_context),
    auth: AuthService = Depends(get_auth_service),
) -> list[SessionResponse]:
    rows = await auth.list_sessions(context.principal)
    return [
        SessionResponse(
            correlation_id=row.correlation_id,
            token_type=row.token_type,
            created_at=row.created_at,
            expires_at=row.expires_at,
            current=row.correlation_id is not None
            and row.correlation_id == context.stored.correlation_id,
        )
        for row in rows
    ]


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    body: SendOTPRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    message = await auth.send_signup_otp(body.phone_number, body.email)
    return MessageResponse(success=True, message=message)


@router.post("/verify-otp", response_model=OTPVerificationResponse)
async def verify_otp(
    body: VerifyOTPRequest, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    result = await auth.verify_otp(body.phone_number, body.email, body.otp_code)
    return _otp_result(result)


@router.post("/signup", response_model=MessageResponse, status_code=201)
async def signup(
    body: SignupRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.signup(body)
    return MessageResponse(success=True, message="User registered successfully")


@router.post("/check-username", response_model=MessageResponse)
async def check_username(
    body: CheckUsernameRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    message = await auth.check_username(body.username)
    return MessageResponse(success=True, message=message)


@router.post("/check-email", response_model=MessageResponse)
async def check_email(
    body: CheckEmailRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    message = await auth.check_email(body.email)
    return MessageResponse(success=True, message=message)


@router.post("/check-phone", response_model=MessageResponse)
async def check_phone(
    body: CheckPhoneRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    message = await auth.check_phone(body.phone)
    return MessageResponse(success=True, message=message)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.change_password(body)
    return MessageResponse(success=True, message="Password changed successfully")


@router.post("/forgot-password/send-otp", response_model=MessageResponse)
async def forgot_password_send_otp(
    body: ForgotPasswordOTPRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    message = await auth.send_reset_otp(body.email)
    return MessageResponse(success=True, message=message)


@router.post("/forgot-password/verify-otp", response_model=OTPVerificationResponse)
async def forgot_password_verify_otp(
    body: ForgotPasswordVerifyRequest, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    result = await auth.verify_password_reset_otp(body.email, body.otp_code)
    return _otp_result(result)


@router.post("/forgot-password/reset", response_model=MessageResponse)
async def forgot_password_reset(
    body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.reset_password(body.email, body.new_password)
    return MessageResponse(success=True, message="Password reset successfully")
