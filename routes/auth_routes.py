"""
Authentication endpoints under /api/v1/auth.

POST /user-register              — create inactive user, email OTP (201)
POST /user-verify                — verify OTP, activate user (201)
POST /user-login                 — password login, new session + tokens
POST /forgot-password            — email a password-reset OTP
POST /verify-forgot-password-otp — verify the reset OTP
POST /reset-password             — set new password, revoke all sessions
POST /refresh-token              — rotate the token pair of a session
POST /logout                     — end the current session
POST /logout-all                 — end every session of the caller
GET  /me                         — current user
GET  /status                     — whether the caller is authenticated

Routes only translate between DTOs and AuthService; errors are raised by the
service and rendered by the global handlers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from dependencies import (
    get_auth_context,
    get_auth_service,
    get_current_user,
    get_optional_user,
    rate_limit_by_user,
    require_status,
)
from schemas.dto.requests.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.auth import (
    AuthStatusData,
    LoginData,
    RefreshData,
    SessionInfo,
    TokenPairResponse,
    UserResponse,
)
from schemas.dto.responses.common import ApiResponse
from schemas.models.user import USER_STATUS_ACTIVE, UserDoc
from services.auth_service import AuthContext, AuthService
from shared.ip_utils import get_client_ip, get_user_agent

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/user-register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserResponse],
    response_model_by_alias=True,
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.register(body.email, body.full_name, body.password)
    return ApiResponse[UserResponse](
        message="User registered successfully. Please verify your email with the OTP sent.",
        data=UserResponse.from_doc(user),
    )


@router.post(
    "/user-verify",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserResponse],
    response_model_by_alias=True,
)
async def verify_user(
    body: VerifyOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.verify_registration(body.email, body.otp)
    return ApiResponse[UserResponse](
        message="Email verified successfully", data=UserResponse.from_doc(user)
    )


@router.post(
    "/user-login",
    response_model=ApiResponse[LoginData],
    response_model_by_alias=True,
)
async def login(
    body: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = await auth_service.login(
        body.email,
        body.password,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request) or None,
    )
    return ApiResponse[LoginData](
        message="Login successful",
        data=LoginData(
            user=UserResponse.from_doc(result.user),
            session=SessionInfo.from_doc(result.session),
            tokens=TokenPairResponse.from_pair(result.tokens),
        ),
    )


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(
    body: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.forgot_password(body.email)
    return ApiResponse[None](message="OTP sent to your email for password reset")


@router.post("/verify-forgot-password-otp", response_model=ApiResponse[None])
async def verify_forgot_password_otp(
    body: VerifyOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.verify_forgot_password_otp(body.email, body.otp)
    return ApiResponse[None](message="OTP verified. You can now reset your password")


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(
    body: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.reset_password(body.email, body.new_password)
    return ApiResponse[None](
        message="Password reset successfully. Please log in with your new password"
    )


@router.post(
    "/refresh-token",
    response_model=ApiResponse[RefreshData],
    response_model_by_alias=True,
)
async def refresh_token(
    body: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = await auth_service.refresh_tokens(body.refresh_token)
    return ApiResponse[RefreshData](
        message="Tokens refreshed successfully",
        data=RefreshData(
            session=SessionInfo.from_doc(result.session),
            tokens=TokenPairResponse.from_pair(result.tokens),
        ),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    ctx: AuthContext = Depends(get_auth_context),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.logout(ctx.session_id)
    return ApiResponse[None](message="Logged out successfully")


@router.post(
    "/logout-all",
    response_model=ApiResponse[dict],
    dependencies=[
        Depends(require_status(USER_STATUS_ACTIVE)),
        Depends(rate_limit_by_user("logout-all")),
    ],
)
async def logout_all(
    user: UserDoc = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    revoked = await auth_service.logout_everywhere(user.id)
    return ApiResponse[dict](
        message="Logged out from all devices", data={"sessionsRevoked": revoked}
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    response_model_by_alias=True,
)
async def me(user: UserDoc = Depends(get_current_user)):
    return ApiResponse[UserResponse](
        message="User retrieved successfully", data=UserResponse.from_doc(user)
    )


@router.get(
    "/status",
    response_model=ApiResponse[AuthStatusData],
    response_model_by_alias=True,
)
async def auth_status(user: Optional[UserDoc] = Depends(get_optional_user)):
    return ApiResponse[AuthStatusData](
        message="Authenticated" if user else "Not authenticated",
        data=AuthStatusData(
            authenticated=user is not None,
            user=UserResponse.from_doc(user) if user else None,
        ),
    )
