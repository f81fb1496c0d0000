"""
Authentication endpoints.

POST /auth/login                   sign in, installs the session cookie
POST /auth/logout                  clears the session cookie
POST /auth/signup                  create an account and email a code
POST /auth/verify-email            confirm the signup code, signs in
POST /auth/resend-verification     email a fresh signup code
POST /auth/request-password-reset  email a password reset code
POST /auth/reset-password          set a new password from a reset code

Anonymous entry points are rate limited per client IP.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from dependencies import (
    get_account_service,
    get_current_session,
    get_session_service,
    rate_limit,
)
from schemas.dto.requests.auth import (
    LoginRequest,
    RequestPasswordResetRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyEmailRequest,
)
from schemas.dto.responses.auth import SessionResponse, SignupResponse
from schemas.dto.responses.common import MessageResponse
from schemas.models.session import SessionSnapshot
from services.account_service import AccountService
from services.rate_limiter import RateAction
from services.session_service import SessionService

router = APIRouter(prefix="/auth", tags=["auth"])

# Same answer whether or not the email exists
_CODE_SENT_IF_EXISTS = "If an account exists for that email, a code has been sent."


@router.post(
    "/login",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit(RateAction.LOGIN_ATTEMPT))],
)
async def login(
    body: LoginRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.login(body.email, body.password)
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    session: Optional[SessionSnapshot] = Depends(get_current_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> MessageResponse:
    await accounts.logout(session)
    sessions.destroy(response)
    return MessageResponse(message="Logged out.")


@router.post(
    "/signup",
    status_code=201,
    response_model=SignupResponse,
    dependencies=[Depends(rate_limit(RateAction.SIGNUP_ATTEMPT))],
)
async def signup(
    body: SignupRequest,
    accounts: AccountService = Depends(get_account_service),
) -> SignupResponse:
    account = await accounts.signup(
        body.name,
        body.email,
        body.password,
        body.country,
        body.dietary_preference,
    )
    return SignupResponse(
        message="Account created. Check your email for the verification code.",
        email=account.email,
    )


@router.post(
    "/verify-email",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit(RateAction.OTP_REQUEST))],
)
async def verify_email(
    body: VerifyEmailRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.verify_signup(body.email, body.code)
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(RateAction.OTP_REQUEST))],
)
async def resend_verification(
    body: ResendVerificationRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.resend_verification(body.email)
    return MessageResponse(message=_CODE_SENT_IF_EXISTS)


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(RateAction.OTP_REQUEST))],
)
async def request_password_reset(
    body: RequestPasswordResetRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.request_password_reset(body.email)
    return MessageResponse(message=_CODE_SENT_IF_EXISTS)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(RateAction.OTP_REQUEST))],
)
async def reset_password(
    body: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.reset_password(body.email, body.code, body.new_password)
    return MessageResponse(message="Password updated. You can now log in.")
