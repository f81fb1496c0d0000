"""
Request DTOs for authentication endpoints.

LoginRequest                POST /auth/login
SignupRequest               POST /auth/signup
VerifyEmailRequest          POST /auth/verify-email
ResendVerificationRequest   POST /auth/resend-verification
RequestPasswordResetRequest POST /auth/request-password-reset
ResetPasswordRequest        POST /auth/reset-password

Bodies use camelCase keys; snake_case is accepted too.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelRequest):
    """Request body for POST /auth/login."""

    email: str
    password: str


class SignupRequest(_CamelRequest):
    """Request body for POST /auth/signup."""

    name: str
    email: str
    password: str
    country: str
    dietary_preference: str = "All"


class VerifyEmailRequest(_CamelRequest):
    """Request body for POST /auth/verify-email.

    ``code`` is the 6-digit code sent to ``email``.
    """

    email: str
    code: str


class ResendVerificationRequest(_CamelRequest):
    email: str


class RequestPasswordResetRequest(_CamelRequest):
    email: str


class ResetPasswordRequest(_CamelRequest):
    """Request body for POST /auth/reset-password."""

    email: str
    code: str
    new_password: str
