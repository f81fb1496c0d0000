"""
Request DTOs for the signed-in account endpoints.

ChangePasswordRequest        POST /account/password
RequestEmailChangeRequest    POST /account/email
ConfirmEmailChangeRequest    POST /account/email/confirm
UpdateProfileRequest         PATCH /account/profile
FavoriteCuisinesRequest      PUT /account/favorite-cuisines
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from schemas.dto.requests.auth import _CamelRequest


class ChangePasswordRequest(_CamelRequest):
    current_password: str
    new_password: str


class RequestEmailChangeRequest(_CamelRequest):
    new_email: str


class ConfirmEmailChangeRequest(_CamelRequest):
    new_email: str
    code: str


class UpdateProfileRequest(_CamelRequest):
    """Request body for PATCH /account/profile. Omitted fields are unchanged."""

    name: Optional[str] = None
    country: Optional[str] = None
    dietary_preference: Optional[str] = None


class FavoriteCuisinesRequest(_CamelRequest):
    cuisines: list[str] = Field(default_factory=list, max_length=50)
