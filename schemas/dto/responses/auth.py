"""
Response DTOs for authentication and account endpoints.

SessionResponse         login, verify-email, GET /account/me and every
                          account mutation (200)
SignupResponse          POST /auth/signup (201)
FavoriteToggleResponse  POST /account/favorites/{recipe_id} (200)
"""

from __future__ import annotations

from schemas.dto.responses.common import CamelResponse
from schemas.models.session import SessionSnapshot


class SessionResponse(CamelResponse):
    """The refreshed session snapshot, mirrored from the cookie."""

    success: bool = True
    user: SessionSnapshot


class SignupResponse(CamelResponse):
    success: bool = True
    message: str
    email: str
    requires_verification: bool = True


class FavoriteToggleResponse(CamelResponse):
    success: bool = True
    is_favorite: bool
    achievement_unlocked: bool
    user: SessionSnapshot
