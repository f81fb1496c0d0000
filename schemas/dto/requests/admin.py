"""Request DTOs for admin moderation endpoints."""

from __future__ import annotations

from schemas.dto.requests.auth import _CamelRequest


class SuspendUserRequest(_CamelRequest):
    """Request body for POST /admin/users/{user_id}/suspend."""

    days: int
