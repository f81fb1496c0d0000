"""Response DTOs for admin moderation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.dto.responses.common import CamelResponse


class ModerationResponse(CamelResponse):
    """Response body for suspend / unsuspend (200)."""

    success: bool = True
    user_id: str
    suspended_until: Optional[datetime] = None
