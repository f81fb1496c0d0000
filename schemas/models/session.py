"""
Session snapshot model.

The denormalized projection of an AccountDoc carried in the session cookie.
Serialized with camelCase keys so the presentation layer reads the same
shape it always has. Never the system of record: it is rebuilt from the
store after every mutation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schemas.models.account import AccountDoc


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str
    name: str
    email: str
    is_admin: bool = False
    favorites: list[str] = []
    favorite_cuisines: list[str] = []
    achievements: list[str] = []
    country: str = ""
    dietary_preference: str = "All"
    avatar: str = ""
    suspended_until: Optional[datetime] = None

    # Rate-limit bookkeeping surfaced to the presentation layer
    password_change_attempts: int = 0
    last_password_attempt_at: Optional[datetime] = None
    name_last_changed_at: Optional[datetime] = None
    new_email_requests_sent: int = 0
    last_new_email_request_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: AccountDoc) -> "SessionSnapshot":
        return cls(
            id=str(account.id),
            name=account.name,
            email=account.email,
            is_admin=account.is_admin,
            favorites=list(account.favorites),
            favorite_cuisines=list(account.favorite_cuisines),
            achievements=list(account.achievements),
            country=account.country,
            dietary_preference=account.dietary_preference,
            avatar=account.avatar_seed,
            suspended_until=account.suspended_until,
            password_change_attempts=account.password_attempts.count,
            last_password_attempt_at=account.password_attempts.last_at,
            name_last_changed_at=account.name_last_changed_at,
            new_email_requests_sent=account.email_change_requests.count,
            last_new_email_request_at=account.email_change_requests.last_at,
        )

    def to_payload(self) -> dict:
        """JSON-safe dict with camelCase keys, as stored in the cookie."""
        return self.model_dump(mode="json", by_alias=True)
