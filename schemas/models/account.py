"""
Account document model.

Maps to the `accounts` MongoDB collection. One document holds everything the
session snapshot is derived from, so every gateway write is a single-document
update:

- identity and credentials (email, password_hash, verified, suspended_until)
- profile (name, country, dietary_preference, avatar_seed)
- derived collections (favorites, favorite_cuisines, achievements)
- pending one-time codes, one embedded sub-document per purpose
- daily attempt counters, one embedded sub-document per action

`version` increases on every write and guards compare-and-set updates.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc

ACHIEVEMENT_FIRST_FAVORITE = "first_favorite"


class CodePurpose(str, Enum):
    SIGNUP = "signup"
    EMAIL_CHANGE = "email_change"
    PASSWORD_RESET = "password_reset"

    @property
    def field(self) -> str:
        """Name of the embedded sub-document holding this purpose's code."""
        return f"{self.value}_code"


class PendingCode(BaseModel):
    """A hashed one-time code awaiting verification."""

    code_hash: str
    expires_at: datetime
    # Set only for email-change codes
    new_email: Optional[str] = None
    failed_attempts: int = Field(default=0, ge=0)


class AttemptCounter(BaseModel):
    """Per-day attempt bookkeeping for a rate-limited action."""

    count: int = Field(default=0, ge=0)
    last_at: Optional[datetime] = None


class AccountDoc(MongoBaseModel):
    """Document model for the `accounts` collection."""

    name: str
    name_lower: str
    email: str
    password_hash: str
    is_admin: bool = False
    verified: bool = False
    suspended_until: Optional[datetime] = None
    country: str = ""
    dietary_preference: str = "All"
    avatar_seed: str = ""

    favorites: list[str] = []
    favorite_cuisines: list[str] = []
    achievements: list[str] = []

    signup_code: Optional[PendingCode] = None
    email_change_code: Optional[PendingCode] = None
    password_reset_code: Optional[PendingCode] = None

    password_attempts: AttemptCounter = Field(default_factory=AttemptCounter)
    verification_emails: AttemptCounter = Field(default_factory=AttemptCounter)
    email_change_requests: AttemptCounter = Field(default_factory=AttemptCounter)
    password_reset_requests: AttemptCounter = Field(default_factory=AttemptCounter)

    name_last_changed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    def pending(self, purpose: CodePurpose) -> Optional[PendingCode]:
        return getattr(self, purpose.field)

    def suspension_end(self, now: datetime) -> Optional[datetime]:
        """The suspension end if the account is suspended at *now*, else None."""
        until = ensure_utc(self.suspended_until)
        if until is not None and until > now:
            return until
        return None

    def signup_code_expired(self, now: datetime) -> bool:
        """True for an unverified account whose signup code has lapsed."""
        if self.verified:
            return False
        if self.signup_code is None:
            return True
        return ensure_utc(self.signup_code.expires_at) < now
