"""
Session materializer.

The session cookie carries a signed JWT whose ``user`` claim is a
SessionSnapshot. The cookie is a read-only cache of the account document:
it is rebuilt from the store after every mutation and never written back.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import jwt
from fastapi import Request, Response
from pydantic import ValidationError as PydanticValidationError

from config import SessionSettings
from errors import AuthenticationError
from repositories.account_repository import AccountRepository
from schemas.models.session import SessionSnapshot
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_ALGORITHM = "HS256"
_AUDIENCE = "reciperadar.web"


class SessionService:
    def __init__(
        self,
        accounts: AccountRepository,
        settings: SessionSettings,
        issuer: str = "reciperadar",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._accounts = accounts
        self._settings = settings
        self._issuer = issuer
        self._clock = clock

    @property
    def cookie_name(self) -> str:
        return self._settings.session_cookie_name

    async def materialize(self, account_id: Any) -> SessionSnapshot:
        """Build a fresh snapshot from the stored account.

        Raises:
            AuthenticationError: the account no longer exists.
        """
        account = await self._accounts.find_by_id(account_id)
        if account is None:
            raise AuthenticationError("Your session has expired. Please log in again.")
        return SessionSnapshot.from_account(account)

    def encode(self, snapshot: SessionSnapshot) -> str:
        now = self._clock()
        claims = {
            "iss": self._issuer,
            "aud": _AUDIENCE,
            "sub": snapshot.id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._settings.session_ttl_seconds)).timestamp()),
            "user": snapshot.to_payload(),
        }
        return jwt.encode(claims, self._settings.session_secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> Optional[SessionSnapshot]:
        """Verify *token* and validate its payload; None for anything invalid."""
        try:
            claims = jwt.decode(
                token,
                self._settings.session_secret,
                algorithms=[_ALGORITHM],
                audience=_AUDIENCE,
                issuer=self._issuer,
                options={"require": ["exp", "sub"]},
            )
            snapshot = SessionSnapshot.model_validate(claims.get("user"))
        except jwt.InvalidTokenError as e:
            log.info("session_rejected", reason=type(e).__name__)
            return None
        except PydanticValidationError:
            log.warning("session_rejected", reason="malformed_payload")
            return None

        if snapshot.id != claims["sub"]:
            log.warning("session_rejected", reason="subject_mismatch")
            return None
        return snapshot

    def install(self, response: Response, snapshot: SessionSnapshot) -> None:
        response.set_cookie(
            self.cookie_name,
            value=self.encode(snapshot),
            httponly=True,
            secure=self._settings.cookie_secure,
            samesite="lax",
            path="/",
            max_age=self._settings.session_ttl_seconds,
        )

    def destroy(self, response: Response) -> None:
        response.set_cookie(
            self.cookie_name,
            value="",
            expires=0,
            max_age=0,
            httponly=True,
            secure=self._settings.cookie_secure,
            samesite="lax",
            path="/",
        )

    def read(self, request: Request) -> Optional[SessionSnapshot]:
        """The snapshot carried by *request*, or None for anonymous callers."""
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        return self.decode(token)
