"""
FastAPI dependency providers.

Everything the routes inject lives here as a plain function used with
Depends(). Services are built once in the app lifespan and read back from
app.state, so tests can swap in fakes by replacing app.state entries.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request

from errors import AuthenticationError
from schemas.models.session import SessionSnapshot
from services.account_service import AccountService
from services.rate_limiter import RateAction, RateLimiter
from services.session_service import SessionService
from shared.ip_utils import get_client_ip


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_current_session(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> Optional[SessionSnapshot]:
    """The caller's session snapshot, or None when anonymous."""
    return sessions.read(request)


def require_session(
    session: Optional[SessionSnapshot] = Depends(get_current_session),
) -> SessionSnapshot:
    """Like get_current_session, but anonymous callers get a 401."""
    if session is None:
        raise AuthenticationError("Please log in to continue.")
    return session


def rate_limit(action: RateAction) -> Callable[..., Awaitable[None]]:
    """Dependency factory enforcing the per-IP window for *action*."""

    async def _check(
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        await limiter.check_and_consume(get_client_ip(request), action)

    return _check
