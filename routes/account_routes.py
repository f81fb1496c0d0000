"""
Signed-in account endpoints.

Every mutation answers with the re-materialized snapshot and replaces the
session cookie with it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from dependencies import get_account_service, get_session_service, require_session
from errors import AuthenticationError, SuspendedError
from schemas.dto.requests.account import (
    ChangePasswordRequest,
    ConfirmEmailChangeRequest,
    FavoriteCuisinesRequest,
    RequestEmailChangeRequest,
    UpdateProfileRequest,
)
from schemas.dto.responses.auth import FavoriteToggleResponse, SessionResponse
from schemas.models.session import SessionSnapshot
from services.account_service import AccountService
from services.session_service import SessionService
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/account", tags=["account"])


@router.get("/me", response_model=SessionResponse)
async def me(
    request: Request,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
):
    """Refresh the snapshot from the store; a gone or suspended account is logged out."""
    try:
        snapshot = await accounts.refresh_session(session.id)
    except (AuthenticationError, SuspendedError) as e:
        log.info("session_revoked", user_id=session.id, reason=e.error_code)
        revoked = JSONResponse(status_code=e.status_code, content=e.to_dict())
        sessions.destroy(revoked)
        return revoked
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post("/password", response_model=SessionResponse)
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.change_password(
        session.id, body.current_password, body.new_password
    )
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post("/email", response_model=SessionResponse)
async def request_email_change(
    body: RequestEmailChangeRequest,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.request_email_change(session.id, body.new_email)
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post("/email/confirm", response_model=SessionResponse)
async def confirm_email_change(
    body: ConfirmEmailChangeRequest,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.confirm_email_change(session.id, body.new_email, body.code)
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.patch("/profile", response_model=SessionResponse)
async def update_profile(
    body: UpdateProfileRequest,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.update_profile(
        session.id,
        name=body.name,
        country=body.country,
        dietary_preference=body.dietary_preference,
    )
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.put("/favorite-cuisines", response_model=SessionResponse)
async def update_favorite_cuisines(
    body: FavoriteCuisinesRequest,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    snapshot = await accounts.update_favorite_cuisines(session.id, body.cuisines)
    sessions.install(response, snapshot)
    return SessionResponse(user=snapshot)


@router.post("/favorites/{recipe_id}", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    recipe_id: str,
    response: Response,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionService = Depends(get_session_service),
) -> FavoriteToggleResponse:
    result = await accounts.toggle_favorite(session.id, recipe_id)
    sessions.install(response, result.session)
    return FavoriteToggleResponse(
        is_favorite=result.is_favorite,
        achievement_unlocked=result.achievement_unlocked,
        user=result.session,
    )
