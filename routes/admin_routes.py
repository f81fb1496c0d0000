"""
Admin moderation endpoints.

POST   /admin/users/{user_id}/suspend    suspend for N days
POST   /admin/users/{user_id}/unsuspend  lift a suspension
DELETE /admin/users/{user_id}            delete the account

The caller's admin flag is re-read from the store on every request; the
cookie's isAdmin is never trusted for authorization.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_account_service, require_session
from schemas.dto.requests.admin import SuspendUserRequest
from schemas.dto.responses.admin import ModerationResponse
from schemas.dto.responses.common import MessageResponse
from schemas.models.session import SessionSnapshot
from services.account_service import AccountService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/suspend", response_model=ModerationResponse)
async def suspend_user(
    user_id: str,
    body: SuspendUserRequest,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> ModerationResponse:
    account = await accounts.suspend_user(session.id, user_id, body.days)
    return ModerationResponse(user_id=str(account.id), suspended_until=account.suspended_until)


@router.post("/users/{user_id}/unsuspend", response_model=ModerationResponse)
async def unsuspend_user(
    user_id: str,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> ModerationResponse:
    account = await accounts.unsuspend_user(session.id, user_id)
    return ModerationResponse(user_id=str(account.id))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    session: SessionSnapshot = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.delete_user(session.id, user_id)
    return MessageResponse(message="User deleted.")
