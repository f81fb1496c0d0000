"""
Credential store backed by the `accounts` collection.

Every write is a single-document operation, so each one is atomic on its
own. Writes that depend on a prior read pass ``expected_version``; the
update then only applies if nobody else has written the account since, and
``None`` is returned otherwise.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from repositories.base import BaseRepository, to_bson
from schemas.models.account import AccountDoc
from schemas.models.base import to_object_id
from shared.logging import get_logger

log = get_logger(__name__)

_CONFLICT_MESSAGES = {
    "email": "A user with this email already exists.",
    "name_lower": "This name is already taken. Please choose another.",
}


def _conflict_from(error: DuplicateKeyError) -> ConflictError:
    key_pattern = (error.details or {}).get("keyPattern", {})
    for key, message in _CONFLICT_MESSAGES.items():
        if key in key_pattern:
            field = "name" if key == "name_lower" else key
            return ConflictError(message, field=field)
    return ConflictError("Account already exists.")


def admin_claim_fields(name: str, password_hash: str, now: datetime) -> dict[str, Any]:
    """Fields the configured administrator login always overwrites."""
    return {
        "name": name,
        "name_lower": name.lower(),
        "avatar_seed": name,
        "password_hash": password_hash,
        "is_admin": True,
        "verified": True,
        "suspended_until": None,
        "signup_code": None,
        "email_change_code": None,
        "password_reset_code": None,
        "updated_at": now,
    }


class AccountRepository(BaseRepository):
    async def ensure_indexes(self) -> None:
        async with self._store_errors("ensure_indexes"):
            await self._col.create_index([("email", ASCENDING)], unique=True)
            await self._col.create_index([("name_lower", ASCENDING)], unique=True)
            await self._col.create_index(
                [("verified", ASCENDING), ("signup_code.expires_at", ASCENDING)]
            )

    async def find_by_id(self, account_id: Any) -> Optional[AccountDoc]:
        oid = to_object_id(account_id)
        if oid is None:
            return None
        async with self._store_errors("find_by_id"):
            doc = await self._col.find_one({"_id": oid})
        return AccountDoc.from_mongo(doc)

    async def find_by_email(self, email: str) -> Optional[AccountDoc]:
        async with self._store_errors("find_by_email"):
            doc = await self._col.find_one({"email": email})
        return AccountDoc.from_mongo(doc)

    async def find_by_name(self, name: str) -> Optional[AccountDoc]:
        async with self._store_errors("find_by_name"):
            doc = await self._col.find_one({"name_lower": name.lower()})
        return AccountDoc.from_mongo(doc)

    async def create_account(self, account: AccountDoc) -> AccountDoc:
        """Insert a new account.

        Raises:
            ConflictError: the email or (case-insensitive) name is taken.
        """
        doc = account.to_mongo()
        try:
            async with self._store_errors("create_account"):
                result = await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            raise _conflict_from(e) from e
        return account.model_copy(update={"id": result.inserted_id})

    async def replace_account(
        self, account_id: Any, expected_version: int, account: AccountDoc
    ) -> Optional[AccountDoc]:
        """Swap the whole document, keeping its id. Compare-and-set on version."""
        doc = account.to_mongo()
        doc.pop("_id", None)
        doc["version"] = expected_version + 1
        try:
            async with self._store_errors("replace_account"):
                result = await self._col.find_one_and_replace(
                    {"_id": to_object_id(account_id), "version": expected_version},
                    doc,
                    return_document=ReturnDocument.AFTER,
                )
        except DuplicateKeyError as e:
            raise _conflict_from(e) from e
        return AccountDoc.from_mongo(result)

    async def update_fields(
        self,
        account_id: Any,
        set_fields: Optional[Mapping[str, Any]] = None,
        *,
        expected_version: Optional[int] = None,
        add_to_set: Optional[Mapping[str, Any]] = None,
        pull: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[AccountDoc]:
        """Apply one atomic update and return the account as written.

        Returns None when the account does not exist or, with
        ``expected_version``, when another write got there first.

        Raises:
            ConflictError: a new email or name collides with another account.
        """
        query: dict[str, Any] = {"_id": to_object_id(account_id)}
        if expected_version is not None:
            query["version"] = expected_version

        updated_set = {k: to_bson(v) for k, v in (set_fields or {}).items()}
        if now is not None:
            updated_set["updated_at"] = now
        update: dict[str, Any] = {"$inc": {"version": 1}}
        if updated_set:
            update["$set"] = updated_set
        if add_to_set:
            update["$addToSet"] = dict(add_to_set)
        if pull:
            update["$pull"] = dict(pull)

        try:
            async with self._store_errors("update_fields"):
                result = await self._col.find_one_and_update(
                    query, update, return_document=ReturnDocument.AFTER
                )
        except DuplicateKeyError as e:
            raise _conflict_from(e) from e
        return AccountDoc.from_mongo(result)

    async def delete_by_id(
        self, account_id: Any, *, expected_version: Optional[int] = None
    ) -> bool:
        query: dict[str, Any] = {"_id": to_object_id(account_id)}
        if expected_version is not None:
            query["version"] = expected_version
        async with self._store_errors("delete_by_id"):
            result = await self._col.delete_one(query)
        return result.deleted_count == 1

    async def upsert_admin(
        self, email: str, name: str, password_hash: str, now: datetime
    ) -> AccountDoc:
        """Idempotently materialize the configured administrator account.

        Credentials, name and pending codes are overwritten on every call, so
        a row registered under the admin email by anyone else is taken over
        whole.

        Raises:
            ConflictError: *name* is held by another account (field "name").
        """
        claimed = admin_claim_fields(name, password_hash, now)
        on_insert = AccountDoc(
            name=name,
            name_lower=name.lower(),
            email=email,
            password_hash=password_hash,
            avatar_seed=name,
            created_at=now,
        ).to_mongo()
        for key in (*claimed, "version"):
            on_insert.pop(key, None)

        try:
            async with self._store_errors("upsert_admin"):
                result = await self._col.find_one_and_update(
                    {"email": email},
                    {
                        "$set": claimed,
                        "$setOnInsert": on_insert,
                        "$inc": {"version": 1},
                    },
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
        except DuplicateKeyError as e:
            raise _conflict_from(e) from e
        return AccountDoc.from_mongo(result)

    async def purge_expired_unverified(self, now: datetime) -> int:
        """Delete unverified accounts whose signup code has expired."""
        async with self._store_errors("purge_expired_unverified"):
            result = await self._col.delete_many(
                {
                    "verified": False,
                    "is_admin": False,
                    "$or": [
                        {"signup_code": None},
                        {"signup_code.expires_at": {"$lt": now}},
                    ],
                }
            )
        if result.deleted_count:
            log.info("unverified_accounts_purged", count=result.deleted_count)
        return result.deleted_count
