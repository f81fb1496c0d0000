"""
Shared fixtures.

The in-memory repositories below honour the same contracts as the MongoDB
ones: every write checks and applies in one step (no await in between),
compare-and-set misses return None, and unique email / name_lower clashes
raise ConflictError. Each method yields to the event loop once before
touching state so asyncio.gather() interleaves concurrent callers the way
real round-trips would.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from bson import ObjectId
from limits.aio.storage import MemoryStorage

from config import AdminSettings, SessionSettings
from errors import ConflictError
from repositories.account_repository import admin_claim_fields
from repositories.base import to_bson
from schemas.models.account import AccountDoc
from schemas.models.base import to_object_id
from services.account_service import AccountService
from services.rate_limiter import RateLimiter
from services.session_service import SessionService
from services.verification_service import VerificationService
from shared.crypto import hash_password

START = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
PASSWORD = "Str0ng!Pass"


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeAccountRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, dict] = {}

    # helpers

    def _load(self, doc: Optional[dict]) -> Optional[AccountDoc]:
        return AccountDoc.from_mongo(copy.deepcopy(doc)) if doc else None

    def _first(self, **match: Any) -> Optional[dict]:
        for doc in self.docs.values():
            if all(doc.get(k) == v for k, v in match.items()):
                return doc
        return None

    def _check_unique(self, doc: dict, own_id: Optional[ObjectId] = None) -> None:
        for other_id, other in self.docs.items():
            if other_id == own_id:
                continue
            if other["email"] == doc["email"]:
                raise ConflictError("A user with this email already exists.", field="email")
            if other["name_lower"] == doc["name_lower"]:
                raise ConflictError(
                    "This name is already taken. Please choose another.", field="name"
                )

    def put(self, account: AccountDoc) -> AccountDoc:
        """Seed an account directly, bypassing uniqueness checks."""
        doc = account.to_mongo()
        doc["_id"] = doc.get("_id") or ObjectId()
        self.docs[doc["_id"]] = doc
        return self._load(doc)

    def patch(self, account_id: Any, **fields: Any) -> None:
        """Overwrite stored fields directly, as another writer would."""
        doc = self.docs[to_object_id(account_id)]
        doc.update({key: to_bson(value) for key, value in fields.items()})
        doc["version"] += 1

    # AccountRepository contract

    async def ensure_indexes(self) -> None:
        return None

    async def find_by_id(self, account_id: Any) -> Optional[AccountDoc]:
        await asyncio.sleep(0)
        oid = to_object_id(account_id)
        return self._load(self.docs.get(oid)) if oid else None

    async def find_by_email(self, email: str) -> Optional[AccountDoc]:
        await asyncio.sleep(0)
        return self._load(self._first(email=email))

    async def find_by_name(self, name: str) -> Optional[AccountDoc]:
        await asyncio.sleep(0)
        return self._load(self._first(name_lower=name.lower()))

    async def create_account(self, account: AccountDoc) -> AccountDoc:
        await asyncio.sleep(0)
        doc = account.to_mongo()
        self._check_unique(doc)
        doc["_id"] = ObjectId()
        self.docs[doc["_id"]] = doc
        return self._load(doc)

    async def replace_account(
        self, account_id: Any, expected_version: int, account: AccountDoc
    ) -> Optional[AccountDoc]:
        await asyncio.sleep(0)
        oid = to_object_id(account_id)
        current = self.docs.get(oid)
        if current is None or current["version"] != expected_version:
            return None
        doc = account.to_mongo()
        doc["_id"] = oid
        doc["version"] = expected_version + 1
        self._check_unique(doc, own_id=oid)
        self.docs[oid] = doc
        return self._load(doc)

    async def update_fields(
        self,
        account_id: Any,
        set_fields=None,
        *,
        expected_version: Optional[int] = None,
        add_to_set=None,
        pull=None,
        now: Optional[datetime] = None,
    ) -> Optional[AccountDoc]:
        await asyncio.sleep(0)
        oid = to_object_id(account_id)
        current = self.docs.get(oid)
        if current is None:
            return None
        if expected_version is not None and current["version"] != expected_version:
            return None

        doc = copy.deepcopy(current)
        for key, value in (set_fields or {}).items():
            doc[key] = to_bson(value)
        if now is not None:
            doc["updated_at"] = now
        for key, value in (add_to_set or {}).items():
            if value not in doc[key]:
                doc[key].append(value)
        for key, value in (pull or {}).items():
            doc[key] = [v for v in doc[key] if v != value]
        doc["version"] = current["version"] + 1

        self._check_unique(doc, own_id=oid)
        self.docs[oid] = doc
        return self._load(doc)

    async def delete_by_id(self, account_id: Any, *, expected_version: Optional[int] = None) -> bool:
        await asyncio.sleep(0)
        oid = to_object_id(account_id)
        current = self.docs.get(oid)
        if current is None:
            return False
        if expected_version is not None and current["version"] != expected_version:
            return False
        del self.docs[oid]
        return True

    async def upsert_admin(
        self, email: str, name: str, password_hash: str, now: datetime
    ) -> AccountDoc:
        await asyncio.sleep(0)
        current = self._first(email=email)
        if current is None:
            doc = AccountDoc(
                name=name,
                name_lower=name.lower(),
                email=email,
                password_hash=password_hash,
                avatar_seed=name,
                created_at=now,
            ).to_mongo()
            doc["_id"] = ObjectId()
        else:
            doc = copy.deepcopy(current)
        doc.update(admin_claim_fields(name, password_hash, now))
        doc["version"] += 1
        self._check_unique(doc, own_id=doc["_id"])
        self.docs[doc["_id"]] = doc
        return self._load(doc)

    async def purge_expired_unverified(self, now: datetime) -> int:
        await asyncio.sleep(0)
        doomed = [
            oid
            for oid, doc in self.docs.items()
            if not doc["verified"]
            and not doc["is_admin"]
            and (doc["signup_code"] is None or doc["signup_code"]["expires_at"] < now)
        ]
        for oid in doomed:
            del self.docs[oid]
        return len(doomed)


class FakeEmailProvider:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.succeed = True

    async def send_code(self, destination, code, subject, preamble) -> bool:
        await asyncio.sleep(0)
        if not self.succeed:
            return False
        self.sent.append(
            {"to": destination, "code": code, "subject": subject, "preamble": preamble}
        )
        return True

    def last_code(self, destination: str) -> str:
        for message in reversed(self.sent):
            if message["to"] == destination:
                return message["code"]
        raise AssertionError(f"no code sent to {destination}")


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def account_repo() -> FakeAccountRepository:
    return FakeAccountRepository()


@pytest.fixture
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture
def session_settings() -> SessionSettings:
    return SessionSettings(session_secret="test-secret-" + "x" * 32, cookie_secure=False)


@pytest.fixture
def admin_settings() -> AdminSettings:
    return AdminSettings(
        admin_email="chef@reciperadar.app",
        admin_password="Adm1n!Secret",
        admin_name="Head Chef",
    )


@pytest.fixture
def verifier(account_repo) -> VerificationService:
    return VerificationService(account_repo)


@pytest.fixture
def session_service(account_repo, session_settings) -> SessionService:
    # PyJWT validates exp/iat against the wall clock, so tokens use real time
    return SessionService(account_repo, session_settings)


@pytest.fixture
def account_service(
    account_repo, verifier, session_service, email_provider, admin_settings, clock
) -> AccountService:
    return AccountService(
        account_repo,
        verifier,
        session_service,
        email_provider,
        admin_settings,
        clock=clock,
    )


@pytest.fixture
def rate_limit_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def rate_limiter(rate_limit_storage) -> RateLimiter:
    return RateLimiter(rate_limit_storage)


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(PASSWORD)


@pytest.fixture
def make_account(account_repo, password_hash, clock):
    """Seed an account straight into the fake store."""

    def _make(name: str = "Alice", email: str = "alice@example.com", **overrides) -> AccountDoc:
        fields = dict(
            name=name,
            name_lower=name.lower(),
            email=email,
            password_hash=password_hash,
            verified=True,
            country="Italy",
            avatar_seed=name,
            created_at=clock(),
            updated_at=clock(),
        )
        fields.update(overrides)
        return account_repo.put(AccountDoc(**fields))

    return _make
