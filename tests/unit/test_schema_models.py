"""Unit tests for the document and session models in schemas/models/."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from schemas.models.account import AccountDoc, AttemptCounter, CodePurpose, PendingCode
from schemas.models.base import to_object_id
from schemas.models.session import SessionSnapshot

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _account(**overrides) -> AccountDoc:
    fields = dict(
        name="Alice",
        name_lower="alice",
        email="alice@example.com",
        password_hash="$argon2id$fake",
    )
    fields.update(overrides)
    return AccountDoc(**fields)


class TestToObjectId:
    def test_accepts_valid_string(self):
        oid = ObjectId()
        assert to_object_id(str(oid)) == oid

    @pytest.mark.parametrize("value", ["nope", "", None, 42])
    def test_rejects_invalid(self, value):
        assert to_object_id(value) is None


class TestAccountDoc:
    def test_to_mongo_omits_missing_id_and_keeps_objectid(self):
        doc = _account().to_mongo()
        assert "_id" not in doc
        oid = ObjectId()
        assert _account(id=oid).to_mongo()["_id"] == oid

    def test_from_mongo_round_trip(self):
        oid = ObjectId()
        raw = _account(id=oid, favorites=["r1"]).to_mongo()
        loaded = AccountDoc.from_mongo(raw)
        assert loaded.id == oid
        assert loaded.favorites == ["r1"]
        assert loaded.password_attempts == AttemptCounter()

    def test_from_mongo_none(self):
        assert AccountDoc.from_mongo(None) is None

    def test_counters_are_independent_instances(self):
        a, b = _account(), _account()
        assert a.password_attempts is not b.password_attempts

    def test_pending_by_purpose(self):
        pending = PendingCode(code_hash="h", expires_at=NOW, new_email="new@example.com")
        account = _account(email_change_code=pending)
        assert account.pending(CodePurpose.EMAIL_CHANGE) == pending
        assert account.pending(CodePurpose.SIGNUP) is None
        assert CodePurpose.PASSWORD_RESET.field == "password_reset_code"

    @pytest.mark.parametrize(
        "until, expected",
        [
            (None, None),
            (NOW - timedelta(seconds=1), None),
            (NOW + timedelta(days=1), NOW + timedelta(days=1)),
        ],
        ids=["never", "lapsed", "active"],
    )
    def test_suspension_end(self, until, expected):
        assert _account(suspended_until=until).suspension_end(NOW) == expected

    def test_suspension_end_handles_naive_values(self):
        naive = datetime(2026, 3, 11, 12, 0)
        assert _account(suspended_until=naive).suspension_end(NOW) == naive.replace(
            tzinfo=timezone.utc
        )

    def test_signup_code_expired(self):
        live = PendingCode(code_hash="h", expires_at=NOW + timedelta(minutes=5))
        dead = PendingCode(code_hash="h", expires_at=NOW - timedelta(minutes=5))
        assert _account(signup_code=live).signup_code_expired(NOW) is False
        assert _account(signup_code=dead).signup_code_expired(NOW) is True
        assert _account(signup_code=None).signup_code_expired(NOW) is True
        assert _account(verified=True, signup_code=dead).signup_code_expired(NOW) is False


class TestSessionSnapshot:
    def test_from_account_projects_counters(self):
        oid = ObjectId()
        account = _account(
            id=oid,
            is_admin=True,
            avatar_seed="Alice",
            password_attempts=AttemptCounter(count=2, last_at=NOW),
            email_change_requests=AttemptCounter(count=1, last_at=NOW),
        )
        snap = SessionSnapshot.from_account(account)
        assert snap.id == str(oid)
        assert snap.is_admin is True
        assert snap.avatar == "Alice"
        assert snap.password_change_attempts == 2
        assert snap.new_email_requests_sent == 1
        assert snap.last_new_email_request_at == NOW

    def test_payload_uses_camel_case(self):
        snap = SessionSnapshot(id="1", name="A", email="a@example.com", is_admin=False)
        payload = snap.to_payload()
        assert "isAdmin" in payload
        assert "favoriteCuisines" in payload
        assert "passwordChangeAttempts" in payload
        assert "is_admin" not in payload

    def test_payload_round_trips_through_validation(self):
        snap = SessionSnapshot(
            id="1",
            name="A",
            email="a@example.com",
            suspended_until=NOW,
            favorites=["r1", "r2"],
        )
        assert SessionSnapshot.model_validate(snap.to_payload()) == snap

    def test_snapshot_is_frozen(self):
        snap = SessionSnapshot(id="1", name="A", email="a@example.com")
        with pytest.raises(Exception):
            snap.name = "B"
