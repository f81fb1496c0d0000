"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (email, display name, password, dietary preference,
                          clean_cuisines)
- shared.generators      (generate_otp_code)
- shared.datetime_utils  (ensure_utc, same_utc_day)
- shared.ip_utils        (get_client_ip)
- shared.crypto          (hash_password, verify_password, hash_token,
                          token_matches, secrets_equal)
- shared.logging         (redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
import string
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from shared.crypto import (
    hash_password,
    hash_token,
    secrets_equal,
    token_matches,
    verify_password,
)
from shared.datetime_utils import ensure_utc, same_utc_day
from shared.generators import generate_otp_code
from shared.ip_utils import get_client_ip
from shared.logging import redact_sensitive_fields
from shared.validators import (
    clean_cuisines,
    normalize_email,
    validate_country,
    validate_dietary_preference,
    validate_display_name,
    validate_email,
    validate_password,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_request(headers: dict, client_host: str = "10.0.0.1") -> MagicMock:
    """Minimal mock of a FastAPI Request."""
    req = MagicMock()
    req.headers = headers
    req.client = MagicMock()
    req.client.host = client_host
    return req


# ---------------------------------------------------------------------------
# shared.validators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "email, expected",
    [
        ("cook@example.com", True),
        ("first.last+tag@sub.example.org", True),
        ("not-an-email", False),
        ("", False),
        ("a" * 250 + "@x.com", False),
    ],
)
def test_validate_email(email, expected):
    assert validate_email(email) is expected


def test_normalize_email():
    assert normalize_email("  Cook@Example.COM ") == "cook@example.com"
    assert normalize_email(None) == ""


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Al", True),
        ("Mary-Jane O'Neil", True),
        ("Chef_42", True),
        ("A", False),
        ("x" * 51, False),
        ("<script>", False),
        ("", False),
    ],
)
def test_validate_display_name(name, expected):
    assert validate_display_name(name) is expected


@pytest.mark.parametrize(
    "value, expected",
    [("All", True), ("Vegan", True), ("Non-Vegetarian", True), ("vegan", False), ("Keto", False)],
)
def test_validate_dietary_preference(value, expected):
    assert validate_dietary_preference(value) is expected


def test_validate_country():
    assert validate_country("Italy") is True
    assert validate_country("") is False
    assert validate_country("x" * 101) is False


class TestValidatePassword:
    def test_strong_password_passes(self):
        ok, missing = validate_password("Str0ng!Pass")
        assert ok is True
        assert missing == []

    def test_reports_every_missing_rule(self):
        ok, missing = validate_password("abc")
        assert ok is False
        assert "At least 8 characters" in missing
        assert "At least one uppercase letter" in missing
        assert "At least one number" in missing
        assert "At least one special character" in missing

    def test_empty_password(self):
        ok, missing = validate_password("")
        assert ok is False
        assert missing == ["Password is required"]

    def test_too_long(self):
        ok, missing = validate_password("Aa1!" * 40)
        assert ok is False
        assert "Maximum 128 characters" in missing


def test_clean_cuisines_trims_dedupes_and_keeps_order():
    assert clean_cuisines([" Italian ", "thai", "", "ITALIAN", "Thai", "Mexican"]) == [
        "Italian",
        "thai",
        "Mexican",
    ]


# ---------------------------------------------------------------------------
# shared.generators
# ---------------------------------------------------------------------------


def test_generate_otp_code_is_six_digits():
    code = generate_otp_code()
    assert len(code) == 6
    assert set(code) <= set(string.digits)


def test_generate_otp_code_custom_length():
    assert len(generate_otp_code(8)) == 8


# ---------------------------------------------------------------------------
# shared.datetime_utils
# ---------------------------------------------------------------------------


class TestDatetimeUtils:
    def test_ensure_utc_assumes_naive_is_utc(self):
        naive = datetime(2026, 1, 1, 8, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2026, 1, 1, 1, 0, tzinfo=plus_two)
        assert ensure_utc(value) == datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc)

    def test_ensure_utc_none(self):
        assert ensure_utc(None) is None

    @pytest.mark.parametrize(
        "a, expected",
        [
            (datetime(2026, 3, 10, 0, 0, tzinfo=timezone.utc), True),
            (datetime(2026, 3, 9, 23, 59, tzinfo=timezone.utc), False),
            (None, False),
        ],
        ids=["same_day", "previous_day", "never"],
    )
    def test_same_utc_day(self, a, expected):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
        assert same_utc_day(a, now) is expected


# ---------------------------------------------------------------------------
# shared.ip_utils
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"X-Forwarded-For": "1.2.3.4, 10.0.0.2"}, "1.2.3.4"),
        ({"X-Real-IP": "5.6.7.8"}, "5.6.7.8"),
        ({"CF-Connecting-IP": "9.9.9.9"}, "9.9.9.9"),
        ({}, "10.0.0.1"),
    ],
    ids=["forwarded_for", "real_ip", "cloudflare", "direct"],
)
def test_get_client_ip(headers, expected):
    assert get_client_ip(_make_request(headers)) == expected


def test_get_client_ip_without_client():
    req = _make_request({})
    req.client = None
    assert get_client_ip(req) == ""


# ---------------------------------------------------------------------------
# shared.crypto
# ---------------------------------------------------------------------------


class TestCrypto:
    def test_password_round_trip(self):
        hashed = hash_password("Str0ng!Pass")
        assert hashed.startswith("$argon2")
        assert verify_password("Str0ng!Pass", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_verify_password_rejects_garbage_hash(self):
        assert verify_password("anything", "not-a-hash") is False

    def test_hash_token_is_sha256(self):
        assert hash_token("123456") == hashlib.sha256(b"123456").hexdigest()

    def test_token_matches(self):
        digest = hash_token("123456")
        assert token_matches("123456", digest) is True
        assert token_matches("654321", digest) is False

    def test_secrets_equal(self):
        assert secrets_equal("abc", "abc") is True
        assert secrets_equal("abc", "abd") is False


# ---------------------------------------------------------------------------
# shared.logging
# ---------------------------------------------------------------------------


def test_redact_sensitive_fields():
    event = {
        "event": "login_failed",
        "password": "hunter2",
        "new_password": "x",
        "code": "123456",
        "session_secret": "s",
        "user_id": "abc",
    }
    out = redact_sensitive_fields(None, "info", event)
    assert out["event"] == "login_failed"
    assert out["user_id"] == "abc"
    for key in ("password", "new_password", "code", "session_secret"):
        assert out[key] == "***REDACTED***"
