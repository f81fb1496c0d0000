"""
Rate limiting for sensitive account actions.

Two window semantics, chosen per action:

- Daily actions (password change, verification/email-change/reset emails)
  keep an AttemptCounter on the account document. The counter resets when
  its last attempt happened on an earlier UTC calendar day. These helpers
  are pure; the gateway writes the new counter in the same compare-and-set
  update as the action itself.
- Windowed actions (login, signup, code requests) are keyed by client IP
  and count attempts inside a moving window of ``window_seconds``, using
  the ``limits`` moving-window strategy over MongoDB storage.

A refused attempt is never recorded.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.storage import Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.errors import StorageError

from errors import RateLimitError, UnavailableError
from schemas.models.account import AttemptCounter
from shared.datetime_utils import same_utc_day
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


class RateAction(str, Enum):
    PASSWORD_CHANGE = "password_change"
    VERIFICATION_EMAIL = "verification_email"
    EMAIL_CHANGE_REQUEST = "email_change_request"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    LOGIN_ATTEMPT = "login_attempt"
    SIGNUP_ATTEMPT = "signup_attempt"
    OTP_REQUEST = "otp_request"


@dataclass(frozen=True)
class LimitPolicy:
    limit: int
    window_seconds: int
    daily: bool = False
    message: str = "Too many requests. Please try again later."


DAY = 86400

POLICIES: dict[RateAction, LimitPolicy] = {
    RateAction.PASSWORD_CHANGE: LimitPolicy(
        3, DAY, daily=True,
        message="Too many incorrect password attempts. Please try again tomorrow.",
    ),
    RateAction.VERIFICATION_EMAIL: LimitPolicy(
        3, DAY, daily=True,
        message="Too many verification emails sent today. Please try again tomorrow.",
    ),
    RateAction.EMAIL_CHANGE_REQUEST: LimitPolicy(
        3, DAY, daily=True,
        message="Too many email change requests today. Please try again tomorrow.",
    ),
    RateAction.PASSWORD_RESET_REQUEST: LimitPolicy(
        3, DAY, daily=True,
        message="Too many password reset requests today. Please try again tomorrow.",
    ),
    RateAction.LOGIN_ATTEMPT: LimitPolicy(10, 300),
    RateAction.SIGNUP_ATTEMPT: LimitPolicy(5, 3600),
    RateAction.OTP_REQUEST: LimitPolicy(5, 600),
}


# ── Daily counters ────────────────────────────────────────────────────────────


class DailyCounter:
    """Pure helpers over an account's AttemptCounter for one daily action."""

    @staticmethod
    def count(counter: AttemptCounter, now: datetime) -> int:
        """Attempts already made today; a counter from an earlier day reads 0."""
        if not same_utc_day(counter.last_at, now):
            return 0
        return counter.count

    @staticmethod
    def remaining(counter: AttemptCounter, action: RateAction, now: datetime) -> int:
        return max(0, POLICIES[action].limit - DailyCounter.count(counter, now))

    @staticmethod
    def check(counter: AttemptCounter, action: RateAction, now: datetime) -> None:
        """Raise RateLimitError when today's attempts have reached the limit."""
        policy = POLICIES[action]
        if DailyCounter.count(counter, now) >= policy.limit:
            log.warning("rate_limit_exceeded", action=action.value, limit_type="daily")
            raise RateLimitError(policy.message, details={"remaining_attempts": 0})

    @staticmethod
    def consume(counter: AttemptCounter, now: datetime) -> AttemptCounter:
        """The counter after one more qualifying attempt at *now*."""
        return AttemptCounter(count=DailyCounter.count(counter, now) + 1, last_at=now)

    @staticmethod
    def reset(now: datetime) -> AttemptCounter:
        return AttemptCounter(count=0, last_at=now)


# ── Moving windows ────────────────────────────────────────────────────────────


class RateLimiter:
    """Per-actor moving-window limiter for anonymous entry points."""

    def __init__(self, storage: Storage) -> None:
        self._strategy = MovingWindowRateLimiter(storage)

    async def check_and_consume(self, actor_key: Optional[str], action: RateAction) -> None:
        """Record one attempt for *actor_key*, or raise RateLimitError.

        An unknown actor (no resolvable client IP) is let through.

        Raises:
            RateLimitError: *limit* attempts already fall inside the window.
            UnavailableError: the limiter storage could not be reached.
        """
        policy = POLICIES[action]
        if policy.daily:
            raise ValueError(f"{action.value} is a daily per-account limit")

        if not actor_key:
            log.warning("rate_limit_skipped", action=action.value, reason="no_actor_key")
            return

        item = RateLimitItemPerSecond(policy.limit, policy.window_seconds)
        try:
            if await self._strategy.hit(item, action.value, actor_key):
                return
            stats = await self._strategy.get_window_stats(item, action.value, actor_key)
        except StorageError as e:
            log.error(
                "rate_limit_storage_failed",
                action=action.value,
                error=str(e.storage_error),
                error_type=type(e.storage_error).__name__,
            )
            raise UnavailableError() from e

        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        log.warning(
            "rate_limit_exceeded",
            action=action.value,
            limit_type="window",
            actor=hash_ip(actor_key),
            retry_after_seconds=retry_after,
        )
        raise RateLimitError(policy.message, details={"retry_after_seconds": retry_after})
