"""
One-time code verifier.

Codes are 6 random digits, valid for 10 minutes, stored only as a SHA-256
hash in the account's per-purpose sub-document (signup_code,
email_change_code, password_reset_code). Storing a new code for a purpose
overwrites the previous one, so at most one is pending per purpose.

Consuming a code clears it in the same compare-and-set update that applies
the verified effect, which makes every code single-use. Wrong guesses are
counted on the pending record; after MAX_CODE_ATTEMPTS of them the code is
cleared and a new one must be requested.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Tuple

from errors import CodeExpiredError, CodeMismatchError
from repositories.account_repository import AccountRepository
from repositories.base import StaleWriteError
from schemas.models.account import AccountDoc, CodePurpose, PendingCode
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import ensure_utc
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

CODE_TTL_SECONDS = 600  # 10 minutes

_EXPIRED_MESSAGES = {
    CodePurpose.SIGNUP: "Verification code has expired. Please sign up again to get a new one.",
    CodePurpose.EMAIL_CHANGE: "Verification code has expired. Please request a new one.",
    CodePurpose.PASSWORD_RESET: "Reset code has expired. Please request a new one.",
}
CODE_MISMATCH_MESSAGE = "Invalid verification code. Please try again."
CODE_LOCKED_MESSAGE = "Too many incorrect codes. Please request a new one."
MAX_CODE_ATTEMPTS = 5


class VerificationService:
    def __init__(
        self, accounts: AccountRepository, ttl_seconds: int = CODE_TTL_SECONDS
    ) -> None:
        self._accounts = accounts
        self._ttl = timedelta(seconds=ttl_seconds)

    def issue(
        self,
        purpose: CodePurpose,
        *,
        now: datetime,
        new_email: Optional[str] = None,
    ) -> Tuple[str, PendingCode]:
        """Create a fresh code and its storable pending record."""
        if new_email is not None and purpose is not CodePurpose.EMAIL_CHANGE:
            raise ValueError("new_email only applies to email change codes")
        code = generate_otp_code()
        pending = PendingCode(
            code_hash=hash_token(code),
            expires_at=now + self._ttl,
            new_email=new_email,
        )
        return code, pending

    @staticmethod
    def consumed_fields(purpose: CodePurpose) -> dict[str, Any]:
        """The $set fragment that clears a consumed code."""
        return {purpose.field: None}

    async def store_new_code(
        self,
        account: AccountDoc,
        purpose: CodePurpose,
        *,
        now: datetime,
        new_email: Optional[str] = None,
        also_set: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[str, AccountDoc]:
        """Issue a code for *purpose* and write it, replacing any pending one.

        Returns the plaintext code (for the email) and the updated account.

        Raises:
            StaleWriteError: the account changed since it was read.
        """
        code, pending = self.issue(purpose, now=now, new_email=new_email)
        updated = await self._accounts.update_fields(
            account.id,
            {purpose.field: pending, **(also_set or {})},
            expected_version=account.version,
            now=now,
        )
        if updated is None:
            raise StaleWriteError()
        log.info("verification_code_issued", user_id=str(account.id), purpose=purpose.value)
        return code, updated

    def verify(
        self,
        account: AccountDoc,
        purpose: CodePurpose,
        code: str,
        *,
        now: datetime,
        expected_email: Optional[str] = None,
    ) -> None:
        """Validate *code* against the pending record without consuming it.

        Raises:
            CodeExpiredError: the pending code's window has passed.
            CodeMismatchError: nothing pending, wrong code, or (email change)
                the pending address differs from *expected_email*.
        """
        pending = account.pending(purpose)
        if pending is None:
            self._log_failure(account, purpose, "none_pending")
            raise CodeMismatchError(CODE_MISMATCH_MESSAGE)

        if now > ensure_utc(pending.expires_at):
            self._log_failure(account, purpose, "expired")
            raise CodeExpiredError(_EXPIRED_MESSAGES[purpose])

        if not token_matches((code or "").strip(), pending.code_hash):
            self._log_failure(account, purpose, "mismatch")
            raise CodeMismatchError(CODE_MISMATCH_MESSAGE)

        if expected_email is not None and pending.new_email != expected_email:
            self._log_failure(account, purpose, "email_mismatch")
            raise CodeMismatchError(CODE_MISMATCH_MESSAGE)

    async def check(
        self,
        account: AccountDoc,
        purpose: CodePurpose,
        code: str,
        *,
        now: datetime,
        expected_email: Optional[str] = None,
    ) -> None:
        """verify(), counting a mismatch against the pending code.

        The failure is written with a compare-and-set on the account, so
        concurrent wrong guesses are each counted. The guess that reaches
        MAX_CODE_ATTEMPTS clears the code.

        Raises:
            CodeExpiredError, CodeMismatchError: see verify().
            StaleWriteError: the account changed since it was read.
        """
        try:
            self.verify(account, purpose, code, now=now, expected_email=expected_email)
        except CodeMismatchError:
            pending = account.pending(purpose)
            if pending is None:
                raise
            failures = pending.failed_attempts + 1
            locked = failures >= MAX_CODE_ATTEMPTS
            value = None if locked else pending.model_copy(update={"failed_attempts": failures})
            updated = await self._accounts.update_fields(
                account.id,
                {purpose.field: value},
                expected_version=account.version,
                now=now,
            )
            if updated is None:
                raise StaleWriteError()
            if not locked:
                raise
            log.warning(
                "verification_code_locked",
                user_id=str(account.id),
                purpose=purpose.value,
                failed_attempts=failures,
            )
            raise CodeMismatchError(CODE_LOCKED_MESSAGE, details={"remaining_attempts": 0})

    async def consume(
        self,
        account: AccountDoc,
        purpose: CodePurpose,
        code: str,
        *,
        now: datetime,
        expected_email: Optional[str] = None,
        also_set: Optional[Mapping[str, Any]] = None,
    ) -> AccountDoc:
        """Check *code*, then clear it and apply *also_set* in one write.

        Raises:
            CodeExpiredError, CodeMismatchError: see check().
            StaleWriteError: the account changed since it was read.
        """
        await self.check(account, purpose, code, now=now, expected_email=expected_email)
        updated = await self._accounts.update_fields(
            account.id,
            {**self.consumed_fields(purpose), **(also_set or {})},
            expected_version=account.version,
            now=now,
        )
        if updated is None:
            raise StaleWriteError()
        log.info("verification_code_consumed", user_id=str(account.id), purpose=purpose.value)
        return updated

    @staticmethod
    def _log_failure(account: AccountDoc, purpose: CodePurpose, reason: str) -> None:
        log.warning(
            "code_verification_failed",
            user_id=str(account.id),
            purpose=purpose.value,
            reason=reason,
        )
