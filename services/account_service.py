"""
Account mutation gateway.

Every operation that changes account state goes through AccountService:

1. validate input (pure validators, before any I/O)
2. read the account and check authorization / state
3. apply exactly one compare-and-set write to the accounts collection
4. re-materialize the session snapshot from the store

A lost compare-and-set (StaleWriteError) re-runs steps 2-3 with a fresh
read, at most ``max_retries`` times, then surfaces UnavailableError.
Routes install the returned snapshot in the session cookie.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional, TypeVar

from config import AdminSettings
from errors import (
    AuthenticationError,
    CodeMismatchError,
    ConflictError,
    EmailDispatchError,
    ForbiddenError,
    NotFoundError,
    SuspendedError,
    UnavailableError,
    UnverifiedError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.account_repository import AccountRepository
from repositories.base import StaleWriteError
from schemas.models.account import (
    ACHIEVEMENT_FIRST_FAVORITE,
    AccountDoc,
    AttemptCounter,
    CodePurpose,
)
from schemas.models.session import SessionSnapshot
from services.rate_limiter import DailyCounter, RateAction
from services.session_service import SessionService
from services.verification_service import CODE_MISMATCH_MESSAGE, VerificationService
from shared.crypto import hash_password, hash_token, secrets_equal, verify_password
from shared.datetime_utils import ensure_utc, utcnow
from shared.logging import get_logger
from shared.validators import (
    COUNTRY_MAX_LENGTH,
    DIETARY_PREFERENCES,
    clean_cuisines,
    normalize_email,
    validate_country,
    validate_dietary_preference,
    validate_display_name,
    validate_email,
    validate_password,
)

log = get_logger(__name__)

T = TypeVar("T")

MAX_WRITE_RETRIES = 3
NAME_CHANGE_COOLDOWN = timedelta(days=7)
MAX_SUSPENSION_DAYS = 3650
RECIPE_ID_MAX_LENGTH = 100

INVALID_CREDENTIALS = "Invalid email or password."
SESSION_EXPIRED = "Your session has expired. Please log in again."
NAME_TAKEN = "This name is already taken. Please choose another."
EMAIL_TAKEN = "A user with this email already exists."
NOT_ALLOWED = "You do not have permission to perform this action."


@dataclass(frozen=True)
class FavoriteToggle:
    is_favorite: bool
    achievement_unlocked: bool
    session: SessionSnapshot


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # Verified against for unknown emails so both login failures cost the same
    return hash_password("not-a-real-password")


class AccountService:
    def __init__(
        self,
        accounts: AccountRepository,
        verifier: VerificationService,
        sessions: SessionService,
        email_provider: EmailProvider,
        admin: AdminSettings,
        clock: Callable[[], datetime] = utcnow,
        max_retries: int = MAX_WRITE_RETRIES,
    ) -> None:
        self._accounts = accounts
        self._verifier = verifier
        self._sessions = sessions
        self._email = email_provider
        self._admin = admin
        self._clock = clock
        self._max_retries = max_retries

    # ── Plumbing ─────────────────────────────────────────────────────────────

    async def _with_retries(
        self, operation: str, attempt: Callable[[], Awaitable[T]]
    ) -> T:
        for n in range(1, self._max_retries + 1):
            try:
                return await attempt()
            except StaleWriteError:
                log.info("write_conflict_retry", operation=operation, attempt=n)
        log.error("write_conflict_exhausted", operation=operation, attempts=self._max_retries)
        raise UnavailableError()

    async def _load_active(self, account_id: Any, now: datetime) -> AccountDoc:
        """The caller's account, provided it still exists and is not suspended."""
        account = await self._accounts.find_by_id(account_id)
        if account is None:
            raise AuthenticationError(SESSION_EXPIRED)
        until = account.suspension_end(now)
        if until is not None:
            raise SuspendedError(until)
        return account

    async def _write(self, account: AccountDoc, now: datetime, **changes: Any) -> AccountDoc:
        """Compare-and-set update of *account*; StaleWriteError on a lost race."""
        updated = await self._accounts.update_fields(
            account.id, expected_version=account.version, now=now, **changes
        )
        if updated is None:
            raise StaleWriteError()
        return updated

    async def _release_name(
        self, name: str, owner_id: Any, now: datetime
    ) -> None:
        """Make *name* available to *owner_id*, purging a lapsed unverified holder."""
        holder = await self._accounts.find_by_name(name)
        if holder is None or holder.id == owner_id:
            return
        if holder.is_admin or not holder.signup_code_expired(now):
            raise ConflictError(NAME_TAKEN, field="name")
        if not await self._accounts.delete_by_id(holder.id, expected_version=holder.version):
            raise StaleWriteError()
        log.info("unverified_account_purged", user_id=str(holder.id), reason="name_claimed")

    async def _send_code(
        self, destination: str, code: str, subject: str, preamble: str, failure: str
    ) -> None:
        if not await self._email.send_code(destination, code, subject, preamble):
            raise EmailDispatchError(failure)

    def _is_configured_admin(self, email: str, password: str) -> bool:
        if not self._admin.enabled:
            return False
        email_ok = secrets_equal(email, normalize_email(self._admin.admin_email))
        password_ok = secrets_equal(password, self._admin.admin_password)
        return email_ok and password_ok

    def _is_reserved_email(self, email: str) -> bool:
        return self._admin.enabled and email == normalize_email(self._admin.admin_email)

    def _is_reserved_name(self, name: str) -> bool:
        return self._admin.enabled and name.lower() == self._admin.admin_name.strip().lower()

    async def _upsert_configured_admin(
        self, email: str, password: str, now: datetime
    ) -> AccountDoc:
        """Upsert the admin row, with a suffixed name when the configured one is taken."""
        password_hash = hash_password(password)
        name = self._admin.admin_name.strip()
        try:
            return await self._accounts.upsert_admin(email, name, password_hash, now)
        except ConflictError as e:
            if e.field != "name":
                raise
        # Stable per email, so repeated logins settle on the same name
        fallback = f"{name[:40]} {hash_token(email)[:6]}"
        log.warning("admin_name_taken", configured=name, fallback=fallback)
        return await self._accounts.upsert_admin(email, fallback, password_hash, now)

    # ── Authentication ───────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> SessionSnapshot:
        """Authenticate by email and password.

        Raises:
            ValidationError: missing fields.
            AuthenticationError: unknown email or wrong password (same message).
            UnverifiedError: the email was never verified.
            SuspendedError: the account is suspended.
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required.")
        now = self._clock()

        if self._is_configured_admin(email, password):
            admin = await self._upsert_configured_admin(email, password, now)
            log.info("login_success", user_id=str(admin.id), is_admin=True)
            return await self._sessions.materialize(admin.id)

        account = await self._accounts.find_by_email(email)
        if account is None:
            verify_password(password, _dummy_password_hash())
            log.warning("login_failed", reason="no_such_account")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not verify_password(password, account.password_hash):
            log.warning("login_failed", user_id=str(account.id), reason="bad_password")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.verified:
            log.info("login_failed", user_id=str(account.id), reason="unverified")
            raise UnverifiedError(
                "Please verify your email before logging in.",
                details={"email": account.email},
            )
        until = account.suspension_end(now)
        if until is not None:
            log.info("login_failed", user_id=str(account.id), reason="suspended")
            raise SuspendedError(until)

        log.info("login_success", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    async def logout(self, session: Optional[SessionSnapshot]) -> None:
        log.info("logout", user_id=session.id if session else None)

    async def refresh_session(self, account_id: Any) -> SessionSnapshot:
        """Re-materialize the caller's snapshot, enforcing account state."""
        await self._load_active(account_id, self._clock())
        return await self._sessions.materialize(account_id)

    # ── Signup ───────────────────────────────────────────────────────────────

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        country: str,
        dietary_preference: str = "All",
    ) -> AccountDoc:
        """Create (or replace an unverified) account and email a signup code.

        Raises:
            ValidationError: invalid input.
            ConflictError: the email has a verified owner or belongs to the
                configured administrator, or the name is held or reserved.
            RateLimitError: 3 verification emails already sent today.
            EmailDispatchError: the account exists but the email failed.
        """
        name = (name or "").strip()
        email = normalize_email(email)
        country = (country or "").strip()
        dietary_preference = (dietary_preference or "All").strip()

        if not validate_display_name(name):
            raise ValidationError(
                "Name must be 2-50 characters using letters, numbers, spaces or . ' - _",
                field="name",
            )
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address.", field="email")
        is_valid, missing = validate_password(password)
        if not is_valid:
            raise ValidationError(
                "Password does not meet the requirements.",
                field="password",
                details={"missing_requirements": missing},
            )
        if not validate_country(country):
            raise ValidationError("Please select your country.", field="country")
        if not validate_dietary_preference(dietary_preference):
            raise ValidationError(
                f"Dietary preference must be one of: {', '.join(DIETARY_PREFERENCES)}.",
                field="dietary_preference",
            )
        if self._is_reserved_email(email):
            log.warning("signup_rejected", reason="reserved_email")
            raise ConflictError(EMAIL_TAKEN, field="email")
        if self._is_reserved_name(name):
            raise ConflictError(NAME_TAKEN, field="name")

        password_hash = hash_password(password)
        now = self._clock()

        async def attempt() -> tuple[str, AccountDoc]:
            existing = await self._accounts.find_by_email(email)
            if existing is not None and existing.verified:
                raise ConflictError(EMAIL_TAKEN, field="email")

            counter = existing.verification_emails if existing else AttemptCounter()
            DailyCounter.check(counter, RateAction.VERIFICATION_EMAIL, now)
            await self._release_name(name, existing.id if existing else None, now)

            code, pending = self._verifier.issue(CodePurpose.SIGNUP, now=now)
            doc = AccountDoc(
                name=name,
                name_lower=name.lower(),
                email=email,
                password_hash=password_hash,
                country=country,
                dietary_preference=dietary_preference,
                avatar_seed=name,
                signup_code=pending,
                verification_emails=DailyCounter.consume(counter, now),
                created_at=now,
                updated_at=now,
            )
            if existing is None:
                return code, await self._accounts.create_account(doc)

            replaced = await self._accounts.replace_account(existing.id, existing.version, doc)
            if replaced is None:
                raise StaleWriteError()
            log.info("unverified_account_replaced", user_id=str(existing.id))
            return code, replaced

        code, account = await self._with_retries("signup", attempt)

        try:
            await self._send_code(
                email,
                code,
                "Verify your email - RecipeRadar",
                f"Hi {name}, welcome to RecipeRadar! Enter this code to verify your email address.",
                "Account created, but we could not send the verification email. "
                "Please request a new code.",
            )
        except EmailDispatchError:
            log.error("signup_email_failed", user_id=str(account.id))
            raise

        log.info("signup_success", user_id=str(account.id))
        return account

    async def verify_signup(self, email: str, code: str) -> SessionSnapshot:
        """Mark the account verified and sign the user in.

        Raises:
            CodeExpiredError: the code lapsed; the user must sign up again.
            CodeMismatchError: wrong code, or no unverified account for *email*.
        """
        email = normalize_email(email)
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._accounts.find_by_email(email)
            if account is None or account.verified:
                raise CodeMismatchError(CODE_MISMATCH_MESSAGE)
            return await self._verifier.consume(
                account, CodePurpose.SIGNUP, code, now=now, also_set={"verified": True}
            )

        account = await self._with_retries("verify_signup", attempt)
        log.info("email_verified", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    async def resend_verification(self, email: str) -> None:
        """Send a fresh signup code; silent for unknown or verified emails."""
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address.", field="email")
        now = self._clock()

        async def attempt() -> Optional[tuple[str, AccountDoc]]:
            account = await self._accounts.find_by_email(email)
            if account is None or account.verified:
                return None
            DailyCounter.check(account.verification_emails, RateAction.VERIFICATION_EMAIL, now)
            return await self._verifier.store_new_code(
                account,
                CodePurpose.SIGNUP,
                now=now,
                also_set={
                    "verification_emails": DailyCounter.consume(account.verification_emails, now)
                },
            )

        issued = await self._with_retries("resend_verification", attempt)
        if issued is None:
            log.info("resend_verification_skipped")
            return

        code, account = issued
        await self._send_code(
            email,
            code,
            "Verify your email - RecipeRadar",
            f"Hi {account.name}, here is your new verification code.",
            "We could not send the verification email. Please try again later.",
        )
        log.info("verification_resent", user_id=str(account.id))

    # ── Credentials ──────────────────────────────────────────────────────────

    async def change_password(
        self, account_id: Any, current_password: str, new_password: str
    ) -> SessionSnapshot:
        """Replace the password after checking the current one.

        Wrong current passwords count against a 3/day allowance. The check
        and the counter write are one compare-and-set, so concurrent
        attempts cannot push the counter past the limit.

        Raises:
            ValidationError: weak new password, or wrong current password
                (details carry ``remaining_attempts``).
            RateLimitError: no attempts left today.
        """
        if not current_password:
            raise ValidationError("Current password is required.", field="current_password")
        is_valid, missing = validate_password(new_password)
        if not is_valid:
            raise ValidationError(
                "Password does not meet the requirements.",
                field="new_password",
                details={"missing_requirements": missing},
            )
        if new_password == current_password:
            raise ValidationError(
                "New password must be different from the current one.",
                field="new_password",
            )
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._load_active(account_id, now)
            counter = account.password_attempts
            DailyCounter.check(counter, RateAction.PASSWORD_CHANGE, now)

            if not verify_password(current_password, account.password_hash):
                bumped = DailyCounter.consume(counter, now)
                await self._write(account, now, set_fields={"password_attempts": bumped})
                remaining = DailyCounter.remaining(bumped, RateAction.PASSWORD_CHANGE, now)
                log.warning(
                    "password_change_failed",
                    user_id=str(account.id),
                    remaining_attempts=remaining,
                )
                raise ValidationError(
                    "Current password is incorrect.",
                    field="current_password",
                    details={"remaining_attempts": remaining},
                )

            return await self._write(
                account,
                now,
                set_fields={
                    "password_hash": hash_password(new_password),
                    "password_attempts": DailyCounter.reset(now),
                },
            )

        account = await self._with_retries("change_password", attempt)
        log.info("password_changed", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    async def request_password_reset(self, email: str) -> None:
        """Email a reset code; silent for unknown or unverified emails."""
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address.", field="email")
        now = self._clock()

        async def attempt() -> Optional[tuple[str, AccountDoc]]:
            account = await self._accounts.find_by_email(email)
            if account is None or not account.verified:
                return None
            counter = account.password_reset_requests
            DailyCounter.check(counter, RateAction.PASSWORD_RESET_REQUEST, now)
            return await self._verifier.store_new_code(
                account,
                CodePurpose.PASSWORD_RESET,
                now=now,
                also_set={"password_reset_requests": DailyCounter.consume(counter, now)},
            )

        issued = await self._with_retries("request_password_reset", attempt)
        if issued is None:
            log.info("password_reset_skipped")
            return

        code, account = issued
        await self._send_code(
            email,
            code,
            "Reset your password - RecipeRadar",
            f"Hi {account.name}, use this code to reset your RecipeRadar password.",
            "We could not send the password reset email. Please try again later.",
        )
        log.info("password_reset_requested", user_id=str(account.id))

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        """Set a new password from a reset code. The user logs in afterwards."""
        email = normalize_email(email)
        is_valid, missing = validate_password(new_password)
        if not is_valid:
            raise ValidationError(
                "Password does not meet the requirements.",
                field="new_password",
                details={"missing_requirements": missing},
            )
        password_hash = hash_password(new_password)
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._accounts.find_by_email(email)
            if account is None or not account.verified:
                raise CodeMismatchError(CODE_MISMATCH_MESSAGE)
            return await self._verifier.consume(
                account,
                CodePurpose.PASSWORD_RESET,
                code,
                now=now,
                also_set={
                    "password_hash": password_hash,
                    "password_attempts": DailyCounter.reset(now),
                },
            )

        account = await self._with_retries("reset_password", attempt)
        log.info("password_reset_completed", user_id=str(account.id))

    # ── Email change ─────────────────────────────────────────────────────────

    async def request_email_change(self, account_id: Any, new_email: str) -> SessionSnapshot:
        """Send a code to *new_email*; the live email is untouched until confirmed."""
        new_email = normalize_email(new_email)
        if not validate_email(new_email):
            raise ValidationError("Please enter a valid email address.", field="new_email")
        if self._is_reserved_email(new_email):
            raise ConflictError("This email is already in use.", field="new_email")
        now = self._clock()

        async def attempt() -> tuple[str, AccountDoc]:
            account = await self._load_active(account_id, now)
            if new_email == account.email:
                raise ValidationError(
                    "New email must be different from your current email.",
                    field="new_email",
                )
            owner = await self._accounts.find_by_email(new_email)
            if owner is not None and owner.verified:
                raise ConflictError("This email is already in use.", field="new_email")

            counter = account.email_change_requests
            DailyCounter.check(counter, RateAction.EMAIL_CHANGE_REQUEST, now)
            return await self._verifier.store_new_code(
                account,
                CodePurpose.EMAIL_CHANGE,
                now=now,
                new_email=new_email,
                also_set={"email_change_requests": DailyCounter.consume(counter, now)},
            )

        code, account = await self._with_retries("request_email_change", attempt)
        await self._send_code(
            new_email,
            code,
            "Confirm your new email - RecipeRadar",
            f"Hi {account.name}, enter this code to confirm your new email address.",
            "We could not send the confirmation code. Please try again later.",
        )
        log.info("email_change_requested", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    async def confirm_email_change(
        self, account_id: Any, new_email: str, code: str
    ) -> SessionSnapshot:
        """Swap the live email for the pending one after checking the code."""
        new_email = normalize_email(new_email)
        if self._is_reserved_email(new_email):
            raise ConflictError("This email is already in use.", field="new_email")
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._load_active(account_id, now)
            await self._verifier.check(
                account, CodePurpose.EMAIL_CHANGE, code, now=now, expected_email=new_email
            )

            holder = await self._accounts.find_by_email(new_email)
            if holder is not None and holder.id != account.id:
                if holder.verified:
                    raise ConflictError("This email is already in use.", field="new_email")
                if not await self._accounts.delete_by_id(holder.id, expected_version=holder.version):
                    raise StaleWriteError()
                log.info("unverified_account_purged", user_id=str(holder.id), reason="email_claimed")

            return await self._verifier.consume(
                account,
                CodePurpose.EMAIL_CHANGE,
                code,
                now=now,
                expected_email=new_email,
                also_set={"email": new_email},
            )

        account = await self._with_retries("confirm_email_change", attempt)
        log.info("email_changed", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    # ── Profile ──────────────────────────────────────────────────────────────

    async def update_profile(
        self,
        account_id: Any,
        *,
        name: Optional[str] = None,
        country: Optional[str] = None,
        dietary_preference: Optional[str] = None,
    ) -> SessionSnapshot:
        """Update display name, country and/or dietary preference.

        A name change is allowed once every 7 days and moves the avatar seed
        with it.
        """
        if name is not None:
            name = name.strip()
            if not validate_display_name(name):
                raise ValidationError(
                    "Name must be 2-50 characters using letters, numbers, spaces or . ' - _",
                    field="name",
                )
        if country is not None:
            country = country.strip()
            if len(country) > COUNTRY_MAX_LENGTH:
                raise ValidationError("Country name is too long.", field="country")
        if dietary_preference is not None and not validate_dietary_preference(dietary_preference):
            raise ValidationError(
                f"Dietary preference must be one of: {', '.join(DIETARY_PREFERENCES)}.",
                field="dietary_preference",
            )
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._load_active(account_id, now)
            changes: dict[str, Any] = {}

            if name is not None and name != account.name:
                last = ensure_utc(account.name_last_changed_at)
                if last is not None and now <= last + NAME_CHANGE_COOLDOWN:
                    next_change_at = last + NAME_CHANGE_COOLDOWN
                    raise ValidationError(
                        "You can only change your name once every 7 days.",
                        field="name",
                        details={"next_change_at": next_change_at.isoformat()},
                    )
                if name.lower() != account.name_lower:
                    if self._is_reserved_name(name) and not account.is_admin:
                        raise ConflictError(NAME_TAKEN, field="name")
                    await self._release_name(name, account.id, now)
                changes.update(
                    name=name,
                    name_lower=name.lower(),
                    avatar_seed=name,
                    name_last_changed_at=now,
                )
            if country is not None:
                changes["country"] = country
            if dietary_preference is not None:
                changes["dietary_preference"] = dietary_preference

            if not changes:
                return account
            return await self._write(account, now, set_fields=changes)

        account = await self._with_retries("update_profile", attempt)
        log.info("profile_updated", user_id=str(account.id))
        return await self._sessions.materialize(account.id)

    async def update_favorite_cuisines(
        self, account_id: Any, cuisines: list[str]
    ) -> SessionSnapshot:
        cleaned = clean_cuisines(cuisines or [])
        now = self._clock()

        async def attempt() -> AccountDoc:
            account = await self._load_active(account_id, now)
            return await self._write(account, now, set_fields={"favorite_cuisines": cleaned})

        account = await self._with_retries("update_favorite_cuisines", attempt)
        log.info("favorite_cuisines_updated", user_id=str(account.id), count=len(cleaned))
        return await self._sessions.materialize(account.id)

    async def toggle_favorite(self, account_id: Any, recipe_id: str) -> FavoriteToggle:
        """Flip *recipe_id* in the favorites set.

        The first add ever grants the ``first_favorite`` achievement; removing
        a favorite never revokes it.
        """
        recipe_id = (recipe_id or "").strip()
        if not recipe_id or len(recipe_id) > RECIPE_ID_MAX_LENGTH:
            raise ValidationError("Invalid recipe id.", field="recipe_id")
        now = self._clock()

        async def attempt() -> tuple[bool, bool, AccountDoc]:
            account = await self._load_active(account_id, now)
            if recipe_id in account.favorites:
                updated = await self._write(account, now, pull={"favorites": recipe_id})
                return False, False, updated

            unlocked = ACHIEVEMENT_FIRST_FAVORITE not in account.achievements
            updated = await self._write(
                account,
                now,
                add_to_set={
                    "favorites": recipe_id,
                    "achievements": ACHIEVEMENT_FIRST_FAVORITE,
                },
            )
            return True, unlocked, updated

        is_favorite, unlocked, account = await self._with_retries("toggle_favorite", attempt)
        log.info(
            "favorite_toggled",
            user_id=str(account.id),
            recipe_id=recipe_id,
            is_favorite=is_favorite,
            achievement_unlocked=unlocked,
        )
        return FavoriteToggle(
            is_favorite=is_favorite,
            achievement_unlocked=unlocked,
            session=await self._sessions.materialize(account.id),
        )

    # ── Administration ───────────────────────────────────────────────────────

    async def _require_admin(self, actor_id: Any) -> AccountDoc:
        actor = await self._accounts.find_by_id(actor_id)
        if actor is None or not actor.is_admin:
            log.warning("admin_action_denied", actor_id=str(actor_id))
            raise ForbiddenError(NOT_ALLOWED)
        return actor

    async def _moderation_target(self, user_id: Any) -> AccountDoc:
        target = await self._accounts.find_by_id(user_id)
        if target is None:
            raise NotFoundError("User not found.")
        if target.is_admin:
            raise ForbiddenError("Administrator accounts cannot be moderated.")
        return target

    async def suspend_user(self, actor_id: Any, user_id: Any, days: int) -> AccountDoc:
        if not 1 <= days <= MAX_SUSPENSION_DAYS:
            raise ValidationError(
                f"Suspension must be between 1 and {MAX_SUSPENSION_DAYS} days.",
                field="days",
            )
        actor = await self._require_admin(actor_id)
        target = await self._moderation_target(user_id)
        now = self._clock()
        updated = await self._accounts.update_fields(
            target.id, {"suspended_until": now + timedelta(days=days)}, now=now
        )
        if updated is None:
            raise NotFoundError("User not found.")
        log.info(
            "user_suspended",
            actor_id=str(actor.id),
            user_id=str(target.id),
            days=days,
        )
        return updated

    async def unsuspend_user(self, actor_id: Any, user_id: Any) -> AccountDoc:
        actor = await self._require_admin(actor_id)
        target = await self._moderation_target(user_id)
        updated = await self._accounts.update_fields(
            target.id, {"suspended_until": None}, now=self._clock()
        )
        if updated is None:
            raise NotFoundError("User not found.")
        log.info("user_unsuspended", actor_id=str(actor.id), user_id=str(target.id))
        return updated

    async def delete_user(self, actor_id: Any, user_id: Any) -> None:
        actor = await self._require_admin(actor_id)
        if str(actor.id) == str(user_id):
            raise ForbiddenError("You cannot delete your own account here.")
        target = await self._moderation_target(user_id)
        if not await self._accounts.delete_by_id(target.id):
            raise NotFoundError("User not found.")
        log.info("user_deleted", actor_id=str(actor.id), user_id=str(target.id))

    # ── Maintenance ──────────────────────────────────────────────────────────

    async def purge_expired_unverified(self) -> int:
        return await self._accounts.purge_expired_unverified(self._clock())
