"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The session secret signs the session cookie. It may be left empty in
development (a per-process random secret is generated), but AppSettings
refuses to start in production without one.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.generators import generate_secure_token


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "reciperadar"
    rate_limit_db_name: str = "limits"


class SessionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_secret: str = ""
    session_cookie_name: str = "session"
    session_ttl_seconds: int = 604800  # 7 days
    cookie_secure: bool = True


class AdminSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Out-of-band administrator identity; disabled when either is empty
    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Admin"

    @property
    def enabled(self) -> bool:
        return bool(self.admin_email and self.admin_password)


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@reciperadar.app"
    zepto_from_name: str = "RecipeRadar"
    email_timeout_seconds: float = 5.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://reciperadar.app"
    app_name: str = "RecipeRadar"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Delete unverified accounts with expired signup codes at start-up
    purge_unverified_on_startup: bool = True

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    session: Optional[SessionSettings] = None
    admin: Optional[AdminSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.session is None:
            self.session = SessionSettings()
        if self.admin is None:
            self.admin = AdminSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        if not self.session.session_secret:
            if self.is_production:
                raise ValueError("SESSION_SECRET must be set in production")
            self.session.session_secret = generate_secure_token()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
