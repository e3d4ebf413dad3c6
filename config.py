"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Secret material for the guest-access protocol has no development fallback:
AppSettings refuses to build when the capability-token or file-grant secrets
are missing, too short, or shared with another trust domain.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "lab-results"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis the guest rate limiter counts in process memory
    redis_uri: Optional[str] = None


class GuestAccessSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    guest_token_secret: str = ""
    file_grant_secret: str = ""

    capability_ttl_seconds: int = 172_800  # 48h
    otp_ttl_seconds: int = 600
    grant_ttl_seconds: int = 300
    otp_max_attempts: int = 3
    dob_max_attempts: int = 5

    # Frontend origin used in magic links; API origin used in download grants
    app_base_url: str = "http://localhost:5173"
    api_base_url: str = "http://localhost:3000"

    request_timeout_seconds: float = 15.0
    sms_timeout_seconds: float = 5.0


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sms_provider: str = "console"  # "http" in production
    sms_gateway_url: str = ""
    sms_api_key: str = ""
    sms_sender_id: str = "MedLab"


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    storage_root: str = "storage/results"


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    guest_rate_limit_per_minute: int = 10


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    secret_key: str = ""
    env: str = "development"
    app_name: str = "lab-results-guest-access"

    cors_origins: list[str] = ["http://localhost:5173"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    guest: Optional[GuestAccessSettings] = None
    sms: Optional[SmsSettings] = None
    storage: Optional[StorageSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.guest is None:
            self.guest = GuestAccessSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.storage is None:
            self.storage = StorageSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        self._check_required_settings()
        return self

    def _check_required_settings(self) -> None:
        errors: list[str] = []
        secrets = {
            "GUEST_TOKEN_SECRET": self.guest.guest_token_secret,
            "FILE_GRANT_SECRET": self.guest.file_grant_secret,
        }
        for name, value in secrets.items():
            if not value:
                errors.append(f"{name} is required but not set")
            elif len(value) < MIN_SECRET_LENGTH:
                errors.append(
                    f"{name} must be at least {MIN_SECRET_LENGTH} characters "
                    f"(got {len(value)})"
                )

        guest_secret = self.guest.guest_token_secret
        if guest_secret and guest_secret == self.guest.file_grant_secret:
            errors.append("GUEST_TOKEN_SECRET and FILE_GRANT_SECRET must differ")
        if guest_secret and guest_secret == self.secret_key:
            errors.append("GUEST_TOKEN_SECRET must differ from SECRET_KEY")

        if self.is_production and self.sms.sms_provider != "http":
            errors.append("SMS_PROVIDER must be \"http\" in production")
        if self.sms.sms_provider == "http" and not self.sms.sms_gateway_url:
            errors.append("SMS_GATEWAY_URL is required when SMS_PROVIDER=http")

        if errors:
            raise ValueError("; ".join(errors))

    @property
    def is_production(self) -> bool:
        return self.env == "production"
