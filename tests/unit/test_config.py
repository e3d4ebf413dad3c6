"""Unit tests for AppSettings and sub-configs."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import (
    AppSettings,
    DatabaseSettings,
    GuestAccessSettings,
    RedisSettings,
    SmsSettings,
)


# ---------------------------------------------------------------------------
# DatabaseSettings
# ---------------------------------------------------------------------------


class TestDatabaseSettings:
    def test_loads_mongodb_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        assert DatabaseSettings().mongodb_uri == "mongodb://localhost:27017/"

    def test_default_db_name(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        monkeypatch.delenv("DB_NAME", raising=False)
        assert DatabaseSettings().db_name == "lab-results"

    def test_missing_mongodb_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        with pytest.raises(PydanticValidationError):
            DatabaseSettings()


# ---------------------------------------------------------------------------
# RedisSettings
# ---------------------------------------------------------------------------


class TestRedisSettings:
    def test_redis_uri_optional(self, monkeypatch):
        monkeypatch.delenv("REDIS_URI", raising=False)
        assert RedisSettings().redis_uri is None

    def test_redis_uri_loaded(self, monkeypatch):
        monkeypatch.setenv("REDIS_URI", "redis://localhost:6379")
        assert RedisSettings().redis_uri == "redis://localhost:6379"


# ---------------------------------------------------------------------------
# GuestAccessSettings / SmsSettings
# ---------------------------------------------------------------------------


class TestGuestAccessSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "CAPABILITY_TTL_SECONDS",
            "OTP_TTL_SECONDS",
            "GRANT_TTL_SECONDS",
            "OTP_MAX_ATTEMPTS",
            "DOB_MAX_ATTEMPTS",
        ):
            monkeypatch.delenv(var, raising=False)
        s = GuestAccessSettings()
        assert s.capability_ttl_seconds == 48 * 3600
        assert s.otp_ttl_seconds == 600
        assert s.grant_ttl_seconds == 300
        assert s.otp_max_attempts == 3
        assert s.dob_max_attempts == 5

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("OTP_TTL_SECONDS", "120")
        monkeypatch.setenv("APP_BASE_URL", "https://results.example.org")
        s = GuestAccessSettings()
        assert s.otp_ttl_seconds == 120
        assert s.app_base_url == "https://results.example.org"


def test_sms_defaults(monkeypatch):
    monkeypatch.delenv("SMS_PROVIDER", raising=False)
    monkeypatch.delenv("SMS_SENDER_ID", raising=False)
    s = SmsSettings()
    assert s.sms_provider == "console"
    assert s.sms_sender_id == "MedLab"


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env, expected",
    [("production", True), ("development", False)],
    ids=["production", "development"],
)
def test_is_production(base_env, env, expected):
    base_env.setenv("ENV", env)
    if expected:
        base_env.setenv("SMS_PROVIDER", "http")
        base_env.setenv("SMS_GATEWAY_URL", "https://sms.example.org/send")
    assert AppSettings().is_production is expected


class TestAppSettings:
    def test_sub_configs_populated(self, base_env):
        s = AppSettings()
        for attr in (
            "db", "redis", "guest", "sms", "storage", "rate_limit", "logging", "sentry"
        ):
            assert getattr(s, attr) is not None, f"sub-config '{attr}' is None"

    def test_cors_origins_default(self, base_env):
        base_env.delenv("CORS_ORIGINS", raising=False)
        assert AppSettings().cors_origins == ["http://localhost:5173"]

    def test_rate_limit_default(self, base_env):
        base_env.delenv("GUEST_RATE_LIMIT_PER_MINUTE", raising=False)
        assert AppSettings().rate_limit.guest_rate_limit_per_minute == 10


class TestSecretValidation:
    @pytest.mark.parametrize("var", ["GUEST_TOKEN_SECRET", "FILE_GRANT_SECRET"])
    def test_missing_secret_rejected(self, base_env, var):
        base_env.delenv(var)
        with pytest.raises(PydanticValidationError, match=f"{var} is required"):
            AppSettings()

    @pytest.mark.parametrize("var", ["GUEST_TOKEN_SECRET", "FILE_GRANT_SECRET"])
    def test_short_secret_rejected(self, base_env, var):
        base_env.setenv(var, "too-short")
        with pytest.raises(PydanticValidationError, match="at least 32 characters"):
            AppSettings()

    def test_shared_secrets_rejected(self, base_env):
        base_env.setenv("FILE_GRANT_SECRET", "g" * 40)
        with pytest.raises(PydanticValidationError, match="must differ"):
            AppSettings()

    def test_guest_secret_reusing_app_secret_rejected(self, base_env):
        base_env.setenv("SECRET_KEY", "g" * 40)
        with pytest.raises(PydanticValidationError, match="SECRET_KEY"):
            AppSettings()

    def test_valid_secrets_accepted(self, base_env):
        s = AppSettings()
        assert s.guest.guest_token_secret == "g" * 40
        assert s.guest.file_grant_secret == "f" * 40


class TestSmsProviderValidation:
    def test_console_provider_rejected_in_production(self, base_env):
        base_env.setenv("ENV", "production")
        with pytest.raises(PydanticValidationError, match="SMS_PROVIDER"):
            AppSettings()

    def test_http_provider_requires_gateway_url(self, base_env):
        base_env.setenv("SMS_PROVIDER", "http")
        with pytest.raises(PydanticValidationError, match="SMS_GATEWAY_URL"):
            AppSettings()

    def test_console_provider_allowed_in_development(self, base_env):
        assert AppSettings().sms.sms_provider == "console"
