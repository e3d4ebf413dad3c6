"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().
"""

import pytest

GUEST_TOKEN_SECRET = "g" * 40
FILE_GRANT_SECRET = "f" * 40


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def base_env(monkeypatch):
    """Minimal environment AppSettings accepts."""
    for var in ("ENV", "SECRET_KEY", "SMS_PROVIDER", "SMS_GATEWAY_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
    monkeypatch.setenv("GUEST_TOKEN_SECRET", GUEST_TOKEN_SECRET)
    monkeypatch.setenv("FILE_GRANT_SECRET", FILE_GRANT_SECRET)
    return monkeypatch
