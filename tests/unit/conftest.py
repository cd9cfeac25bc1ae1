"""
Unit test configuration.

Settings must come only from what a test sets with monkeypatch, never from a
developer's .env or a secret exported in the shell.
"""

import pytest

_SECRET_ENV_VARS = (
    "ACCESS_TOKEN_SECRET",
    "REFRESH_TOKEN_SECRET",
    "SENDGRID_API_KEY",
    "SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _SECRET_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
