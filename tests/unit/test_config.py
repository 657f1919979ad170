"""Unit tests for settings parsing and the production guard."""

import pytest
from pydantic import ValidationError

from ngoconnect.core.config import Settings

STRONG_SECRET = "x" * 40


def test_cors_lists_accept_csv():
    settings = Settings(cors_allow_origins="https://a.example, https://b.example,")
    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError):
        Settings(app_timezone="Mars/Olympus")


@pytest.mark.parametrize(
    "overrides",
    [
        {"jwt_secret": "changeme"},
        {"jwt_secret": "short"},
        {"jwt_secret": STRONG_SECRET, "cors_allow_origins": ["*"]},
        {"jwt_secret": STRONG_SECRET, "notification_webhook_url": "http://push.example/hook"},
    ],
)
def test_production_rejects_unsafe_settings(overrides):
    with pytest.raises(ValidationError):
        Settings(environment="production", **overrides)


def test_production_accepts_hardened_settings():
    settings = Settings(
        environment="production",
        jwt_secret=STRONG_SECRET,
        notification_webhook_url="https://push.example/hook",
    )
    assert settings.environment == "production"
