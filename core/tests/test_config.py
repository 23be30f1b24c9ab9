"""Tests for environment-driven configuration."""

from pathlib import Path

from core.config import check_required_env_vars, get_data_dir, get_reminder_hours, get_roster_channel_id


def test_reminder_hours_default():
    assert get_reminder_hours() == [24.0, 1.0]


def test_reminder_hours_from_env(monkeypatch):
    monkeypatch.setenv("OPERATION_REMINDER_HOURS", "48, 2, oops, 0.25")

    assert get_reminder_hours() == [48.0, 2.0, 0.25]


def test_data_dir(monkeypatch):
    monkeypatch.setenv("DATA_DIR", "/srv/ops")

    assert get_data_dir() == Path("/srv/ops")


def test_roster_channel_requires_digits(monkeypatch):
    monkeypatch.setenv("ROSTER_CHANNEL_ID", "not-a-channel")
    assert get_roster_channel_id() is None

    monkeypatch.setenv("ROSTER_CHANNEL_ID", "123456")
    assert get_roster_channel_id() == 123456


def test_missing_token_fails_in_production(monkeypatch):
    monkeypatch.setenv("RAILWAY_ENVIRONMENT", "production")
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    ok, _ = check_required_env_vars()

    assert ok is False


def test_missing_optional_vars_warn_in_dev(monkeypatch):
    monkeypatch.delenv("RAILWAY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "token")

    ok, warnings = check_required_env_vars()

    assert ok is True
    assert warnings == []
