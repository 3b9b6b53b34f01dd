"""Tests for configuration loading and validation."""

import pytest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from pocketplan import config as config_module
from pocketplan.config import Config, Environment


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "POCKETPLAN_ENV",
        "POCKETPLAN_DB_PATH",
        "POCKETPLAN_DATABASE_URL",
        "POCKETPLAN_TIMEZONE",
        "POCKETPLAN_CURRENCY",
        "POCKETPLAN_SCHEDULER_POLL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = Config.from_environment()
    assert config.environment == Environment.DEVELOPMENT
    assert config.database_url is None
    assert config.database_path is None
    assert config.timezone == "Europe/Warsaw"
    assert config.currency == "zł"
    assert config.log_level == "INFO"
    assert config.scheduler_poll_seconds == 30
    assert config.validate() == []


def test_from_environment(clean_env):
    clean_env.setenv("POCKETPLAN_ENV", "test")
    clean_env.setenv("POCKETPLAN_DB_PATH", "/tmp/pocketplan.db")
    clean_env.setenv("POCKETPLAN_TIMEZONE", "UTC")
    clean_env.setenv("POCKETPLAN_SCHEDULER_POLL", "5")

    config = Config.from_environment()
    assert config.environment == Environment.TEST
    assert config.database_path == "/tmp/pocketplan.db"
    assert config.timezone == "UTC"
    assert config.log_level == "DEBUG"
    assert config.scheduler_poll_seconds == 5


def test_log_level_is_uppercased(clean_env):
    clean_env.setenv("LOG_LEVEL", "warning")
    assert Config.from_environment().log_level == "WARNING"


def test_validate_reports_every_problem():
    config = Config(
        environment=Environment.PRODUCTION,
        database_url=None,
        database_path=None,
        timezone="Not/AZone",
        log_level="LOUD",
        scheduler_poll_seconds=0,
    )
    errors = config.validate()
    assert len(errors) == 4
    assert "Unknown timezone: Not/AZone" in errors
    assert "Unknown log level: LOUD" in errors


def test_production_with_database_is_valid():
    config = Config(environment=Environment.PRODUCTION, database_url="sqlite:///x.db", database_path=None)
    assert config.validate() == []


def test_tzinfo_and_to_dict():
    config = Config(environment=Environment.TEST, database_url=None, database_path=None)
    assert config.tzinfo == ZoneInfo("Europe/Warsaw")
    data = config.to_dict()
    assert data["environment"] == "test"
    assert data["timezone"] == "Europe/Warsaw"


def test_get_config_rejects_invalid(clean_env):
    clean_env.setenv("POCKETPLAN_TIMEZONE", "Not/AZone")
    clean_env.setattr(config_module, "_config", None)
    with pytest.raises(ValueError, match="Configuration validation failed"):
        config_module.get_config()
    clean_env.setattr(config_module, "_config", None)


def test_local_now_is_naive_wall_clock():
    config = Config(environment=Environment.TEST, database_url=None, database_path=None, timezone="UTC")
    now = config.local_now()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)
