"""
Configuration management for pocketplan.

Settings come from environment variables (optionally loaded from a ``.env``
file) with defaults suitable for a single-user local install.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


@dataclass
class Config:
    """
    Main configuration class for pocketplan.

    ``database_url`` wins over ``database_path``; when neither is set the
    SQLite file lives under ``~/.pocketplan``.
    """

    environment: Environment
    database_url: str | None
    database_path: str | None
    timezone: str = "Europe/Warsaw"
    currency: str = "zł"
    log_level: str = "INFO"
    scheduler_poll_seconds: int = 30

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("POCKETPLAN_ENV", "development"))

        database_path = os.getenv("POCKETPLAN_DB_PATH")
        if database_path:
            database_path = str(Path(database_path).expanduser())

        return cls(
            environment=env,
            database_url=os.getenv("POCKETPLAN_DATABASE_URL") or None,
            database_path=database_path or None,
            timezone=os.getenv("POCKETPLAN_TIMEZONE", "Europe/Warsaw"),
            currency=os.getenv("POCKETPLAN_CURRENCY", "zł"),
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == Environment.TEST else "INFO").upper(),
            scheduler_poll_seconds=int(os.getenv("POCKETPLAN_SCHEDULER_POLL", "30")),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Unknown timezone: {self.timezone}")

        if self.scheduler_poll_seconds <= 0:
            errors.append("Scheduler poll interval must be positive")

        if self.log_level not in logging.getLevelNamesMapping():
            errors.append(f"Unknown log level: {self.log_level}")

        if self.environment == Environment.PRODUCTION and not (
            self.database_url or self.database_path
        ):
            errors.append("POCKETPLAN_DATABASE_URL or POCKETPLAN_DB_PATH is required in production")

        return errors

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        # Configure format based on environment
        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # SQL echo is far too chatty outside development
        if self.environment != Environment.DEVELOPMENT:
            logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_now(self) -> datetime:
        """Wall-clock time in the configured timezone, without tzinfo."""
        return datetime.now(self.tzinfo).replace(tzinfo=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        result: dict[str, Any] = {}
        for field_name, field_value in self.__dict__.items():
            if isinstance(field_value, Enum):
                result[field_name] = field_value.value
            else:
                result[field_name] = field_value
        return result


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_environment()

        errors = _config.validate()
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        _config.setup_logging()

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()
