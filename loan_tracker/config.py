"""Configuration management for the loan tracker."""

import os
from dataclasses import dataclass
from datetime import date

from loan_tracker.exceptions import ConfigurationError
from loan_tracker.utils import parse_date

DEFAULT_DATABASE_URL = "sqlite:///loan_tracker.sqlite3"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("standard", "json")


@dataclass
class LoanTrackerConfig:
    """Main configuration for the loan tracker.

    ``as_of`` pins the "now" used for balance-to-date figures. When unset the
    current local date is used.
    """

    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_format: str = "standard"
    as_of: date | None = None

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(f"Unknown log format: {self.log_format}")
        if not self.database_url:
            raise ConfigurationError("Database URL must not be empty")

    def today(self) -> date:
        """Return the configured reference date, defaulting to today."""
        return self.as_of or date.today()

    @classmethod
    def from_env(cls) -> "LoanTrackerConfig":
        """Create config from environment variables."""
        as_of_str = os.getenv("LOAN_TRACKER_AS_OF")
        try:
            as_of = parse_date(as_of_str) if as_of_str else None
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(
            database_url=os.getenv("LOAN_TRACKER_DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            as_of=as_of,
        )
