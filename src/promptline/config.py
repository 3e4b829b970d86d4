"""Configuration for the document history service.

This module provides the HistoryConfig model plus helpers for building it
with defaults or from PROMPTLINE_ environment variables.
"""

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from promptline.storage.database import ASYNC_DRIVERS

_TRUTHY = ("true", "1", "yes")


class HistoryConfig(BaseModel):
    """Configuration for the history service.

    Attributes:
        backend: Storage backend, "memory" or "sql"
        database_url: Async SQLAlchemy URL used by the "sql" backend
        database_echo: Whether to log SQL statements
        diff_context_lines: Default unchanged lines shown around each change
        ignore_whitespace: Default whitespace handling for diffs
        log_level: Logging level name
        json_logs: Whether to render logs as JSON

    Example:
        >>> config = HistoryConfig(backend="sql", database_url="sqlite+aiosqlite:///history.db")
        >>> config.diff_context_lines
        3
    """

    model_config = ConfigDict(frozen=True)

    backend: Literal["memory", "sql"] = Field(default="memory", description="Storage backend")
    database_url: str = Field(
        default="sqlite+aiosqlite:///:memory:", description="Async database URL"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    diff_context_lines: int = Field(
        default=3, ge=0, le=100, description="Context lines around each diff change"
    )
    ignore_whitespace: bool = Field(
        default=False, description="Compare diff lines with whitespace collapsed"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the log level name.

        Args:
            value: The level name to validate

        Returns:
            The upper-cased level name

        Raises:
            ValueError: If the level is not a standard logging level
        """
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a standard logging level, got '{value}'")
        return level

    @model_validator(mode="after")
    def validate_database_url(self) -> "HistoryConfig":
        """Validate the database URL uses an async driver for the sql backend.

        Returns:
            The validated config

        Raises:
            ValueError: If the sql backend is configured with a sync driver
        """
        if self.backend == "sql" and not any(
            driver in self.database_url for driver in ASYNC_DRIVERS
        ):
            raise ValueError(
                f"database_url must use an async driver ({', '.join(ASYNC_DRIVERS)}), "
                f"got '{self.database_url}'"
            )
        return self


def get_default_config() -> HistoryConfig:
    """Get the default history configuration.

    The defaults keep history in memory, which suits tests and local use.
    For persistent storage, use load_config_from_env() or pass a config
    with backend="sql".

    Returns:
        HistoryConfig with default values
    """
    return HistoryConfig()


def load_config_from_env() -> HistoryConfig:
    """Load history configuration from environment variables.

    Automatically loads variables from a .env file if present.

    Reads configuration from environment variables:
    - PROMPTLINE_HISTORY_BACKEND: "memory" or "sql"
    - PROMPTLINE_DATABASE_URL: Async database URL
    - PROMPTLINE_DATABASE_ECHO: Echo SQL statements (true/false)
    - PROMPTLINE_DIFF_CONTEXT_LINES: Context lines around each diff change
    - PROMPTLINE_IGNORE_WHITESPACE: Collapse whitespace when diffing (true/false)
    - PROMPTLINE_LOG_LEVEL: Logging level
    - PROMPTLINE_JSON_LOGS: Render logs as JSON (true/false)

    Returns:
        HistoryConfig loaded from environment

    Raises:
        ValueError: If a numeric variable is not an integer
        pydantic.ValidationError: If a value is out of range

    Example:
        >>> import os
        >>> os.environ["PROMPTLINE_HISTORY_BACKEND"] = "sql"
        >>> load_config_from_env().backend
        'sql'
    """
    load_dotenv()

    return HistoryConfig(
        backend=os.getenv("PROMPTLINE_HISTORY_BACKEND", "memory").lower(),
        database_url=os.getenv("PROMPTLINE_DATABASE_URL", "sqlite+aiosqlite:///:memory:"),
        database_echo=os.getenv("PROMPTLINE_DATABASE_ECHO", "false").lower() in _TRUTHY,
        diff_context_lines=int(os.getenv("PROMPTLINE_DIFF_CONTEXT_LINES", "3")),
        ignore_whitespace=os.getenv("PROMPTLINE_IGNORE_WHITESPACE", "false").lower() in _TRUTHY,
        log_level=os.getenv("PROMPTLINE_LOG_LEVEL", "INFO"),
        json_logs=os.getenv("PROMPTLINE_JSON_LOGS", "true").lower() in _TRUTHY,
    )
