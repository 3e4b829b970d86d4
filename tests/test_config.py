"""Tests for history configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from promptline.config import HistoryConfig, get_default_config, load_config_from_env


@pytest.fixture
def clean_env(monkeypatch):
    """Remove PROMPTLINE_ variables and skip .env loading."""
    for key in os.environ.copy():
        if key.startswith("PROMPTLINE_"):
            monkeypatch.delenv(key, raising=False)

    with patch("promptline.config.load_dotenv"):
        yield monkeypatch


def test_history_config_default_values() -> None:
    """Test HistoryConfig has expected defaults."""
    config = HistoryConfig()

    assert config.backend == "memory"
    assert config.database_url == "sqlite+aiosqlite:///:memory:"
    assert config.database_echo is False
    assert config.diff_context_lines == 3
    assert config.ignore_whitespace is False
    assert config.log_level == "INFO"
    assert config.json_logs is True


def test_history_config_immutable() -> None:
    """Test that HistoryConfig is immutable."""
    config = HistoryConfig()

    with pytest.raises(ValidationError):
        config.backend = "sql"  # type: ignore


def test_history_config_rejects_unknown_backend() -> None:
    """Test that only memory and sql backends are accepted."""
    with pytest.raises(ValidationError):
        HistoryConfig(backend="redis")  # type: ignore[arg-type]


def test_history_config_context_lines_range() -> None:
    """Test diff_context_lines bounds."""
    with pytest.raises(ValidationError):
        HistoryConfig(diff_context_lines=-1)

    with pytest.raises(ValidationError):
        HistoryConfig(diff_context_lines=101)

    assert HistoryConfig(diff_context_lines=0).diff_context_lines == 0


def test_history_config_log_level_normalized() -> None:
    """Test log levels are upper-cased and validated."""
    assert HistoryConfig(log_level="debug").log_level == "DEBUG"

    with pytest.raises(ValidationError):
        HistoryConfig(log_level="verbose")


def test_history_config_sql_requires_async_driver() -> None:
    """Test the sql backend rejects synchronous database URLs."""
    with pytest.raises(ValidationError, match="async driver"):
        HistoryConfig(backend="sql", database_url="sqlite:///history.db")

    config = HistoryConfig(backend="sql", database_url="postgresql+asyncpg://db/history")
    assert config.database_url == "postgresql+asyncpg://db/history"


def test_history_config_sql_accepts_default_url() -> None:
    """Test the default in-memory SQLite URL is valid for the sql backend."""
    config = HistoryConfig(backend="sql")

    assert config.backend == "sql"
    assert config.database_url == "sqlite+aiosqlite:///:memory:"


def test_history_config_memory_ignores_database_url() -> None:
    """Test the memory backend does not validate the database URL."""
    config = HistoryConfig(backend="memory", database_url="sqlite:///unused.db")

    assert config.database_url == "sqlite:///unused.db"


def test_get_default_config() -> None:
    """Test get_default_config returns valid defaults."""
    config = get_default_config()

    assert isinstance(config, HistoryConfig)
    assert config == HistoryConfig()


def test_load_config_from_env_defaults(clean_env) -> None:
    """Test load_config_from_env with no env vars uses defaults."""
    config = load_config_from_env()

    assert config == HistoryConfig()


def test_load_config_from_env_settings(clean_env) -> None:
    """Test load_config_from_env reads every setting."""
    clean_env.setenv("PROMPTLINE_HISTORY_BACKEND", "SQL")
    clean_env.setenv("PROMPTLINE_DATABASE_URL", "sqlite+aiosqlite:///./history.db")
    clean_env.setenv("PROMPTLINE_DATABASE_ECHO", "yes")
    clean_env.setenv("PROMPTLINE_DIFF_CONTEXT_LINES", "5")
    clean_env.setenv("PROMPTLINE_IGNORE_WHITESPACE", "1")
    clean_env.setenv("PROMPTLINE_LOG_LEVEL", "warning")
    clean_env.setenv("PROMPTLINE_JSON_LOGS", "false")

    config = load_config_from_env()

    assert config.backend == "sql"
    assert config.database_url == "sqlite+aiosqlite:///./history.db"
    assert config.database_echo is True
    assert config.diff_context_lines == 5
    assert config.ignore_whitespace is True
    assert config.log_level == "WARNING"
    assert config.json_logs is False


def test_load_config_from_env_invalid_number(clean_env) -> None:
    """Test a non-numeric context line count is rejected."""
    clean_env.setenv("PROMPTLINE_DIFF_CONTEXT_LINES", "many")

    with pytest.raises(ValueError):
        load_config_from_env()
