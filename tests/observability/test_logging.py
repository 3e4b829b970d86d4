"""Tests for structured logging."""

from typing import Any

import pytest
import structlog

from promptline.observability.logging import (
    add_operation_id,
    clear_operation_id,
    get_logger,
    get_operation_id,
    set_operation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog() -> Any:
    """Restore structlog defaults and clear the operation ID after each test."""
    yield
    structlog.reset_defaults()
    clear_operation_id()


class TestStructuredLogging:
    """Tests for structured logging setup."""

    def test_setup_logging_with_json_format(self) -> None:
        """setup_logging should configure JSON logging."""
        setup_logging(log_level="INFO", json_logs=True)

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
        assert add_operation_id in config["processors"]

    def test_setup_logging_with_console_format(self) -> None:
        """setup_logging should configure console logging."""
        setup_logging(log_level="DEBUG", json_logs=False)

        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_setup_logging_rejects_unknown_level(self) -> None:
        """Unknown level names should raise ValueError."""
        with pytest.raises(ValueError):
            setup_logging(log_level="LOUD")

    def test_get_logger_returns_logger(self) -> None:
        """get_logger should return a valid logger instance."""
        logger = get_logger("test_module")

        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")
        assert hasattr(logger, "error")


class TestOperationId:
    """Tests for operation ID management."""

    def test_set_and_get_operation_id(self) -> None:
        """Should be able to set and retrieve the operation ID."""
        set_operation_id("op-123")

        assert get_operation_id() == "op-123"

    def test_clear_operation_id(self) -> None:
        """clear_operation_id should remove the operation ID."""
        set_operation_id("op-123")
        clear_operation_id()

        assert get_operation_id() is None

    def test_processor_adds_operation_id(self) -> None:
        """The processor should inject the current operation ID."""
        set_operation_id("op-456")

        event = add_operation_id(None, "info", {"event": "history_operation_completed"})  # type: ignore[arg-type]

        assert event["operation_id"] == "op-456"

    def test_processor_without_operation_id(self) -> None:
        """Events outside an operation should be left unchanged."""
        clear_operation_id()

        event = add_operation_id(None, "info", {"event": "startup"})  # type: ignore[arg-type]

        assert "operation_id" not in event
