"""
Tests for structured logging configuration.

This module tests:
- JSONFormatter (JSON log output, extras, redaction)
- ConsoleFormatter (key=value fields)
- BoundLogger (bound and per-call fields)
- setup_logging() (root handler, file output, level fallback)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import io
import json
import logging

import pytest

from money_manager.core.logging_config import (
    REDACTED,
    BoundLogger,
    ConsoleFormatter,
    JSONFormatter,
    flush_logging,
    get_logger,
    resolve_level,
    setup_logging,
)


def _capture(name: str, formatter: logging.Formatter):
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers = []
    logger.propagate = False

    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger, stream


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_basic_message(self):
        """
        Test JSONFormatter outputs valid JSON.

        Arrange: Logger with JSONFormatter
        Act: Log a message
        Assert: Output is one JSON object with required fields
        """
        # Arrange
        logger, stream = _capture("test_json_basic", JSONFormatter())

        # Act
        logger.info("user created")

        # Assert
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["level"] == "INFO"
        assert log_data["message"] == "user created"
        assert log_data["logger"] == "test_json_basic"
        assert log_data["caller"].startswith("test_logging_config:")
        assert "timestamp" in log_data

    def test_extra_fields(self):
        logger, stream = _capture("test_json_extra", JSONFormatter())

        logger.error("failed to get user", extra={"operation": "get_by_id", "user_id": 42})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["operation"] == "get_by_id"
        assert log_data["user_id"] == 42

    def test_exception_included(self):
        logger, stream = _capture("test_json_exc", JSONFormatter())

        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception("operation failed")

        log_data = json.loads(stream.getvalue().strip())
        assert "ValueError: boom" in log_data["exception"]

    def test_secret_fields_redacted(self):
        logger, stream = _capture("test_json_redact", JSONFormatter())

        logger.info("user payload", extra={"passhash": "abc", "db_password": "pw", "email": "a@b.c"})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["passhash"] == REDACTED
        assert log_data["db_password"] == REDACTED
        assert log_data["email"] == "a@b.c"

    def test_non_serializable_values_stringified(self):
        logger, stream = _capture("test_json_default", JSONFormatter())

        logger.info("odd value", extra={"value": object()})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["value"].startswith("<object object")


class TestConsoleFormatter:
    def test_fields_appended(self):
        logger, stream = _capture("test_console", ConsoleFormatter())

        logger.warning("slow query", extra={"operation": "list"})

        line = stream.getvalue().strip()
        assert "WARNING" in line
        assert "slow query" in line
        assert line.endswith("operation=list")


class TestBoundLogger:
    """Tests for bound structured fields."""

    def test_bound_fields_on_every_record(self):
        base, stream = _capture("test_bound", JSONFormatter())
        logger = BoundLogger(base, {"component": "user_repository"})

        logger.info("first")
        logger.info("second")

        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [r["component"] for r in records] == ["user_repository", "user_repository"]

    def test_call_extra_wins_over_bound(self):
        base, stream = _capture("test_bound_override", JSONFormatter())
        logger = BoundLogger(base, {"operation": "bound"})

        logger.info("msg", extra={"operation": "call"})

        assert json.loads(stream.getvalue())["operation"] == "call"

    def test_bind_derives_child(self):
        base, stream = _capture("test_bind", JSONFormatter())
        parent = BoundLogger(base, {"app": "money-manager"})

        child = parent.bind(component="pool")
        child.info("connected")

        log_data = json.loads(stream.getvalue())
        assert log_data["app"] == "money-manager"
        assert log_data["component"] == "pool"
        assert "component" not in parent.extra

    def test_get_logger_binds_fields(self):
        logger = get_logger("test_get_logger", component="x")

        assert isinstance(logger, BoundLogger)
        assert logger.logger.name == "test_get_logger"
        assert logger.extra == {"component": "x"}


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_replaces_root_handlers(self, restore_root_logger):
        setup_logging(level="debug", encoding="json")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG

    def test_console_encoding(self, restore_root_logger):
        setup_logging(level="info", encoding="console")

        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_writes_to_file(self, restore_root_logger, tmp_path):
        """
        Test output_path sends JSON lines to a file.

        Arrange: Log file path in tmp dir
        Act: Configure logging and log one record
        Assert: File holds the record as JSON
        """
        # Arrange
        log_file = tmp_path / "app.log"

        # Act
        setup_logging(level="info", encoding="json", output_path=str(log_file))
        get_logger("test_file_output", operation="create").info("written")
        flush_logging()

        # Assert
        log_data = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert log_data["message"] == "written"
        assert log_data["operation"] == "create"

    def test_unopenable_file_raises(self, restore_root_logger, tmp_path):
        with pytest.raises(OSError):
            setup_logging(output_path=str(tmp_path / "missing" / "app.log"))

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warn", logging.WARNING),
            ("error", logging.ERROR),
            ("verbose", logging.INFO),
        ],
    )
    def test_resolve_level(self, name, expected):
        assert resolve_level(name) == expected
