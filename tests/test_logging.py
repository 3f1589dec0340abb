"""Tests for structured logging configuration."""

import json
import logging
import sys

from workorders.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    get_logger,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Backup completed", extra_fields=None, **kwargs):
    record = logging.LogRecord(
        name=kwargs.pop("name", "workorders.services.backup"),
        level=level,
        pathname=kwargs.pop("pathname", "backup.py"),
        lineno=kwargs.pop("lineno", 10),
        msg=msg,
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        formatter = JsonFormatter(service_name="test-service")

        parsed = json.loads(formatter.format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "test-service"
        assert parsed["message"] == "Backup completed"
        assert parsed["logger"] == "workorders.services.backup"
        assert "timestamp" in parsed
        assert "correlation_id" not in parsed

    def test_includes_correlation_id(self):
        token = correlation_id_ctx.set("backup-abc123")
        try:
            parsed = json.loads(JsonFormatter().format(make_record()))
        finally:
            correlation_id_ctx.reset(token)

        assert parsed["correlation_id"] == "backup-abc123"

    def test_merges_extra_fields(self):
        record = make_record(extra_fields={"files": 5, "records": 120})

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["files"] == 5
        assert parsed["records"] == 120

    def test_error_includes_location(self):
        record = make_record(
            level=logging.ERROR, msg="Export failed", pathname="/app/backup.py", lineno=42
        )
        record.funcName = "export_collection"

        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["location"] == {
            "file": "/app/backup.py",
            "line": 42,
            "function": "export_collection",
        }

    def test_includes_exception(self):
        try:
            raise ValueError("disk full")
        except ValueError:
            exc_info = sys.exc_info()

        parsed = json.loads(
            JsonFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info))
        )

        assert "ValueError: disk full" in parsed["exception"]


class TestTextFormatter:
    def test_basic_line(self):
        output = TextFormatter(service_name="test-service").format(make_record())

        assert "test-service" in output
        assert "INFO" in output
        assert "[-]" in output
        assert "Backup completed" in output

    def test_correlation_id_and_extra_fields(self):
        record = make_record(extra_fields={"deleted_count": 3})
        token = correlation_id_ctx.set("abc-123")
        try:
            output = TextFormatter().format(record)
        finally:
            correlation_id_ctx.reset(token)

        assert "[abc-123]" in output
        assert output.endswith("deleted_count=3")


class TestStructuredLogger:
    def test_keyword_fields_reach_the_record(self, caplog):
        logger = get_logger("workorders.test")

        with caplog.at_level(logging.INFO):
            logger.info("Deletion code issued", entity_id="wo-1")

        record = caplog.records[-1]
        assert record.getMessage() == "Deletion code issued"
        assert record.extra_fields == {"entity_id": "wo-1"}

    def test_exception_attaches_traceback(self, caplog):
        logger = get_logger("workorders.test")

        with caplog.at_level(logging.ERROR):
            try:
                raise RuntimeError("smtp down")
            except RuntimeError:
                logger.exception("Backup run failed", trigger="manual")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None
        assert record.extra_fields == {"trigger": "manual"}


class TestSetupLogging:
    def test_json_logging(self):
        setup_logging(log_format="json", log_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_text_logging_with_service_name(self):
        setup_logging(log_format="text", service_name="custom-service")

        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter, TextFormatter)
        assert formatter.service_name == "custom-service"

    def test_quiets_scheduler_executor(self):
        setup_logging()

        executor_logger = logging.getLogger("apscheduler.executors.default")
        assert executor_logger.level == logging.WARNING
