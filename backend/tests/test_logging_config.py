import json
import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from sitescope.core.logging_config import (
    ConsoleFormatter,
    JsonFormatter,
    configure_logging,
    get_context_logger,
)


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("sitescope.http", logging.INFO, __file__, 1, "Request completed", None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JsonFormatter().format(_record(request_id="abc", status_code=200)))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "sitescope.http"
    assert payload["message"] == "Request completed"
    assert payload["request_id"] == "abc"
    assert payload["status_code"] == 200


def test_console_formatter_appends_metadata():
    line = ConsoleFormatter().format(_record(context="HTTP"))
    assert "[INFO] sitescope.http: Request completed" in line
    assert line.endswith('{"context": "HTTP"}')


def test_console_formatter_without_metadata_is_plain():
    assert ConsoleFormatter().format(_record()).endswith("Request completed")


def test_context_logger_merges_call_site_extra(caplog):
    caplog.set_level(logging.INFO, logger="sitescope")
    get_context_logger("Database").info("Connected", extra={"response_time_ms": 3})

    [record] = [r for r in caplog.records if r.getMessage() == "Connected"]
    assert record.name == "sitescope.database"
    assert record.context == "DATABASE"
    assert record.response_time_ms == 3


def test_configure_logging_picks_formatter_by_environment(restore_root_logging):
    configure_logging(log_level="warning", app_env="production")
    assert restore_root_logging.level == logging.WARNING
    [handler] = restore_root_logging.handlers
    assert isinstance(handler.formatter, JsonFormatter)

    configure_logging(log_level="INFO", app_env="development")
    [handler] = restore_root_logging.handlers
    assert isinstance(handler.formatter, ConsoleFormatter)


def test_configure_logging_adds_rotating_files(restore_root_logging, tmp_path):
    configure_logging(log_level="INFO", app_env="development", log_dir=str(tmp_path / "logs"))

    files = [h for h in restore_root_logging.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert sorted((h.baseFilename.rsplit("/", 1)[-1], h.backupCount, h.level) for h in files) == [
        ("app.log", 14, logging.INFO),
        ("error.log", 30, logging.ERROR),
    ]

    logging.getLogger("sitescope.test").error("disk full", extra={"context": "TEST"})
    for handler in files:
        handler.flush()
    line = (tmp_path / "logs" / "error.log").read_text(encoding="utf-8").strip()
    assert json.loads(line)["message"] == "disk full"
