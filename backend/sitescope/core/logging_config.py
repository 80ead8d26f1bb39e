from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any


ROOT_LOGGER_NAME = "sitescope"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "asctime", "taskName"}
)


def record_metadata(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_FIELDS}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_metadata(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        metadata = record_metadata(record)
        if metadata:
            line = f"{line} {json.dumps(metadata, default=str)}"
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that tags every record with a subsystem ``context``.

    Call-site ``extra`` is merged over the adapter's own fields rather than
    replacing them.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_context_logger(context: str) -> ContextLogger:
    logger = logging.getLogger(ROOT_LOGGER_NAME).getChild(context.lower())
    return ContextLogger(logger, {"context": context.upper()})


def _file_handler(path: Path, *, backup_days: int, level: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=backup_days, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def configure_logging(*, log_level: str, app_env: str, log_dir: str = "") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    if app_env.lower() == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    if log_dir.strip():
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        root.addHandler(_file_handler(directory / "app.log", backup_days=14, level=level))
        root.addHandler(_file_handler(directory / "error.log", backup_days=30, level=logging.ERROR))
