"""Structured logging: readable console output plus JSON log files."""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from catalog_scraper.config import settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Libraries that log every request at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every line with time, level and origin."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["source"] = f"{record.filename}:{record.lineno}"

        if record.funcName:
            log_record["function"] = record.funcName


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(CustomJsonFormatter(JSON_FORMAT))
    return handler


def setup_logging(base_dir: str | Path | None = None, level: Optional[str] = None):
    """Configure the root logger.

    Writes human-readable lines to stdout, every record as JSON to
    ``logs/app.log`` and errors again to ``logs/error.log``.

    Args:
        base_dir: Directory holding the logs folder (defaults to the cwd)
        level: Log level name (defaults to settings.log_level)
    """
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / settings.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.log_level).upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_json_file_handler(logs_dir / "app.log", logging.DEBUG))
    root_logger.addHandler(_json_file_handler(logs_dir / "error.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adds fixed context fields (site, category, ...) to every record."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger with context fields.

    Args:
        name: Logger name (usually __name__)
        **context: Fields added to every record (e.g. site="farmid")

    Returns:
        LoggerAdapter with context
    """
    return LoggerAdapter(logging.getLogger(name), context)
