"""
Logging configuration for toolplan.

This module provides centralized logging configuration with optional JSON
output and a small structured logger that appends context as JSON.
"""

import json
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

_configured = False


class JsonFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        structured = getattr(record, "structured_data", None)
        if structured:
            payload["context"] = structured
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class StructuredLogger:
    """Logger wrapper that attaches keyword context to each message."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.name = name

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        if kwargs:
            extra = {"structured_data": kwargs}
            self.logger.log(level, f"{message} | {json.dumps(kwargs, default=str)}", extra=extra)
        else:
            self.logger.log(level, message)


def build_logging_config(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> Dict[str, Any]:
    """Build a ``logging.config.dictConfig`` dictionary for the toolplan loggers."""
    formatter = "json" if json_format else "standard"
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": formatter,
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            "toolplan": {"level": level, "handlers": list(handlers), "propagate": False},
        },
    }


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    fmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Level for the ``toolplan`` logger tree
        log_file: Optional path of a rotating log file
        json_format: Whether to emit JSON lines
        fmt: Format string for the plain formatter
        force: Reconfigure even if logging was already set up
    """
    global _configured
    if _configured and not force:
        return

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    kwargs: Dict[str, Any] = {}
    if fmt:
        kwargs["fmt"] = fmt
    logging.config.dictConfig(
        build_logging_config(level.upper(), log_file=log_file, json_format=json_format, **kwargs)
    )
    _configured = True


def setup_logging_from_config(
    config: Any = None, force: bool = False, level: Optional[str] = None
) -> None:
    """Setup logging from the ``logging`` section of the configuration.

    ``level`` overrides the configured level when given.
    """
    from .config import ConfigManager

    config = config or ConfigManager.get_instance()
    setup_logging(
        level=level or config.get("logging.level", "INFO"),
        log_file=config.get("logging.file"),
        json_format=bool(config.get("logging.json_format", False)),
        fmt=config.get("logging.format"),
        force=force,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (usually for ``__name__``)."""
    return logging.getLogger(name)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
