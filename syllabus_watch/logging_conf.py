"""structlog events rendered as JSON lines by stdlib logging handlers."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False

APP_LOGGER = "syllabus_watch"
WATCH_LOG_NAME = "watch.log"
ERROR_LOG_NAME = "error.log"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }


def _logging_dict(level: str, log_dir: Path) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "pythonjsonlogger.json.JsonFormatter", "fmt": JSON_FORMAT},
        },
        "handlers": {
            # stdout carries command output; log lines go to stderr.
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": level,
                "formatter": "json",
            },
            "watch_file": _file_handler(log_dir / WATCH_LOG_NAME, "INFO"),
            "error_file": _file_handler(log_dir / ERROR_LOG_NAME, "ERROR"),
        },
        "loggers": {
            APP_LOGGER: {
                "handlers": ["console", "watch_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure logging on first call and return the application logger.

    Later calls return the logger without touching handlers, so the first
    ``log_dir`` wins for the lifetime of the process.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = Path(log_dir or "logs")
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(_logging_dict("DEBUG" if verbose else "INFO", log_dir))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                # Event dict becomes LogRecord extras for the JSON formatter.
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(APP_LOGGER)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last ``line_count`` lines of a log file, or nothing if it is absent."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:] if line_count > 0 else []


__all__ = ["APP_LOGGER", "ERROR_LOG_NAME", "WATCH_LOG_NAME", "configure_logging", "tail_log"]
