"""
FeedPoster Logging
==================

Every component logs through ``feedposter.<component>`` with its component
name (and feed URL, where one applies) attached to each record. The console
gets short colored lines; the log file gets one JSON object per line.
"""

import json
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


ROOT_LOGGER = "feedposter"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_NOISY_LIBRARIES = ("aiohttp", "feedparser", "charset_normalizer")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed to a log call through ``extra``."""
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = record_context(record)
        if context:
            line["context"] = context
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL component: message`` with the level colored."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<7}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        source = getattr(record, "component", record.name)
        line = f"{clock} {level} {source}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ComponentLogger(logging.LoggerAdapter):
    """Adds the component context to every record, keeping call-site extras."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(component_name: str, **context: Any) -> ComponentLogger:
    """Logger for one component, e.g. ``get_logger_for_component("publisher")``.

    Keyword arguments (such as ``feed_url``) are attached to every record.
    """
    logger = logging.getLogger(f"{ROOT_LOGGER}.{component_name}")
    return ComponentLogger(logger, {"component": component_name, **context})


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedposter.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Install console and file handlers on the ``feedposter`` logger.

    Calling it again replaces the handlers instead of adding more.

    Args:
        log_level: Level name for the ``feedposter`` logger
        log_file: Rotating JSON log file; no file logging when empty
        enable_console: Log to stdout
        structured_logging: Write JSON lines to the console too
        max_file_size_mb: Rotation threshold for the log file
        backup_count: Number of rotated log files to keep
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(log_level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        if structured_logging:
            console.setFormatter(JsonLineFormatter())
        else:
            console.setFormatter(ConsoleFormatter(use_color=sys.stdout.isatty()))
        root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonLineFormatter())
        root.addHandler(file_handler)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


@contextmanager
def log_duration(logger: logging.LoggerAdapter, operation: str, **context: Any) -> Iterator[None]:
    """Log how long the wrapped block took, and whether it raised."""
    started = time.monotonic()
    logger.debug(f"Starting {operation}", extra=context)
    try:
        yield
    except BaseException:
        elapsed = time.monotonic() - started
        logger.error(
            f"Failed {operation} after {elapsed:.3f}s",
            extra={**context, "duration_seconds": elapsed, "success": False},
        )
        raise
    elapsed = time.monotonic() - started
    logger.info(
        f"Completed {operation} in {elapsed:.3f}s",
        extra={**context, "duration_seconds": elapsed, "success": True},
    )
