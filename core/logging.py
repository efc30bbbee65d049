"""
Logging Module - Centralized logging configuration
=================================================

All application loggers live under the ``travel_buddy`` namespace.
Provides:
- Colored console output
- Plain or JSON file logs, plus a JSON error log
- Thread-local context (e.g. the user id of the chat being handled)
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
import json
import threading


ROOT_LOGGER_NAME = "travel_buddy"


class JSONFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for readable terminal output.

    Uses ANSI color codes to highlight different log levels.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        formatted = (
            f"{color}{self.BOLD}[{record.levelname}]{self.RESET} "
            f"{timestamp} | {record.name}:{record.lineno} | "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class ContextFilter(logging.Filter):
    """
    Logging filter that attaches thread-local context to records.

    The web server handles requests on worker threads, so context set
    while handling one chat message never leaks into another.
    """

    _context = threading.local()

    @classmethod
    def set_context(cls, **kwargs) -> None:
        if not hasattr(cls._context, "data"):
            cls._context.data = {}
        cls._context.data.update(kwargs)

    @classmethod
    def clear_context(cls) -> None:
        cls._context.data = {}

    def filter(self, record: logging.LogRecord) -> bool:
        data = getattr(self._context, "data", None)
        if data:
            # Fields passed on the call itself win over the thread context
            record.extra_data = {**data, **getattr(record, "extra_data", {})}
        return True


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that collects bound fields and per-call ``extra``
    into ``record.extra_data``, which the JSON formatter writes out.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        data = dict(self.extra)
        data.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"extra_data": data} if data else {}
        return msg, kwargs


_loggers: Dict[str, logging.Logger] = {}
_configured = False


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    console_output: bool = True
) -> None:
    """
    Set up logging configuration for the application.

    This should be called once at application startup; later calls
    are ignored.

    Args:
        log_dir: Directory for log files (optional)
        log_level: Minimum log level to capture
        json_format: Use JSON format for the main file log
        console_output: Also output to console

    Example:
        setup_logging(
            log_dir="/var/log/travel-buddy",
            log_level="DEBUG",
            json_format=True
        )
    """
    global _configured

    if _configured:
        return

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    # Filters on a logger skip records from child loggers, so each handler gets one
    context_filter = ContextFilter()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(ColoredFormatter())
        console_handler.addFilter(context_filter)
        root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / "travel-buddy.log", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)

        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
                )
            )
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

        error_handler = logging.FileHandler(log_path / "errors.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        error_handler.addFilter(context_filter)
        root_logger.addHandler(error_handler)

    _configured = True


def get_logger(name: str, **extra) -> LoggerAdapter:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name, placed under the ``travel_buddy`` namespace
        **extra: Extra context to include in all log messages

    Returns:
        LoggerAdapter instance

    Example:
        logger = get_logger("services.conversation", component="chat")
        logger.info("Intent matched", extra={"intent": "book_hotel"})
    """
    if name.startswith(ROOT_LOGGER_NAME):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return LoggerAdapter(_loggers[full_name], extra)


def set_log_context(**kwargs) -> None:
    """
    Set thread-local logging context.

    Example:
        set_log_context(user_id="u-42", lang="fr")
        logger.info("Handling chat message")  # carries user_id and lang
    """
    ContextFilter.set_context(**kwargs)


def clear_log_context() -> None:
    """Clear thread-local logging context."""
    ContextFilter.clear_context()
