"""
Loguru-based logger for storenode
- Colored levels with dimmed timestamp and caller info
- INFO and below on stdout, WARNING and above on stderr
- Optional rotating file sink
- bind() for structured context that tests can inspect
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger

# ANSI color codes for levels
LEVEL_COLORS = {
    "TRACE": "\033[2m",      # Dim
    "DEBUG": "\033[34m",     # Blue
    "INFO": "\033[32m",      # Green
    "SUCCESS": "\033[1m\033[32m",  # Bold Green
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[1m\033[31m", # Bold Red
}

RESET = "\033[0m"
DIM = "\033[2m"

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ["httpx", "httpcore"]

_configured = False


def _get_caller_info(record: Dict[str, Any]) -> str:
    """Get caller module:function:line from a loguru record."""
    try:
        filename = record["file"].path
        try:
            file_display = str(Path(filename).relative_to(Path.cwd()))
        except ValueError:
            file_display = Path(filename).name
        return f"{file_display}:{record['function']}:{record['line']}"
    except Exception:
        return "unknown:unknown:0"


def _format_log_record(record: Dict[str, Any]) -> str:
    """Formatter using raw ANSI codes rather than loguru color tags."""
    timestamp = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    level = record["level"].name

    level_color = LEVEL_COLORS.get(level, "")
    level_colored = f"{level_color}{level:<8}{RESET}" if level_color else f"{level:<8}"

    context = ""
    extra = {k: v for k, v in record["extra"].items() if k != "name"}
    if extra:
        context = " " + " ".join(f"{k}={v}" for k, v in extra.items())

    # loguru formats the returned string again, so braces must be escaped
    message = f"{record['message']}{context}".replace("{", "{{").replace("}", "}}")
    caller = _get_caller_info(record)

    return f"{DIM}{timestamp}{RESET} | {level_colored} | {DIM}{caller}{RESET} - {message}\n{{exception}}"


def configure_logging() -> None:
    """Install the storenode sinks once per process."""
    global _configured
    if _configured:
        return

    logger.remove()
    log_level = os.getenv("LOGGING_LEVEL", "INFO").upper()

    logger.add(
        sys.stdout,
        format=_format_log_record,
        level=log_level,
        colorize=True,
        filter=lambda record: record["level"].no < 30,
    )
    logger.add(
        sys.stderr,
        format=_format_log_record,
        level="WARNING",
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message} {extra}",
            level="DEBUG",
            rotation="100 MB",
            retention="7 days",
            compression="gz",
            catch=True,
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


class CustomLogger:
    """
    Thin wrapper around loguru with a standard-logging style interface.

    Instances are cheap; ``bind`` returns a new wrapper carrying extra
    key/value context that is rendered after the message.
    """

    def __init__(self, name: str, bound=None):
        self.name = name
        self._logger = bound if bound is not None else logger.bind(name=name)
        configure_logging()

    def bind(self, **context: Any) -> "CustomLogger":
        return CustomLogger(self.name, self._logger.bind(**context))

    def debug(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1).debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1).info(message, *args, **kwargs)

    def success(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1).success(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1).warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1).error(message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        self._logger.opt(depth=1, exception=True).error(message, *args, **kwargs)


_logger_cache: Dict[str, CustomLogger] = {}


def get_logger(name: str) -> CustomLogger:
    """
    Return the cached logger for ``name`` (usually ``__name__``).
    """
    if name not in _logger_cache:
        _logger_cache[name] = CustomLogger(name)
    return _logger_cache[name]
