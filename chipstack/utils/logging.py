"""
Logging configuration for the chip-stack counter.

Library modules only ask for a logger; handlers are installed once by the
application entry point (the CLI).

Usage:
    from chipstack.utils.logging import get_logger, setup_logging

    logger = get_logger(__name__)

    # At application start
    setup_logging(level="DEBUG", log_file="/tmp/chipstack.log")

    logger.info("Found %d towers", len(towers))
    logger.debug("Tower %d fell back to default band", idx)
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


class ColoredFormatter(logging.Formatter):
    """Formatter that adds ANSI colours to level names for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so file handlers sharing the record stay uncoloured
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
            )
        return super().format(record)


_loggers: dict[str, logging.Logger] = {}
_initialized = False

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance, cached per name
    """
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    console: bool = True,
    colored: bool = True,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Install handlers on the root logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level name or number
        log_file: Explicit path to a log file
        log_dir: Directory for an auto-named, timestamped log file
        console: Log to stderr
        colored: Colour level names when stderr is a TTY
        format_string: Custom format string

    Returns:
        Root logger instance
    """
    global _initialized

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if format_string is None:
        format_string = DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _initialized:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        if colored and sys.stderr.isatty():
            console_handler.setFormatter(ColoredFormatter(format_string))
        else:
            console_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(console_handler)

    if log_file or log_dir:
        if log_file:
            log_path = Path(log_file)
        else:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = Path(log_dir) / f"chipstack_{timestamp}.log"

        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode='a')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(file_handler)

        root_logger.info("Logging to file: %s", log_path)

    _initialized = True
    return root_logger


def log_parameters(logger: logging.Logger, params: dict, title: str = "Parameters") -> None:
    """
    Log a (possibly nested) parameter dictionary, one key per line.

    Args:
        logger: Logger instance
        params: Parameters to log; nested dicts are indented one level
        title: Heading for the block
    """
    logger.debug("%s", "=" * 50)
    logger.debug("%s", title)
    logger.debug("%s", "=" * 50)
    for key, value in params.items():
        if isinstance(value, dict):
            logger.debug("  %s:", key)
            for sub_key, sub_value in value.items():
                logger.debug("    %s: %s", sub_key, sub_value)
        elif isinstance(value, (list, tuple)) and len(value) > 5:
            logger.debug("  %s: [%d items]", key, len(value))
        else:
            logger.debug("  %s: %s", key, value)
    logger.debug("%s", "=" * 50)


def format_duration(duration_seconds: float) -> str:
    """Human-readable duration; analysis calls are usually well under a second."""
    if duration_seconds >= 60:
        return f"{duration_seconds / 60:.1f} minutes"
    if duration_seconds >= 1:
        return f"{duration_seconds:.2f} seconds"
    return f"{duration_seconds * 1000:.0f} ms"


class ProcessingTimer:
    """Context manager that logs how long an operation took."""

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None
        self.duration: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, "Starting: %s", self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        if exc_type is not None:
            self.logger.error(
                "Failed: %s after %s - %s", self.operation, format_duration(self.duration), exc_val
            )
        else:
            self.logger.log(
                self.level, "Completed: %s in %s", self.operation, format_duration(self.duration)
            )
        return False
