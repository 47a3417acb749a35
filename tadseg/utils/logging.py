"""
Logging configuration for the tadpole segmentation package.

Usage:
    from tadseg.utils.logging import get_logger, setup_logging

    logger = get_logger(__name__)

    # Once, at application start (the CLI does this for you)
    setup_logging(level="INFO", log_file="/path/to/run.log")

    logger.info("Segmented %s: %d regions", name, count)
    logger.debug("Otsu threshold: %.4f", threshold)
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


_loggers: Dict[str, logging.Logger] = {}
_initialized = False


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
    Configure the root logger.

    Calling this again replaces the handlers installed by the previous call.

    Args:
        level: Logging level name or number
        log_file: Explicit path to a log file
        log_dir: Directory for an auto-named, timestamped log file
        console: Whether to log to stdout
        colored: Whether to color level names when stdout is a TTY
        format_string: Custom format string (default DEFAULT_FORMAT)

    Returns:
        The root logger
    """
    global _initialized

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    format_string = format_string or DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _initialized:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if colored and sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(format_string))
        else:
            console_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(console_handler)

    if log_file or log_dir:
        if log_file:
            log_path = Path(log_file)
        else:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = Path(log_dir) / f"tadseg_{timestamp}.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, mode='a')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(file_handler)

        root_logger.info("Logging to file: %s", log_path)

    _initialized = True
    return root_logger


def log_parameters(logger: logging.Logger, params: Dict[str, Any], title: str = "Parameters") -> None:
    """
    Log a dictionary of parameters as an aligned block.

    Args:
        logger: Logger instance
        params: Parameters to log
        title: Heading for the block
    """
    width = max((len(str(key)) for key in params), default=0)
    logger.info("=" * 50)
    logger.info(title)
    logger.info("=" * 50)
    for key, value in params.items():
        logger.info("  %s: %s", str(key).ljust(width), value)
    logger.info("=" * 50)


def format_duration(duration_seconds: float) -> str:
    """Human readable duration (seconds, minutes or hours)."""
    if duration_seconds >= 3600:
        return f"{duration_seconds / 3600:.1f} hours"
    if duration_seconds >= 60:
        return f"{duration_seconds / 60:.1f} minutes"
    return f"{duration_seconds:.2f} seconds"


class ProcessingTimer:
    """
    Context manager that logs the start, end and duration of an operation.

    The elapsed time is available as ``duration`` after the block exits.
    Exceptions are logged and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
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
                "Failed: %s after %s - %s",
                self.operation, format_duration(self.duration), exc_val,
            )
        else:
            self.logger.log(
                self.level, "Completed: %s in %s",
                self.operation, format_duration(self.duration),
            )
        return False
