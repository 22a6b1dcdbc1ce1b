"""Logging configuration for confdb.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing for backend operations

Environment Variables:
    CONFDB_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    CONFDB_LOG_FILE: Path to log file (default: ~/.confdb/confdb.log)
    CONFDB_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    CONFDB_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from confdb.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("backend.get")
    def get(self, path):
        ...

    # Or use the context manager for sections:
    with timed_section("revert", target="config.yaml"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("confdb.perf")
main_logger = logging.getLogger("confdb")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("CONFDB_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".confdb" / "confdb.log"
    path_str = os.environ.get("CONFDB_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects CONFDB_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Calling it again replaces the handlers installed by the previous call.
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("CONFDB_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("CONFDB_LOG_BACKUPS", "5"))

    # Create log directory if needed
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Main format: timestamp - logger - level - message
    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-28s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Performance format: focused on timing
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler - respects configured level
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    # File handler - captures DEBUG and above (everything)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    # Performance file handler - separate file for easy analysis
    perf_log_file = log_file.parent / "confdb-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    # Configure root confdb logger
    for handler in main_logger.handlers[:]:
        main_logger.removeHandler(handler)
        handler.close()
    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Performance records stay out of the main log
    for handler in perf_logger.handlers[:]:
        perf_logger.removeHandler(handler)
        handler.close()
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    perf_logger.addHandler(perf_handler)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _format_perf(operation: str, target: Optional[str], elapsed: float, outcome: str) -> str:
    return f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"


def timed(operation: str, target: Optional[str] = None):
    """Decorator to log execution time of a function.

    Args:
        operation: Name of the operation (e.g., "backend.get", "backend.set")
        target: Optional target label (can also be inferred from self.label)

    Usage:
        @timed("backend.set")
        def set(self, path, values):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            # Try to get the target from self if not provided
            label = target
            if label is None and args and hasattr(args[0], "label"):
                label = args[0].label

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                outcome = "FAIL" if result is False else "OK"
                perf_logger.info(_format_perf(operation, label, elapsed, outcome))
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_format_perf(operation, label, elapsed, f"FAIL: {e}"))
                raise

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, target: Optional[str] = None, **extra):
    """Context manager for timing code sections.

    Args:
        operation: Name of the operation
        target: Target label (document name, model id)
        **extra: Additional context to log
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = _format_perf(operation, target, elapsed, "OK")
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = _format_perf(operation, target, elapsed, f"FAIL: {e}")
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
