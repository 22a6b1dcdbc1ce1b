"""Logging, performance timing and audit helpers."""
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)
from .audit_log import (
    ChangeRecord,
    ChangeTracker,
    setup_audit_logging,
    get_recent_changes,
)

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "ChangeRecord",
    "ChangeTracker",
    "setup_audit_logging",
    "get_recent_changes",
]
