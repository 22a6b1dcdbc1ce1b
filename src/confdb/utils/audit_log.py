"""Audit logging for configuration database changes.

Provides change tracking with:
- Timestamped entries for every mutation (set, delete, revert, ...)
- Before/after object state
- Structured JSON log format
- Separate audit log file
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

# Create dedicated audit logger
audit_logger = logging.getLogger("confdb.audit")

AUDIT_LOG_NAME = "audit.log"


def setup_audit_logging(log_dir: Optional[Union[str, Path]] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.confdb/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.path.expanduser("~/.confdb")

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    audit_file = Path(log_dir) / AUDIT_LOG_NAME

    # Configure audit logger
    audit_logger.setLevel(logging.INFO)

    # Remove existing handlers
    for handler in audit_logger.handlers[:]:
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )

    # Use JSON format for machine-readability
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to the main confdb log
    audit_logger.propagate = False

    return audit_file


@dataclass
class ChangeRecord:
    """Record of a configuration database change."""
    timestamp: str
    operation: str  # insert, replace, delete, revert, unlink_revisions, ...
    model_id: Optional[str]
    path: Optional[str]
    user: str
    success: bool
    before_state: Optional[Any] = None
    after_state: Optional[Any] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log database changes."""

    def __init__(self, user: str = "system"):
        self.user = user

    def log_change(
        self,
        operation: str,
        success: bool,
        model_id: Optional[str] = None,
        path: Optional[str] = None,
        error: Optional[str] = None,
        before_state: Optional[Any] = None,
        after_state: Optional[Any] = None,
    ) -> ChangeRecord:
        """Log a database change.

        Args:
            operation: The operation performed (e.g., "insert", "delete")
            success: Whether the operation succeeded
            model_id: Model of the affected object
            path: Path expression the backend was called with
            error: Error message if failed
            before_state: Object state before the change
            after_state: Object state after the change

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            model_id=model_id,
            path=path,
            user=self.user,
            success=success,
            before_state=before_state,
            after_state=after_state,
            error=error,
        )

        # Write to audit log
        audit_logger.info(record.to_json())

        return record


def get_recent_changes(
    log_file: Optional[Union[str, Path]] = None,
    model_id: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.confdb/audit.log
        model_id: Filter by model id
        operation: Filter by operation type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.expanduser(f"~/.confdb/{AUDIT_LOG_NAME}")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            # Apply filters
            if model_id and record.model_id != model_id:
                continue
            if operation and record.operation != operation:
                continue

            records.append(record)

    # Return most recent first, limited
    return list(reversed(records[-limit:]))
