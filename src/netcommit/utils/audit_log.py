"""Audit logging for committed configuration changes.

Every resource operation that reaches the device is recorded as one JSON
line on the ``netcommit.audit`` logger: the statements sent, the commit
warnings, and the before/after trees where known.
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("netcommit.audit")

DEFAULT_AUDIT_DIR = "~/.netcommit"


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.netcommit/
    """
    if log_dir is None:
        log_dir = os.path.expanduser(DEFAULT_AUDIT_DIR)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """Record of a configuration transaction."""
    timestamp: str
    device_id: str
    operation: str  # create, update, delete, load
    resource: str
    success: bool
    keys: dict
    statements: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    before_state: Optional[dict] = None
    after_state: Optional[dict] = None
    commit_message: str = ""
    error: Optional[str] = None
    dry_run: bool = False

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log configuration transactions for one device."""

    def __init__(self, device_id: str):
        self.device_id = device_id

    def log_change(
        self,
        operation: str,
        resource: str,
        keys: dict,
        success: bool,
        statements: Optional[list[str]] = None,
        warnings: Optional[list[str]] = None,
        error: Optional[str] = None,
        commit_message: str = "",
        dry_run: bool = False,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
    ) -> ChangeRecord:
        """Log a configuration transaction.

        Args:
            operation: The operation performed (e.g., "create")
            resource: Resource type name
            keys: Identifying fields of the resource
            success: Whether the commit succeeded
            statements: Statement texts sent to the candidate
            warnings: Commit and cleanup warnings
            error: Error message if failed
            commit_message: Log message attached to the commit
            dry_run: Whether statements only went to a set file
            before_state: Tree before the change
            after_state: Tree after the change

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            operation=operation,
            resource=resource,
            success=success,
            keys=keys,
            statements=list(statements or [])[:500],
            warnings=list(warnings or []),
            before_state=before_state,
            after_state=after_state,
            commit_message=commit_message,
            error=error,
            dry_run=dry_run,
        )
        audit_logger.info(record.to_json())
        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.netcommit/audit.log
        device_id: Filter by device ID
        operation: Filter by operation type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # malformed line

            if device_id and record.device_id != device_id:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
