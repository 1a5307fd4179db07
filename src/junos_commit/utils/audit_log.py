"""Audit logging for configuration transactions.

One JSON line per lock/commit/clear outcome, written through the dedicated
`junos_commit.audit` logger. Clear failures that are never raised to the
caller end up here, so they stay observable after the fact.
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("junos_commit.audit")

DEFAULT_AUDIT_DIR = "~/.junos-commit"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.junos-commit/

    Returns:
        Path of the audit log file
    """
    log_dir = os.path.expanduser(log_dir or DEFAULT_AUDIT_DIR)
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # JSON lines only
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """Record of one transaction step."""
    timestamp: str
    device_id: str
    operation: str  # lock, commit, clear, create, update, delete
    dry_run: bool
    success: bool
    comment: str = ""
    lines: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        data = json.loads(json_str)
        return cls(**data)


class AuditTrail:
    """Write and keep audit records for one device."""

    def __init__(self, device_id: str, keep: int = 100):
        self.device_id = device_id
        self._keep = keep
        self._records: list[ChangeRecord] = []

    @property
    def records(self) -> list[ChangeRecord]:
        return list(self._records)

    def log(
        self,
        operation: str,
        success: bool,
        comment: str = "",
        lines: Optional[list[str]] = None,
        warnings: Optional[list] = None,
        error: Optional[str] = None,
        dry_run: bool = False,
    ) -> ChangeRecord:
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            operation=operation,
            dry_run=dry_run,
            success=success,
            comment=comment,
            lines=list(lines or []),
            warnings=[str(w) for w in (warnings or [])],
            error=error,
        )
        audit_logger.info(record.to_json())
        self._records.append(record)
        if len(self._records) > self._keep:
            del self._records[: len(self._records) - self._keep]
        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log, most recent first."""
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

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

            if device_id and record.device_id != device_id:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
