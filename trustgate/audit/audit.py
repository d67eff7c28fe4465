"""Audit logging for trust decisions and hook verdicts."""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Types of auditable actions."""
    DIRECTORY_ADD = "directory_add"
    DIRECTORY_REJECT = "directory_reject"
    TRUST_UPDATE = "trust_update"
    CONFIRMATION_RESOLVED = "confirmation_resolved"
    HOOK_FIRED = "hook_fired"
    HOOK_FAILED = "hook_failed"


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    action: str
    subject: Optional[str] = None
    correlation_id: Optional[str] = None
    details: dict = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def default_audit_path() -> Path:
    return Path.home() / ".local" / "share" / "trustgate" / "audit.jsonl"


class AuditLog:
    """Appends audit entries to a JSONL file and keeps the latest in memory."""

    def __init__(self, log_path: Optional[Path] = None, enabled: bool = True, max_memory_entries: int = 1000):
        self.enabled = enabled
        self.log_path = Path(log_path) if log_path else default_audit_path()
        self._entries: list[AuditEntry] = []
        self._max_memory_entries = max_memory_entries

    def log(
        self,
        action: AuditAction,
        subject: Optional[str] = None,
        correlation_id: Optional[str] = None,
        details: Optional[dict] = None,
        success: bool = True,
        error: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> AuditEntry:
        """Log an audit entry."""
        entry = AuditEntry(
            timestamp=datetime.now().isoformat(),
            action=action.value,
            subject=subject,
            correlation_id=correlation_id,
            details=details or {},
            success=success,
            error=error,
            duration_ms=duration_ms,
        )

        if not self.enabled:
            return entry

        self._entries.append(entry)
        if len(self._entries) > self._max_memory_entries:
            self._entries = self._entries[-self._max_memory_entries:]

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(entry.to_json() + "\n")
        except OSError as e:
            logger.warning(f"Failed to write audit log: {e}")

        return entry

    def log_directory(self, path: str, added: bool, reason: Optional[str] = None) -> AuditEntry:
        """Log a directory being added to or kept out of the workspace."""
        return self.log(
            action=AuditAction.DIRECTORY_ADD if added else AuditAction.DIRECTORY_REJECT,
            subject=path,
            success=added,
            error=None if added else reason,
        )

    def log_trust_update(self, path: str, level: Optional[str]) -> AuditEntry:
        return self.log(
            action=AuditAction.TRUST_UPDATE,
            subject=path,
            details={"level": level or "unset"},
        )

    def log_confirmation(self, confirmation_id: str, choice: str, paths: list[str]) -> AuditEntry:
        return self.log(
            action=AuditAction.CONFIRMATION_RESOLVED,
            subject=confirmation_id,
            details={"choice": choice, "paths": paths},
        )

    def log_hook(
        self,
        event_name: str,
        correlation_id: str,
        blocked: bool = False,
        reason: Optional[str] = None,
        error: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> AuditEntry:
        """Log a hook verdict, or a failed hook call when ``error`` is set."""
        details = {"blocked": blocked}
        if reason:
            # Reasons come from external processes; keep entries small
            details["reason"] = reason[:500]
        return self.log(
            action=AuditAction.HOOK_FAILED if error else AuditAction.HOOK_FIRED,
            subject=event_name,
            correlation_id=correlation_id,
            details=details,
            success=error is None,
            error=error,
            duration_ms=duration_ms,
        )

    def get_recent(self, count: int = 50, action: Optional[AuditAction] = None) -> list[AuditEntry]:
        """Get recent audit entries from memory."""
        entries = self._entries
        if action:
            entries = [e for e in entries if e.action == action.value]
        return entries[-count:]

    def load_recent(self, count: int = 50) -> list[AuditEntry]:
        """Read the last ``count`` entries back from the log file."""
        if not self.log_path.exists():
            return []
        entries = []
        for line in self.log_path.read_text().splitlines()[-count:]:
            try:
                entries.append(AuditEntry(**json.loads(line)))
            except (ValueError, TypeError):
                logger.debug(f"Skipping malformed audit line: {line[:80]}")
        return entries

    def format_for_display(self, entries: list[AuditEntry], verbose: bool = False) -> str:
        """Format audit entries for terminal display."""
        lines = []
        for entry in entries:
            time_str = entry.timestamp.split("T")[1].split(".")[0]  # HH:MM:SS
            status = "✓" if entry.success else "✗"

            if entry.subject:
                line = f"{time_str} {status} {entry.action} {entry.subject}"
            else:
                line = f"{time_str} {status} {entry.action}"

            if verbose and entry.details:
                detail_str = ", ".join(f"{k}={v}" for k, v in list(entry.details.items())[:3])
                if len(detail_str) > 60:
                    detail_str = detail_str[:57] + "..."
                line += f" ({detail_str})"

            if entry.error:
                line += f" ERROR: {entry.error[:30]}"

            lines.append(line)

        return "\n".join(lines)

    def get_stats(self, entries: Optional[list[AuditEntry]] = None) -> dict:
        """Get statistics about logged actions."""
        entries = self._entries if entries is None else entries

        stats = {
            "total_entries": len(entries),
            "successful": sum(1 for e in entries if e.success),
            "failed": sum(1 for e in entries if not e.success),
            "by_action": {},
        }

        for entry in entries:
            stats["by_action"][entry.action] = stats["by_action"].get(entry.action, 0) + 1

        return stats

    def clear_memory(self):
        """Clear in-memory entries (file remains)."""
        self._entries = []
