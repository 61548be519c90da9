"""Data models for tracked records, log entries and settings."""

from dataclasses import dataclass, field
from typing import Any

STATUS_FIELD = "status"


@dataclass
class TrackedRecord:
    """A record owned by the record store.

    Only `id` and the status value are read by the audit path.
    """

    id: str  # path-like, e.g. "projects/alpha.md"
    values: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> Any:
        return self.values.get(STATUS_FIELD)


@dataclass(frozen=True)
class LogEntry:
    """One line of the project log. Never edited once written."""

    record_name: str
    date: str  # YYYY-MM-DD
    time: str = ""  # HH:MM:SS, empty for backfilled entries
    old_status: Any = None
    new_status: Any = None
    backfill: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    """A detected status transition for a single record."""

    record_id: str
    old_status: Any
    new_status: Any


@dataclass
class DataField:
    """A named column of the record set."""

    name: str
    type: str = "string"


@dataclass
class Preferences:
    """User preferences that control status tracking."""

    enable_state_tracking: bool = True
    log_path: str = ""


@dataclass
class Settings:
    """Settings snapshot read at call time."""

    preferences: Preferences = field(default_factory=Preferences)


@dataclass
class AuditOutcome:
    """Result of one pass through the audit path.

    Failures are captured here instead of raised, so the primary
    record mutation never depends on the audit log.
    """

    changes: list[ChangeEvent] = field(default_factory=list)
    entries_written: int = 0
    backfilled: int = 0
    reconciled: bool = False
    success: bool = True
    error: str | None = None

    def summary(self) -> str:
        if not self.success:
            return f"audit failed: {self.error}"
        parts = [f"{len(self.changes)} change(s)", f"{self.entries_written} entry(ies) written"]
        if self.reconciled:
            parts.append(f"{self.backfilled} backfilled")
        return ", ".join(parts)
