"""
Collaborator protocols consumed by the audit path.

The pipeline never touches storage directly. Records, settings and files
are reached through these narrow interfaces so that any backing store
(a local vault, an in-memory fake in tests) can be plugged in.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from .models import DataField, Settings, TrackedRecord


class FileHandle(Protocol):
    """An existing file."""

    def read(self) -> str:
        """Return the file content. Raises OSError if unreadable."""
        ...

    def write(self, content: str) -> None:
        """Replace the file content."""
        ...


class FileSystem(Protocol):
    """File primitives used by the log store and the reconciler."""

    def get_file(self, path: str) -> FileHandle | None:
        """Return a handle for an existing file, or None."""
        ...

    def create(self, path: str, content: str) -> None:
        """Create a new file with the given content."""
        ...


class RecordApi(Protocol):
    """Record and field mutations against the underlying note store."""

    def create_note(self, record: TrackedRecord, fields: Sequence[DataField], template_path: str) -> None: ...

    def update_record(self, fields: Sequence[DataField], record: TrackedRecord) -> None: ...

    def update_records(self, fields: Sequence[DataField], records: Sequence[TrackedRecord]) -> None: ...

    def delete_record(self, record_id: str) -> None: ...

    def add_field(self, record_ids: Sequence[str], field: DataField, value: Any) -> None: ...

    def rename_field(self, record_ids: Sequence[str], old_name: str, new_name: str) -> None: ...

    def delete_field(self, record_ids: Sequence[str], field: str) -> None: ...


class RecordCache(Protocol):
    """In-memory mirror of the visible records."""

    @property
    def records(self) -> list[TrackedRecord]: ...

    def add_record(self, record: TrackedRecord) -> None: ...

    def update_record(self, record: TrackedRecord) -> None: ...

    def update_records(self, records: Sequence[TrackedRecord]) -> None: ...

    def delete_record(self, record_id: str) -> None: ...

    def add_field(self, field: DataField, position: int | None = None) -> None: ...

    def update_field(self, field: DataField, old_name: str | None = None) -> None: ...

    def delete_field(self, name: str) -> None: ...


class DataSource(Protocol):
    """Decides which record ids belong to the current view."""

    def includes(self, record_id: str) -> bool: ...


class SettingsProvider(Protocol):
    """Read-only settings, sampled at call time."""

    def snapshot(self) -> Settings: ...
