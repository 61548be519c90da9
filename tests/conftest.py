"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from statuslog.config import StaticSettings
from statuslog.models import Preferences, Settings, TrackedRecord
from statuslog.pipeline import ChangePipeline
from statuslog.vault import FolderDataSource, RecordFrame

FIXED_NOW = datetime(2024, 5, 1, 14, 3, 22)


class MemoryFile:
    def __init__(self, fs: "MemoryFileSystem", path: str):
        self.fs = fs
        self.path = path

    def read(self) -> str:
        if self.path in self.fs.unreadable:
            raise OSError(f"cannot read {self.path}")
        return self.fs.files[self.path]

    def write(self, content: str) -> None:
        if self.fs.fail_writes:
            raise OSError("disk full")
        self.fs.files[self.path] = content
        self.fs.writes.append(self.path)


class MemoryFileSystem:
    """In-memory FileSystem with failure injection."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = dict(files or {})
        self.unreadable: set[str] = set()
        self.fail_writes = False
        self.writes: list[str] = []

    def get_file(self, path: str) -> MemoryFile | None:
        if path not in self.files:
            return None
        return MemoryFile(self, path)

    def create(self, path: str, content: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        if path in self.files:
            raise FileExistsError(path)
        self.files[path] = content
        self.writes.append(path)


class RecordingApi:
    """RecordApi that records every call."""

    def __init__(self):
        self.calls: list[tuple] = []

    def create_note(self, record, fields, template_path):
        self.calls.append(("create_note", record.id, template_path))

    def update_record(self, fields, record):
        self.calls.append(("update_record", record.id, dict(record.values)))

    def update_records(self, fields, records):
        self.calls.append(("update_records", [r.id for r in records]))

    def delete_record(self, record_id):
        self.calls.append(("delete_record", record_id))

    def add_field(self, record_ids, field, value):
        self.calls.append(("add_field", list(record_ids), field.name, value))

    def rename_field(self, record_ids, old_name, new_name):
        self.calls.append(("rename_field", list(record_ids), old_name, new_name))

    def delete_field(self, record_ids, field):
        self.calls.append(("delete_field", list(record_ids), field))


def _build_pipeline(
    records: list[TrackedRecord],
    fs: MemoryFileSystem,
    api: RecordingApi,
    *,
    enabled: bool = True,
    log_path: str = "",
) -> ChangePipeline:
    settings = Settings(preferences=Preferences(enable_state_tracking=enabled, log_path=log_path))
    return ChangePipeline(
        data_source=FolderDataSource(),
        record_api=api,
        cache=RecordFrame(records),
        file_system=fs,
        settings=StaticSettings(settings),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def recording_api() -> RecordingApi:
    return RecordingApi()


@pytest.fixture
def make_pipeline(memory_fs: MemoryFileSystem, recording_api: RecordingApi):
    """Factory for pipelines over the shared in-memory file system and API."""

    def _make(records: list[TrackedRecord], *, enabled: bool = True, log_path: str = "") -> ChangePipeline:
        return _build_pipeline(records, memory_fs, recording_api, enabled=enabled, log_path=log_path)

    return _make


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """A small vault with notes in various states."""
    root = tmp_path / "vault"
    (root / "projects").mkdir(parents=True)
    (root / ".obsidian").mkdir()

    (root / "projects" / "alpha.md").write_text(
        "---\nstatus: todo\n---\n\n# Alpha\n", encoding="utf-8"
    )
    (root / "projects" / "beta.md").write_text(
        "---\nstatus: review\npriority: 2\n---\n\nBeta body\n", encoding="utf-8"
    )
    (root / "gamma.md").write_text("# Gamma\n\nNo frontmatter here.\n", encoding="utf-8")
    (root / ".obsidian" / "hidden.md").write_text("---\nstatus: x\n---\n", encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("STATUSLOG_LOG_PATH", raising=False)
