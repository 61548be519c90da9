"""
Local vault implementations of the collaborator protocols.

A vault is a directory of markdown notes. Each note is a record whose
values are its YAML frontmatter; the record id is the note's path
relative to the vault root, with forward slashes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import frontmatter

from .log.store import LOG_FILE_NAME
from .models import DataField, TrackedRecord

logger = logging.getLogger(__name__)


class LocalFile:
    """File handle for a path on disk."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def write(self, content: str) -> None:
        self.path.write_text(content, encoding="utf-8")


class LocalFileSystem:
    """FileSystem rooted at a vault directory."""

    def __init__(self, root: Path):
        self.root = root

    def resolve(self, path: str) -> Path:
        return self.root / path

    def get_file(self, path: str) -> LocalFile | None:
        full = self.resolve(path)
        if not full.is_file():
            return None
        return LocalFile(full)

    def create(self, path: str, content: str) -> None:
        full = self.resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        with full.open("x", encoding="utf-8") as f:
            f.write(content)


def record_id_for(path: Path, vault_path: Path) -> str:
    """Vault-relative id of a note path."""
    return path.relative_to(vault_path).as_posix()


def load_record(path: Path, vault_path: Path) -> TrackedRecord:
    """Load a single note as a record."""
    post = frontmatter.load(path)
    return TrackedRecord(id=record_id_for(path, vault_path), values=dict(post.metadata))


def load_records(vault_path: Path) -> list[TrackedRecord]:
    """Load every note of the vault, sorted by id.

    Hidden files and directories and project log files are skipped.
    """
    records = []
    for md_file in sorted(vault_path.rglob("*.md")):
        rel_parts = md_file.relative_to(vault_path).parts
        if any(part.startswith(".") for part in rel_parts):
            continue
        if md_file.name == LOG_FILE_NAME:
            continue
        try:
            records.append(load_record(md_file, vault_path))
        except Exception as e:
            logger.warning(f"Failed to load {md_file}: {e}")
    return records


def _write_post(path: Path, post: frontmatter.Post) -> None:
    text = frontmatter.dumps(post)
    if not text.endswith("\n"):
        text += "\n"
    path.write_text(text, encoding="utf-8")


class VaultRecordApi:
    """RecordApi that stores record values in note frontmatter."""

    def __init__(self, vault_path: Path):
        self.vault_path = vault_path

    def _path(self, record_id: str) -> Path:
        return self.vault_path / record_id

    def _edit(self, record_id: str, fn) -> None:
        path = self._path(record_id)
        post = frontmatter.load(path)
        fn(post.metadata)
        _write_post(path, post)

    def create_note(self, record: TrackedRecord, fields: Sequence[DataField], template_path: str) -> None:
        path = self._path(record.id)
        if path.exists():
            raise FileExistsError(f"Note already exists: {record.id}")

        if template_path:
            post = frontmatter.load(self.vault_path / template_path)
        else:
            post = frontmatter.Post("")

        for field in fields:
            value = record.values.get(field.name)
            if value is not None:
                post.metadata[field.name] = value

        path.parent.mkdir(parents=True, exist_ok=True)
        _write_post(path, post)

    def update_record(self, fields: Sequence[DataField], record: TrackedRecord) -> None:
        def apply(metadata: dict) -> None:
            for field in fields:
                value = record.values.get(field.name)
                if value is None:
                    metadata.pop(field.name, None)
                else:
                    metadata[field.name] = value

        self._edit(record.id, apply)

    def update_records(self, fields: Sequence[DataField], records: Sequence[TrackedRecord]) -> None:
        for record in records:
            self.update_record(fields, record)

    def delete_record(self, record_id: str) -> None:
        self._path(record_id).unlink()

    def add_field(self, record_ids: Sequence[str], field: DataField, value: Any) -> None:
        for record_id in record_ids:
            self._edit(record_id, lambda metadata: metadata.setdefault(field.name, value))

    def rename_field(self, record_ids: Sequence[str], old_name: str, new_name: str) -> None:
        def apply(metadata: dict) -> None:
            if old_name in metadata:
                metadata[new_name] = metadata.pop(old_name)

        for record_id in record_ids:
            self._edit(record_id, apply)

    def delete_field(self, record_ids: Sequence[str], field: str) -> None:
        for record_id in record_ids:
            self._edit(record_id, lambda metadata: metadata.pop(field, None))


class RecordFrame:
    """In-memory record cache mirroring the records of the current view."""

    def __init__(self, records: list[TrackedRecord] | None = None, fields: list[DataField] | None = None):
        self._records: list[TrackedRecord] = list(records or [])
        self.fields: list[DataField] = list(fields or [])

    @property
    def records(self) -> list[TrackedRecord]:
        return self._records

    def _index(self, record_id: str) -> int | None:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        return None

    def add_record(self, record: TrackedRecord) -> None:
        self._records.append(record)

    def update_record(self, record: TrackedRecord) -> None:
        i = self._index(record.id)
        if i is None:
            self._records.append(record)
        else:
            self._records[i] = record

    def update_records(self, records: Sequence[TrackedRecord]) -> None:
        for record in records:
            self.update_record(record)

    def delete_record(self, record_id: str) -> None:
        self._records = [r for r in self._records if r.id != record_id]

    def add_field(self, field: DataField, position: int | None = None) -> None:
        if position is None:
            self.fields.append(field)
        else:
            self.fields.insert(position, field)

    def update_field(self, field: DataField, old_name: str | None = None) -> None:
        name = old_name or field.name
        for i, existing in enumerate(self.fields):
            if existing.name == name:
                self.fields[i] = field
                break
        if old_name and old_name != field.name:
            for record in self._records:
                if old_name in record.values:
                    record.values[field.name] = record.values.pop(old_name)

    def delete_field(self, name: str) -> None:
        self.fields = [f for f in self.fields if f.name != name]
        for record in self._records:
            record.values.pop(name, None)


class FolderDataSource:
    """Data source covering every note under a folder (or the whole vault)."""

    def __init__(self, folder: str = ""):
        self.folder = folder.strip("/")

    def includes(self, record_id: str) -> bool:
        if not self.folder:
            return True
        return record_id.startswith(self.folder + "/")


def open_pipeline(vault_path: Path, config_path: Path | None = None, folder: str = ""):
    """Build a change pipeline over a local vault."""
    from .config import FileSettings
    from .pipeline import ChangePipeline

    data_source = FolderDataSource(folder)
    records = [r for r in load_records(vault_path) if data_source.includes(r.id)]
    return ChangePipeline(
        data_source=data_source,
        record_api=VaultRecordApi(vault_path),
        cache=RecordFrame(records),
        file_system=LocalFileSystem(vault_path),
        settings=FileSettings(vault_path, config_path),
    )
