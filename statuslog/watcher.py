"""
File system watcher that audits status edits made outside the CLI.

When a note is saved with a different frontmatter `status`, the change is
fed through the change pipeline with the last known version of the note
as the existing snapshot. Rapid saves are debounced.

Watchdog delivers events on its observer thread while the watch loop
flushes on the main thread; `pending` and the record cache are only
touched while holding the handler's lock.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .detector import detect_in_snapshot
from .log.codec import format_status, iter_lines, parse_line, record_name
from .log.store import LOG_FILE_NAME, LogStore
from .models import AuditOutcome, TrackedRecord
from .pipeline import ChangePipeline
from .vault import load_record, record_id_for

logger = logging.getLogger(__name__)


class StatusWatchHandler(FileSystemEventHandler):
    """
    Tracks note edits and logs status transitions.

    Key behaviors:
    - Only non-hidden `.md` notes are considered; project logs are ignored
    - Modifications are debounced per path
    - The pipeline's record cache is kept in step with the disk
    - A status already written to the log by another writer (e.g. the
      `set-status` command) is not logged a second time
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(
        self,
        vault_path: Path,
        pipeline: ChangePipeline,
        on_event: Callable[[str], None] | None = None,
    ):
        super().__init__()
        self.vault_path = vault_path
        self.pipeline = pipeline
        self.on_event = on_event

        # path -> time of the last modification seen
        self.pending: dict[str, float] = {}
        self._lock = threading.Lock()

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        try:
            rel = p.relative_to(self.vault_path)
        except ValueError:
            return False
        if any(part.startswith(".") for part in rel.parts):
            return False
        return p.suffix.lower() == ".md" and p.name != LOG_FILE_NAME

    def _notify(self, message: str) -> None:
        logger.info(message)
        if self.on_event:
            self.on_event(message)

    def _already_logged(self, record: TrackedRecord) -> bool:
        """Whether the latest log line for this note already ends in its status."""
        try:
            settings = self.pipeline.settings.snapshot()
        except Exception as e:
            logger.warning(f"Could not read settings: {e}")
            return False

        content = LogStore(self.pipeline.file_system, settings.preferences.log_path).read_all()
        name = record_name(record.id)
        last = None
        for line in iter_lines(content):
            result = parse_line(line)
            if result.ok and result.entry.record_name == name:
                last = result.entry

        if last is None:
            return False
        return format_status(last.new_status) == format_status(record.status)

    def audit(self, path: Path) -> AuditOutcome | None:
        """Load a note from disk and audit it against the cache."""
        try:
            record = load_record(path, self.vault_path)
        except Exception as e:
            logger.warning(f"Failed to load {path}: {e}")
            return None

        with self._lock:
            cache = self.pipeline.cache
            snapshot = list(cache.records)
            if detect_in_snapshot(snapshot, record) is not None and self._already_logged(record):
                logger.debug(f"Status of {record.id} already logged, refreshing cache only")
                cache.update_record(record)
                return AuditOutcome()

            outcome = self.pipeline.on_single_update(snapshot, record)
            cache.update_record(record)

        for change in outcome.changes:
            self._notify(f"~ {change.record_id}: {change.old_status} -> {change.new_status}")
        if outcome.backfilled:
            self._notify(f"+ backfilled {outcome.backfilled} record(s)")
        if not outcome.success:
            self._notify(f"! {outcome.error}")
        return outcome

    def flush_pending(self) -> None:
        """Audit notes whose debounce window has passed."""
        now = time.time()
        with self._lock:
            ready = [p for p, ts in list(self.pending.items()) if now - ts >= self.DEBOUNCE_SECONDS]
            for path_str in ready:
                del self.pending[path_str]

        for path_str in ready:
            path = Path(path_str)
            if path.exists():
                self.audit(path)

    def _track(self, path: Path) -> bool:
        try:
            record = load_record(path, self.vault_path)
        except Exception as e:
            logger.warning(f"Failed to load {path}: {e}")
            return False
        with self._lock:
            self.pipeline.cache.update_record(record)
        return True

    def _forget(self, path_str: str) -> str:
        record_id = record_id_for(Path(path_str), self.vault_path)
        with self._lock:
            self.pending.pop(path_str, None)
            self.pipeline.cache.delete_record(record_id)
        return record_id

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        path = Path(event.src_path)
        if self._track(path):
            self._notify(f"+ {record_id_for(path, self.vault_path)}")

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        with self._lock:
            self.pending[event.src_path] = time.time()

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if event.is_directory or not self._is_relevant(event.src_path):
            return
        record_id = self._forget(event.src_path)
        self._notify(f"- {record_id}")

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        if self._is_relevant(event.src_path):
            self._forget(event.src_path)
        if self._is_relevant(event.dest_path):
            path = Path(event.dest_path)
            if self._track(path):
                self._notify(f"> {record_id_for(path, self.vault_path)}")


def run_watch_loop(
    vault_path: Path,
    pipeline: ChangePipeline,
    on_event: Callable[[str], None] | None = None,
) -> None:
    """Watch the vault until interrupted."""
    handler = StatusWatchHandler(vault_path, pipeline, on_event=on_event)

    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=True)
    observer.start()

    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
