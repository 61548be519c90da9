"""
Project log storage.

The log lives at `<log_path>/project-log.md` (or `project-log.md` at the
vault root) and is only ever appended to. Appends are a read-modify-write
through the FileSystem collaborator, serialized per log path within the
process. There is no cross-process locking: concurrent writers from other
processes can lose entries (last write wins).
"""

from __future__ import annotations

import logging
import threading

from ..interfaces import FileSystem

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "project-log.md"

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def resolve_log_path(log_path: str) -> str:
    """Return the log file path for the configured log directory."""
    if log_path:
        return f"{log_path}/{LOG_FILE_NAME}"
    return LOG_FILE_NAME


def _lock_for(path: str) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(path)
        if lock is None:
            lock = _locks[path] = threading.Lock()
        return lock


class LogStore:
    """Append-only accessor for one project log file."""

    def __init__(self, file_system: FileSystem, log_path: str = ""):
        self.file_system = file_system
        self.path = resolve_log_path(log_path)

    def read_all(self) -> str:
        """Return the log content, or "" if it is missing or unreadable."""
        handle = self.file_system.get_file(self.path)
        if handle is None:
            return ""
        try:
            return handle.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {self.path}, treating as empty: {e}")
            return ""

    def append_or_create(self, text: str) -> None:
        """Append text to the log, creating the file on first write.

        Write errors propagate; callers on the audit path catch them.
        """
        if not text:
            return
        with _lock_for(self.path):
            handle = self.file_system.get_file(self.path)
            current = ""
            if handle is not None:
                try:
                    current = handle.read()
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Could not read {self.path}, starting from empty content: {e}")
            if handle is not None:
                handle.write(current + text)
            else:
                self.file_system.create(self.path, current + text)
        lines = text.count("\n")
        logger.debug(f"Appended {lines} line(s) to {self.path}")
