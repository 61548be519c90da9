"""
Reconciliation of the project log against the full record set.

Any record whose name never appears in the log gets a backfill line with
its initial status taken from the note's frontmatter. Running this twice
without intervening changes writes nothing the second time, since the
first run indexes every name.

Known limitation: backfills carry the reconciliation date, not the note's
creation date.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterable, Sequence

from frontmatter.default_handlers import YAMLHandler

from .interfaces import FileSystem
from .log.codec import decode_name, encode, iter_lines, record_name
from .log.store import LogStore
from .models import LogEntry, TrackedRecord

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "backlog"

STATUS_KEY_PATTERN = re.compile(r"^status:\s*(.+)$", re.MULTILINE)

_yaml = YAMLHandler()


def indexed_names(log_content: str) -> set[str]:
    """Collect the record names already present in the log."""
    names = set()
    for line in iter_lines(log_content):
        name = decode_name(line)
        if name is not None:
            names.add(name)
    return names


def find_missing(records: Iterable[TrackedRecord], log_content: str) -> list[TrackedRecord]:
    """Return records with no line in the log, in input order."""
    seen = indexed_names(log_content)
    missing = []
    for record in records:
        name = record_name(record.id)
        if name in seen:
            continue
        seen.add(name)
        missing.append(record)
    return missing


def extract_initial_status(content: str) -> str:
    """Read `status:` from the leading frontmatter block, else "backlog".

    The raw block is scanned rather than YAML-loaded so the value is
    logged exactly as written.
    """
    if not _yaml.detect(content):
        return DEFAULT_STATUS
    try:
        fm, _ = _yaml.split(content)
    except ValueError:
        # Opening fence without a closing one
        return DEFAULT_STATUS

    match = STATUS_KEY_PATTERN.search(fm)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_STATUS


def read_initial_status(file_system: FileSystem, record_id: str) -> str:
    """Initial status of a record's note, falling back to the default."""
    handle = file_system.get_file(record_id)
    if handle is None:
        return DEFAULT_STATUS
    try:
        return extract_initial_status(handle.read())
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read {record_id} for initial status: {e}")
        return DEFAULT_STATUS


def build_backfill(
    records: Sequence[TrackedRecord],
    file_system: FileSystem,
    today: date,
) -> list[LogEntry]:
    """Synthesize one backfill entry per record."""
    stamp = today.strftime("%Y-%m-%d")
    return [
        LogEntry(
            record_name=record_name(record.id),
            date=stamp,
            new_status=read_initial_status(file_system, record.id),
            backfill=True,
        )
        for record in records
    ]


def reconcile(
    records: Sequence[TrackedRecord],
    store: LogStore,
    file_system: FileSystem,
    today: date,
) -> list[LogEntry]:
    """Backfill every unlogged record in a single append.

    Returns the entries written. Write errors propagate to the caller.
    """
    missing = find_missing(records, store.read_all())
    if not missing:
        return []

    entries = build_backfill(missing, file_system, today)
    store.append_or_create("".join(encode(entry) for entry in entries))
    logger.info(f"Backfilled {len(entries)} record(s) into {store.path}")
    return entries
