"""Status change detection against a snapshot of known records."""

from __future__ import annotations

from typing import Any, Iterable

from .models import STATUS_FIELD, ChangeEvent, TrackedRecord

# Distinguishes a missing status key from an explicit None.
_MISSING = object()


def _same_status(old: Any, new: Any) -> bool:
    # True and 1 compare equal in Python but are different statuses
    if isinstance(old, bool) != isinstance(new, bool):
        return False
    return old == new


def find_existing(records: Iterable[TrackedRecord], record_id: str) -> TrackedRecord | None:
    """Return the first known record with the given id."""
    for record in records:
        if record.id == record_id:
            return record
    return None


def detect(existing: TrackedRecord | None, incoming: TrackedRecord) -> ChangeEvent | None:
    """Compare the incoming status to the known one.

    Unknown records (existing is None) never produce an event; they are
    picked up by reconciliation instead.
    """
    if existing is None:
        return None

    old = existing.values.get(STATUS_FIELD, _MISSING)
    new = incoming.values.get(STATUS_FIELD, _MISSING)
    if _same_status(old, new):
        return None

    return ChangeEvent(
        record_id=incoming.id,
        old_status=None if old is _MISSING else old,
        new_status=None if new is _MISSING else new,
    )


def detect_in_snapshot(snapshot: Iterable[TrackedRecord], incoming: TrackedRecord) -> ChangeEvent | None:
    """Look up the incoming record in a snapshot and detect a change."""
    return detect(find_existing(snapshot, incoming.id), incoming)
