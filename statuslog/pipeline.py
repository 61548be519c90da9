"""
Change pipeline: the write API that records status transitions.

Every record update passes through here before it reaches the record
store. When state tracking is enabled, status changes are appended to the
project log and the log is reconciled against the full record set.

The audit path is best-effort. Its failures are captured in an
AuditOutcome and logged, and the record mutation is forwarded to the
record store regardless.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Sequence

from .detector import detect_in_snapshot
from .interfaces import DataSource, FileSystem, RecordApi, RecordCache, SettingsProvider
from .log.codec import encode, record_name
from .log.store import LogStore
from .models import AuditOutcome, ChangeEvent, DataField, LogEntry, Settings, TrackedRecord
from .reconcile import reconcile

logger = logging.getLogger(__name__)


class ChangePipeline:
    """Write API for views, with status-change auditing."""

    def __init__(
        self,
        data_source: DataSource,
        record_api: RecordApi,
        cache: RecordCache,
        file_system: FileSystem,
        settings: SettingsProvider,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.data_source = data_source
        self.record_api = record_api
        self.cache = cache
        self.file_system = file_system
        self.settings = settings
        self.clock = clock

    # --- Audit path ---

    def _store(self, settings: Settings) -> LogStore:
        return LogStore(self.file_system, settings.preferences.log_path)

    def _change_entry(self, event: ChangeEvent, now: datetime) -> LogEntry:
        return LogEntry(
            record_name=record_name(event.record_id),
            date=now.strftime("%Y-%m-%d"),
            time=now.strftime("%H:%M:%S"),
            old_status=event.old_status,
            new_status=event.new_status,
        )

    def _log_change(self, store: LogStore, event: ChangeEvent, outcome: AuditOutcome) -> None:
        try:
            store.append_or_create(encode(self._change_entry(event, self.clock())))
            outcome.entries_written += 1
        except Exception as e:
            logger.warning(f"Failed to log status change for {event.record_id}: {e}")
            outcome.success = False
            outcome.error = str(e)

    def _reconcile(self, store: LogStore, records: Sequence[TrackedRecord], outcome: AuditOutcome) -> None:
        try:
            entries = reconcile(records, store, self.file_system, self.clock().date())
            outcome.backfilled = len(entries)
            outcome.reconciled = True
        except Exception as e:
            logger.warning(f"Failed to reconcile {store.path}: {e}")
            outcome.success = False
            outcome.error = str(e)

    def on_single_update(self, snapshot: Sequence[TrackedRecord], incoming: TrackedRecord) -> AuditOutcome:
        """Audit one record update against the snapshot taken at call start."""
        return self.on_batch_update(snapshot, [incoming])

    def on_batch_update(self, snapshot: Sequence[TrackedRecord], incoming: Sequence[TrackedRecord]) -> AuditOutcome:
        """Audit a batch of updates; reconcile once if anything changed."""
        outcome = AuditOutcome()
        try:
            settings = self.settings.snapshot()
            if not settings.preferences.enable_state_tracking:
                return outcome

            store = self._store(settings)
            for record in incoming:
                event = detect_in_snapshot(snapshot, record)
                if event is None:
                    continue
                logger.info(f"Status changed: {event.record_id} {event.old_status!r} -> {event.new_status!r}")
                outcome.changes.append(event)
                self._log_change(store, event, outcome)

            if outcome.changes:
                self._reconcile(store, snapshot, outcome)
        except Exception as e:
            logger.warning(f"Status audit failed: {e}")
            outcome.success = False
            outcome.error = str(e)

        if outcome.changes or not outcome.success:
            logger.debug(f"Status audit: {outcome.summary()}")
        return outcome

    def reconcile_now(self, records: Sequence[TrackedRecord] | None = None) -> AuditOutcome:
        """Run reconciliation alone over the cached (or given) records."""
        outcome = AuditOutcome()
        settings = self.settings.snapshot()
        records = list(self.cache.records) if records is None else records
        self._reconcile(self._store(settings), records, outcome)
        return outcome

    # --- Record and field mutations ---

    def add_record(self, record: TrackedRecord, fields: Sequence[DataField] | None, template_path: str = "") -> None:
        if self.data_source.includes(record.id):
            self.cache.add_record(record)
        self.record_api.create_note(record, fields or [], template_path)

    def update_record(self, record: TrackedRecord, fields: Sequence[DataField]) -> AuditOutcome:
        snapshot = list(self.cache.records)
        outcome = self.on_single_update(snapshot, record)

        if self.data_source.includes(record.id):
            self.cache.update_record(record)
        self.record_api.update_record(fields, record)
        return outcome

    def update_records(self, records: Sequence[TrackedRecord], fields: Sequence[DataField]) -> AuditOutcome:
        snapshot = list(self.cache.records)
        outcome = self.on_batch_update(snapshot, records)

        visible = [r for r in records if self.data_source.includes(r.id)]
        if visible:
            self.cache.update_records(visible)
        self.record_api.update_records(fields, records)
        return outcome

    def delete_record(self, record_id: str) -> None:
        if self.data_source.includes(record_id):
            self.cache.delete_record(record_id)
        self.record_api.delete_record(record_id)

    def add_field(self, field: DataField, value: Any = None, position: int | None = None) -> None:
        self.cache.add_field(field, position)
        self.record_api.add_field([r.id for r in self.cache.records], field, value)

    def update_field(self, field: DataField, old_name: str | None = None) -> None:
        self.cache.update_field(field, old_name)
        if old_name:
            self.record_api.rename_field([r.id for r in self.cache.records], old_name, field.name)

    def delete_field(self, name: str) -> None:
        self.cache.delete_field(name)
        self.record_api.delete_field([r.id for r in self.cache.records], name)
