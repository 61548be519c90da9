"""Tests for the change pipeline and its failure isolation."""

from __future__ import annotations

import logging

import statuslog.pipeline as pipeline_module
from statuslog.models import DataField, TrackedRecord

STATUS = [DataField("status")]


def _records() -> list[TrackedRecord]:
    return [
        TrackedRecord("notes/a.md", {"status": "todo"}),
        TrackedRecord("notes/b.md", {"status": "review"}),
        TrackedRecord("c.md", {}),
    ]


def test_status_change_logs_entry_then_backfills(make_pipeline, memory_fs):
    memory_fs.files["notes/b.md"] = "---\nstatus: review\n---\n"
    pipeline = make_pipeline(_records())

    outcome = pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)

    assert outcome.success
    assert outcome.entries_written == 1
    assert outcome.backfilled == 2
    assert memory_fs.files["project-log.md"] == (
        "[[a]],2024-05-01,14:03:22,todo,doing\n"
        "[[b]],2024-05-01,,review\n"
        "[[c]],2024-05-01,,backlog\n"
    )


def test_exactly_one_entry_per_transition(make_pipeline, memory_fs):
    pipeline = make_pipeline(_records())

    pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)
    pipeline.update_record(TrackedRecord("notes/a.md", {"status": "done"}), STATUS)

    lines = memory_fs.files["project-log.md"].splitlines()
    assert [line for line in lines if line.startswith("[[a]]")] == [
        "[[a]],2024-05-01,14:03:22,todo,doing",
        "[[a]],2024-05-01,14:03:22,doing,done",
    ]
    # The second reconciliation had nothing left to backfill
    assert len(lines) == 4


def test_boolean_status_renders_lowercase(make_pipeline, memory_fs):
    pipeline = make_pipeline([TrackedRecord("flag.md", {"status": True})])

    pipeline.update_record(TrackedRecord("flag.md", {"status": 1.0}), STATUS)

    assert memory_fs.files["project-log.md"].startswith("[[flag]],2024-05-01,14:03:22,true,1\n")


def test_unchanged_status_writes_nothing(make_pipeline, memory_fs):
    pipeline = make_pipeline(_records())

    outcome = pipeline.update_record(TrackedRecord("notes/a.md", {"status": "todo", "x": 1}), STATUS)

    assert outcome.changes == []
    assert not outcome.reconciled
    assert memory_fs.files == {}


def test_tracking_disabled_never_creates_log(make_pipeline, memory_fs, recording_api):
    pipeline = make_pipeline(_records(), enabled=False)

    pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)
    pipeline.update_records([TrackedRecord("notes/b.md", {"status": "done"})], STATUS)

    assert memory_fs.files == {}
    assert [c[0] for c in recording_api.calls] == ["update_record", "update_records"]


def test_log_path_setting_is_used(make_pipeline, memory_fs):
    pipeline = make_pipeline(_records(), log_path="logs")

    pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)

    assert list(memory_fs.files) == ["logs/project-log.md"]


def test_batch_with_one_change_reconciles_once(make_pipeline, memory_fs, monkeypatch):
    pipeline = make_pipeline(_records())

    calls = []
    real_reconcile = pipeline_module.reconcile

    def counting_reconcile(*args, **kwargs):
        calls.append(args)
        return real_reconcile(*args, **kwargs)

    monkeypatch.setattr(pipeline_module, "reconcile", counting_reconcile)

    outcome = pipeline.update_records(
        [
            TrackedRecord("notes/a.md", {"status": "todo"}),
            TrackedRecord("notes/b.md", {"status": "done"}),
            TrackedRecord("c.md", {}),
        ],
        STATUS,
    )

    assert len(outcome.changes) == 1
    assert outcome.entries_written == 1
    assert len(calls) == 1
    change_lines = [line for line in memory_fs.files["project-log.md"].splitlines() if line.count(",") == 4]
    assert change_lines == ["[[b]],2024-05-01,14:03:22,review,done"]


def test_batch_without_changes_does_not_reconcile(make_pipeline, memory_fs):
    pipeline = make_pipeline(_records())

    outcome = pipeline.update_records([TrackedRecord("notes/a.md", {"status": "todo"})], STATUS)

    assert not outcome.reconciled
    assert memory_fs.files == {}


def test_write_failure_does_not_block_mutation(make_pipeline, memory_fs, recording_api, caplog):
    memory_fs.fail_writes = True
    pipeline = make_pipeline(_records())
    incoming = TrackedRecord("notes/a.md", {"status": "doing"})

    with caplog.at_level(logging.WARNING, logger="statuslog"):
        outcome = pipeline.update_record(incoming, STATUS)

    assert not outcome.success
    assert "disk full" in outcome.error
    assert recording_api.calls == [("update_record", "notes/a.md", {"status": "doing"})]
    assert pipeline.cache.records[0].values["status"] == "doing"
    assert "Failed to log status change" in caplog.text


def test_settings_failure_does_not_block_mutation(make_pipeline, recording_api):
    class BrokenSettings:
        def snapshot(self):
            raise ValueError("bad settings file")

    pipeline = make_pipeline(_records())
    pipeline.settings = BrokenSettings()

    outcome = pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)

    assert not outcome.success
    assert outcome.error == "bad settings file"
    assert len(recording_api.calls) == 1


def test_new_record_is_not_a_change_but_is_backfilled_later(make_pipeline, memory_fs):
    pipeline = make_pipeline(_records())

    outcome = pipeline.update_record(TrackedRecord("new.md", {"status": "todo"}), STATUS)
    assert outcome.changes == []

    pipeline.update_record(TrackedRecord("notes/a.md", {"status": "doing"}), STATUS)
    assert "[[new]],2024-05-01,,backlog\n" in memory_fs.files["project-log.md"]


def test_reconcile_now_uses_cache(make_pipeline):
    pipeline = make_pipeline(_records())

    outcome = pipeline.reconcile_now()

    assert outcome.backfilled == 3
    assert pipeline.reconcile_now().backfilled == 0


def test_record_and_field_mutations_are_forwarded(make_pipeline, recording_api):
    pipeline = make_pipeline(_records())

    pipeline.add_record(TrackedRecord("d.md", {"status": "todo"}), None, "templates/task.md")
    pipeline.add_field(DataField("owner"), "me")
    pipeline.update_field(DataField("assignee"), "owner")
    pipeline.delete_field("assignee")
    pipeline.delete_record("d.md")

    ids = ["notes/a.md", "notes/b.md", "c.md", "d.md"]
    assert recording_api.calls == [
        ("create_note", "d.md", "templates/task.md"),
        ("add_field", ids, "owner", "me"),
        ("rename_field", ids, "owner", "assignee"),
        ("delete_field", ids, "assignee"),
        ("delete_record", "d.md"),
    ]
    assert [r.id for r in pipeline.cache.records] == ["notes/a.md", "notes/b.md", "c.md"]


def test_update_field_without_rename_only_touches_cache(make_pipeline, recording_api):
    pipeline = make_pipeline(_records())

    pipeline.update_field(DataField("status", type="select"))

    assert recording_api.calls == []
