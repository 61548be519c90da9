"""Set-status and reconcile commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..log.codec import record_name
from ..models import STATUS_FIELD, DataField, TrackedRecord
from ..pipeline import ChangePipeline
from ..vault import open_pipeline


def resolve_record(pipeline: ChangePipeline, note: str) -> TrackedRecord | None:
    """Find a cached record by id, id without `.md`, or log name."""
    note = note.replace("\\", "/")
    candidates = (note, f"{note}.md")
    for record in pipeline.cache.records:
        if record.id in candidates:
            return record
    matches = [r for r in pipeline.cache.records if record_name(r.id) == note]
    if len(matches) == 1:
        return matches[0]
    return None


def run_set_status(
    vault_path: Path,
    note: str,
    status: str,
    *,
    config_path: Path | None = None,
) -> int:
    """
    Set a note's status through the change pipeline.

    Returns an exit code: 0 on success, 1 if the note was not found.
    Audit failures are reported but do not fail the command.
    """
    console = Console()
    pipeline = open_pipeline(vault_path, config_path)

    existing = resolve_record(pipeline, note)
    if existing is None:
        console.print(f"[red]Note not found:[/red] {note}", highlight=False)
        return 1

    updated = TrackedRecord(id=existing.id, values={**existing.values, STATUS_FIELD: status})
    outcome = pipeline.update_record(updated, [DataField(STATUS_FIELD)])

    console.print(f"[bold]{existing.id}[/bold] status: {existing.status} -> {status}", highlight=False)
    if outcome.changes:
        console.print(f"  Logged {outcome.entries_written} change(s)")
    else:
        console.print("  [dim]No status change logged[/dim]")
    if outcome.backfilled:
        console.print(f"  Backfilled {outcome.backfilled} unlogged note(s)")
    if not outcome.success:
        console.print(f"  [yellow]Audit log not updated: {outcome.error}[/yellow]", highlight=False)
    return 0


def run_reconcile(vault_path: Path, *, config_path: Path | None = None) -> int:
    """
    Backfill log lines for every note missing from the project log.

    Returns the number of backfilled notes.
    """
    console = Console()
    pipeline = open_pipeline(vault_path, config_path)
    outcome = pipeline.reconcile_now()

    if not outcome.success:
        console.print(f"[yellow]Reconciliation failed: {outcome.error}[/yellow]", highlight=False)
        return 0
    if outcome.backfilled:
        console.print(f"Backfilled [bold]{outcome.backfilled}[/bold] note(s)")
    else:
        console.print("[dim]Project log already covers every note.[/dim]")
    return outcome.backfilled
