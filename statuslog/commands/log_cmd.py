"""Log command - display the project log."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import load_settings
from ..log.codec import iter_lines, parse_line
from ..log.store import LogStore
from ..models import LogEntry
from ..vault import LocalFileSystem


def read_entries(vault_path: Path, log_path: str) -> tuple[list[LogEntry], int]:
    """Parse the project log. Returns (entries, number of skipped lines)."""
    content = LogStore(LocalFileSystem(vault_path), log_path).read_all()
    entries = []
    skipped = 0
    for line in iter_lines(content):
        result = parse_line(line)
        if result.ok:
            entries.append(result.entry)
        else:
            skipped += 1
    return entries, skipped


def run_log(
    vault_path: Path,
    *,
    config_path: Path | None = None,
    last_n: int | None = None,
    note: str | None = None,
    output_json: bool = False,
) -> int:
    """
    Display project log entries, oldest first.

    Returns the number of entries displayed.
    """
    console = Console()
    settings = load_settings(vault_path, config_path)
    entries, skipped = read_entries(vault_path, settings.preferences.log_path)

    if note:
        entries = [e for e in entries if e.record_name == note]
    if last_n is not None:
        entries = entries[-last_n:] if last_n > 0 else []

    if output_json:
        for entry in entries:
            console.print_json(json.dumps({
                "note": entry.record_name,
                "date": entry.date,
                "time": entry.time,
                "old_status": entry.old_status,
                "new_status": entry.new_status,
                "backfill": entry.backfill,
            }))
        return len(entries)

    if not entries:
        console.print("[dim]No log entries found.[/dim]")
    else:
        table = Table(title="Project Log")
        table.add_column("Note", style="bold")
        table.add_column("Date")
        table.add_column("Time")
        table.add_column("From")
        table.add_column("To")
        for entry in entries:
            table.add_row(
                entry.record_name,
                entry.date,
                entry.time or "-",
                "-" if entry.backfill else str(entry.old_status),
                str(entry.new_status),
            )
        console.print(table)

    if skipped:
        console.print(f"[yellow]Skipped {skipped} malformed line(s)[/yellow]")

    return len(entries)
