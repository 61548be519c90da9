"""Watch command - audit status edits made in an editor."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..vault import open_pipeline
from ..watcher import run_watch_loop


def run_watch(vault_path: Path, *, config_path: Path | None = None) -> int:
    """
    Watch the vault and log status changes until interrupted.

    Returns the number of events reported.
    """
    console = Console(stderr=True)
    pipeline = open_pipeline(vault_path, config_path)

    console.print(f"[bold]Watching[/bold] {vault_path}")
    console.print(f"  Notes tracked: {len(pipeline.cache.records)}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    event_count = 0

    def on_event(formatted: str) -> None:
        nonlocal event_count
        event_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {formatted}", highlight=False)

    try:
        run_watch_loop(vault_path, pipeline, on_event=on_event)
    except KeyboardInterrupt:
        pass

    console.print()
    console.print(f"[bold]Stopped.[/bold] Reported {event_count} events.")
    return event_count
