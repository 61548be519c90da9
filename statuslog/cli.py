"""CLI entrypoint for statuslog."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="statuslog")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the vault root (defaults to the current directory)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (defaults to <vault>/statuslog.toml)",
)
@click.option("--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, config_path: Path | None, verbose: bool) -> None:
    """statuslog - status-change audit log for markdown vaults.

    Records every change of a note's frontmatter `status` in project-log.md
    and backfills notes the log has never seen.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    vault = vault or Path.cwd()

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()
    ctx.obj["config"] = config_path


@cli.command("set-status")
@click.argument("note")
@click.argument("status")
@click.pass_context
def set_status(ctx: click.Context, note: str, status: str) -> None:
    """Set NOTE's status to STATUS and log the transition.

    NOTE may be a vault-relative path (with or without .md) or a bare note
    name when it is unique.
    """
    from .commands.status_cmd import run_set_status

    try:
        exit_code = run_set_status(ctx.obj["vault"], note, status, config_path=ctx.obj["config"])
    except ValueError as e:
        raise click.ClickException(str(e))
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def reconcile(ctx: click.Context) -> None:
    """Backfill log lines for notes missing from the project log."""
    from .commands.status_cmd import run_reconcile

    try:
        run_reconcile(ctx.obj["vault"], config_path=ctx.obj["config"])
    except ValueError as e:
        raise click.ClickException(str(e))


@cli.command("log")
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.option("--note", type=str, default=None, help="Show only entries for this note name")
@click.option("--json", "output_json", is_flag=True, help="Output entries as JSON")
@click.pass_context
def show_log(ctx: click.Context, last_n: int | None, note: str | None, output_json: bool) -> None:
    """Show the project log."""
    from .commands.log_cmd import run_log

    try:
        run_log(
            ctx.obj["vault"],
            config_path=ctx.obj["config"],
            last_n=last_n,
            note=note,
            output_json=output_json,
        )
    except ValueError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Watch the vault and log status edits as they are saved."""
    from .commands.watch_cmd import run_watch

    try:
        run_watch(ctx.obj["vault"], config_path=ctx.obj["config"])
    except ValueError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
