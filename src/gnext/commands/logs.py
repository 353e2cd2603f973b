"""Logs command -- follow GNOME Shell and gjs journal output."""

from __future__ import annotations

from pathlib import Path

import typer

from gnext.exceptions import GnextError
from gnext.output import error, info, print_data


def logs_command(
    filtered: bool = typer.Option(
        False,
        "--filtered",
        "-f",
        help="Show only relevant logs (extension errors and stack traces).",
    ),
    path: Path = typer.Option(
        Path("."), "--path", "-C", help="Extension project directory."
    ),
) -> None:
    """Watch extension logs in real-time."""
    from gnext.host import watch_logs
    from gnext.project import read_metadata
    from gnext.shell import StageRunner

    try:
        metadata = read_metadata(path)
        info(f"Watching logs for: {metadata.name}")
        info(f"Filtered: {'Yes' if filtered else 'No'}")
        info("Press Ctrl+C to stop")
        watch_logs(StageRunner(), metadata.name, filtered, print_data)
    except GnextError as exc:
        error(f"Failed to watch logs: {exc}")
        raise typer.Exit(code=exc.exit_code) from None
