"""Dev command -- run the extension in a nested GNOME Shell session."""

from __future__ import annotations

import typer

from gnext.exceptions import GnextError
from gnext.output import error, info


def dev_command() -> None:
    """Run extension in development mode (nested GNOME Shell)."""
    from gnext.host import run_nested_shell
    from gnext.shell import StageRunner

    info("Starting development mode...")
    info("This will launch a nested GNOME Shell session for testing.")
    try:
        code = run_nested_shell(StageRunner())
    except GnextError as exc:
        error(f"Dev mode failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None
    if code != 0:
        raise typer.Exit(code=code)
