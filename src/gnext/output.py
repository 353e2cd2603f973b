"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (followed log lines). This is what
  downstream tools pipe and parse.
* **stderr** -- all diagnostics (stage status, warnings, errors,
  suggestions). Never contaminates the data stream.
* **TTY detection** -- Rich spinners when stderr is an interactive
  terminal, plain status lines otherwise.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes three layers:

1. :class:`OutputManager` -- a stateful object holding preferences and Rich
   consoles. Created once in :func:`~gnext.app.main_callback` and installed
   via :func:`set_output`.
2. :class:`StageStatus` -- an explicit handle for one running operation,
   obtained from :meth:`OutputManager.stage` and resolved exactly once by
   the code that opened it.
3. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`stage`, etc.) that delegate to the global ``OutputManager``.
"""

from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.status import Status


class StageStatus:
    """Status handle for a single running operation.

    A handle starts *pending*; the first call to :meth:`succeed`,
    :meth:`warn` or :meth:`fail` resolves it and prints the final status
    line. Later calls are ignored so that the context manager in
    :meth:`OutputManager.stage` can resolve whatever the stage left open.

    Args:
        output: The manager that prints the status lines.
        message: Text shown while the operation runs.
        spinner: Live Rich spinner, or ``None`` when not on a terminal.
    """

    def __init__(
        self,
        output: OutputManager,
        message: str,
        spinner: Optional[Status] = None,
    ) -> None:
        self._output = output
        self._message = message
        self._spinner = spinner
        self._outcome: Optional[str] = None

    @property
    def message(self) -> str:
        """The current in-progress text."""
        return self._message

    @property
    def outcome(self) -> Optional[str]:
        """``"succeeded"``, ``"warned"``, ``"failed"``, or ``None`` while pending."""
        return self._outcome

    @property
    def resolved(self) -> bool:
        return self._outcome is not None

    def update(self, message: str) -> None:
        """Replace the in-progress text (e.g. ``Installing dependencies...``)."""
        if self.resolved:
            return
        self._message = message
        if self._spinner is not None:
            self._spinner.update(message)
        else:
            self._output.progress(message)

    def succeed(self, message: Optional[str] = None) -> None:
        if self._resolve("succeeded"):
            self._output.success(f"✓ {message or self._message}")

    def warn(self, message: Optional[str] = None) -> None:
        if self._resolve("warned"):
            self._output.warning(message or self._message)

    def fail(self, message: Optional[str] = None) -> None:
        if self._resolve("failed"):
            self._output.error(f"✗ {message or self._message}")

    def _resolve(self, outcome: str) -> bool:
        if self.resolved:
            return False
        self._outcome = outcome
        if self._spinner is not None:
            self._spinner.stop()
        return True


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Primary data is written to stdout unformatted. Diagnostics go through a
    Rich :class:`~rich.console.Console` bound to stderr, which also drives
    the stage spinner.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet

        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout, unformatted."""
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{formatted}[/dim]")

    def progress(self, message: str) -> None:
        """Print a dimmed progress message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{message}[/dim]")

    # ------------------------------------------------------------------ #
    # Stage status
    # ------------------------------------------------------------------ #

    @contextmanager
    def stage(self, message: str) -> Iterator[StageStatus]:
        """Open a status handle for one operation and guarantee it is resolved.

        Leaving the block normally succeeds a still-pending handle. Leaving
        it through an exception fails the handle with the exception's text
        and re-raises.

        Example::

            with get_output().stage("Compiling schemas...") as status:
                runner.run_or_fail("glib-compile-schemas", [str(path)])
                status.succeed("Schemas compiled")
        """
        spinner: Optional[Status] = None
        if not self._quiet and not self._no_color and _is_tty():
            spinner = self._stderr.status(message)
            spinner.start()
        else:
            self.progress(message)

        handle = StageStatus(self, message, spinner)
        try:
            yield handle
        except BaseException as exc:
            handle.fail(str(exc).splitlines()[0] if str(exc) else handle.message)
            raise
        else:
            handle.succeed()


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stderr is a TTY."""
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance.

    Called once during CLI startup from :func:`~gnext.app.main_callback`.
    """
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def print_data(text: str) -> None:
    """Print raw data to stdout via the global OutputManager."""
    get_output().print_data(text)


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def success(message: str) -> None:
    """Print success message to stderr via the global OutputManager."""
    get_output().success(message)


def warning(message: str) -> None:
    """Print warning to stderr via the global OutputManager."""
    get_output().warning(message)


def suggest(message: str) -> None:
    """Print next-step suggestion to stderr via the global OutputManager."""
    get_output().suggest(message)


def stage(message: str):
    """Open a :class:`StageStatus` context via the global OutputManager."""
    return get_output().stage(message)
