"""GNOME Shell host integration.

Thin wrappers over the commands a developer would otherwise type by hand:

* ``gnome-extensions install --force`` / ``gnome-extensions enable``
* restarting the shell on X11 (``gdbus`` Eval, falling back to
  ``killall -HUP``)
* reading the shell version and launching a nested/devkit shell
* following ``journalctl`` output for ``gnome-shell`` and ``gjs``

None of these keep state between calls. Every function accepts the
:class:`~gnext.shell.StageRunner` to use so tests can substitute a fake.
"""

from __future__ import annotations

import os
import re
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from gnext.exceptions import HostIntegrationError, ToolNotFound
from gnext.models import Invocation
from gnext.output import info, success, warning
from gnext.shell import StageRunner

EXTENSIONS_TOOL = "gnome-extensions"
DEVKIT_MIN_MAJOR = 49

_EVAL_SCRIPT = (
    'if (Meta.is_wayland_compositor()) throw new Error("Wayland detected"); '
    'else Meta.restart(_("Restarting…"), global.context);'
)
RESTART_CANDIDATES = (
    Invocation(
        tool="gdbus",
        args=(
            "call", "--session",
            "--dest", "org.gnome.Shell",
            "--object-path", "/org/gnome/Shell",
            "--method", "org.gnome.Shell.Eval",
            _EVAL_SCRIPT,
        ),
    ),
    Invocation(tool="killall", args=("-HUP", "gnome-shell")),
)
LOG_SOURCES = ("/usr/bin/gnome-shell", "/usr/bin/gjs")

_VERSION_RE = re.compile(r"(\d+)\.(\d+)")


def is_wayland(environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when the current session type is Wayland."""
    env = os.environ if environ is None else environ
    return env.get("XDG_SESSION_TYPE") == "wayland"


# ------------------------------------------------------------------ #
# Install / enable / reload
# ------------------------------------------------------------------ #


def install_extension(runner: StageRunner, archive_path: Path) -> None:
    """Install *archive_path* for the current user, replacing any older copy.

    Raises:
        HostIntegrationError: ``gnome-extensions`` is missing or failed.
    """
    info("Installing extension...")
    result = _run_extensions_tool(runner, ["install", "--force", str(archive_path)])
    if not result.ok:
        raise HostIntegrationError(f"Failed to install extension: {result.stderr.strip()}")
    success("Extension installed")


def enable_extension(runner: StageRunner, uuid: str) -> None:
    """Enable the installed extension *uuid*.

    Raises:
        HostIntegrationError: ``gnome-extensions`` is missing or failed.
    """
    info("Enabling extension...")
    result = _run_extensions_tool(runner, ["enable", uuid])
    if not result.ok:
        raise HostIntegrationError(f"Failed to enable extension: {result.stderr.strip()}")
    success("Extension enabled")


def _run_extensions_tool(runner: StageRunner, args: list[str]):
    try:
        return runner.run(EXTENSIONS_TOOL, args)
    except ToolNotFound as exc:
        raise HostIntegrationError(f"{EXTENSIONS_TOOL} not found on PATH") from exc


def restart_shell(
    runner: StageRunner, environ: Optional[Mapping[str, str]] = None
) -> bool:
    """Ask a running X11 GNOME Shell to restart itself.

    Tries :data:`RESTART_CANDIDATES` in order. The ``gdbus`` call only
    counts as a success if the shell answered ``true``.

    Returns:
        ``True`` if a restart was initiated, ``False`` on Wayland or when
        every method failed.
    """
    if is_wayland(environ):
        warning("Cannot restart GNOME Shell on Wayland. Please log out and log back in.")
        return False

    info("Attempting to restart GNOME Shell...")
    for candidate in RESTART_CANDIDATES:
        if not runner.tool_available(candidate.tool):
            continue
        result = runner.run(candidate.tool, candidate.args)
        if result.ok and (candidate.tool != "gdbus" or "true" in result.stdout):
            success(f"GNOME Shell restart initiated using {candidate.tool}")
            return True
        info(f"{candidate.tool} did not restart the shell, trying next method...")

    warning("Failed to restart GNOME Shell")
    return False


# ------------------------------------------------------------------ #
# Version / nested shell
# ------------------------------------------------------------------ #


def shell_version(runner: StageRunner) -> Optional[str]:
    """Return ``major.minor`` of the installed ``gnome-shell``, or ``None``."""
    try:
        result = runner.run("gnome-shell", ["--version"])
    except ToolNotFound:
        return None
    if not result.ok:
        return None
    match = _VERSION_RE.search(result.stdout)
    return f"{match.group(1)}.{match.group(2)}" if match else None


def shell_major_version(runner: StageRunner) -> Optional[int]:
    version = shell_version(runner)
    return int(version.split(".")[0]) if version else None


def nested_shell_command(major: int) -> list[str]:
    """``gnome-shell`` 49 replaced ``--nested`` with ``--devkit``."""
    mode = "--devkit" if major >= DEVKIT_MIN_MAJOR else "--nested"
    return ["dbus-run-session", "--", "gnome-shell", mode, "--wayland"]


def run_nested_shell(runner: StageRunner) -> int:
    """Run a nested GNOME Shell in the foreground and return its exit status.

    Raises:
        HostIntegrationError: The shell version could not be detected.
    """
    major = shell_major_version(runner)
    if major is None:
        raise HostIntegrationError("Could not detect GNOME Shell version")

    info(f"Starting nested GNOME Shell (version {major})...")
    info("Press Ctrl+C to stop")
    command = nested_shell_command(major)
    return runner.run_attached(command[0], command[1:])


# ------------------------------------------------------------------ #
# Logs
# ------------------------------------------------------------------ #


class LogFilter:
    """Keep only the journal lines relevant to one extension.

    Passes lines starting with ``[<name>]`` or ``Extension``. A line
    starting with ``Stack trace:`` or ``JS ERROR:`` opens a block that is
    passed through up to the next blank line, and is followed by one
    blank line.
    """

    BLOCK_STARTS = ("Stack trace:", "JS ERROR:")

    def __init__(self, extension_name: str) -> None:
        self._prefix = f"[{extension_name}]"
        self._in_block = False

    def feed(self, line: str) -> list[str]:
        """Consume one line (without newline) and return the lines to emit."""
        if self._in_block:
            if not line.strip():
                self._in_block = False
                return [""]
            return [line]
        if line.startswith(self.BLOCK_STARTS):
            self._in_block = True
            return [line]
        if line.startswith(self._prefix) or line.startswith("Extension"):
            return [line]
        return []


def _pump(lines: Iterable[str], emit: Callable[[str], None], log_filter: Optional[LogFilter]) -> None:
    for raw in lines:
        line = raw.rstrip("\n")
        if log_filter is None:
            emit(line)
        else:
            for out in log_filter.feed(line):
                emit(out)


def watch_logs(
    runner: StageRunner,
    extension_name: str,
    filtered: bool,
    emit: Callable[[str], None],
) -> None:
    """Follow the shell and gjs journals concurrently until both end.

    Each source gets its own :class:`LogFilter` when *filtered* is set, so
    a multi-line block from one source is never cut by the other.
    """
    lock = threading.Lock()

    def _emit(line: str) -> None:
        with lock:
            emit(line)

    processes: list[subprocess.Popen[str]] = []
    with ThreadPoolExecutor(max_workers=len(LOG_SOURCES)) as pool:
        # Children must be gone before the pool joins its pumps.
        try:
            for source in LOG_SOURCES:
                processes.append(runner.spawn("journalctl", [source, "-f", "-o", "cat"]))
            futures = [
                pool.submit(
                    _pump,
                    proc.stdout,
                    _emit,
                    LogFilter(extension_name) if filtered else None,
                )
                for proc in processes
            ]
            for future in futures:
                future.result()
        finally:
            for proc in processes:
                if proc.poll() is None:
                    proc.terminate()
                proc.wait()
