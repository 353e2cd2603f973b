"""External tool invocation.

:class:`StageRunner` is the only place gnext starts child processes. Its
contract:

* :meth:`StageRunner.run` never raises on a non-zero exit; the caller
  inspects :attr:`~gnext.models.ToolResult.exit_code`.
* :meth:`StageRunner.run_or_fail` turns a non-zero exit into
  :class:`~gnext.exceptions.ToolExecutionError`.
* Output is decoded as UTF-8; undecodable bytes become U+FFFD.
* :meth:`StageRunner.tool_available` is the pre-flight check stages use to
  tell an optional tool from a mandatory one.
* :meth:`StageRunner.run_first_available` walks an ordered list of
  candidate invocations and stops at the first one whose executable exists.

A missing executable always surfaces as
:class:`~gnext.exceptions.ToolNotFound`, never as a fake exit status.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Type

from gnext.exceptions import ToolExecutionError, ToolNotFound
from gnext.models import Invocation, ToolResult

logger = logging.getLogger(__name__)


class StageRunner:
    """Run external executables found on ``PATH``.

    Args:
        timeout: Seconds after which a tool is killed. ``None`` waits
            forever.
    """

    def __init__(self, timeout: Optional[int] = None) -> None:
        self.timeout = timeout

    def tool_available(self, name: str) -> bool:
        """Return ``True`` if *name* resolves to an executable on ``PATH``."""
        return shutil.which(name) is not None

    def run(
        self,
        tool: str,
        args: Sequence[str] = (),
        work_dir: Optional[Path] = None,
    ) -> ToolResult:
        """Run *tool* with *args* in *work_dir*, capturing output.

        Raises:
            ToolNotFound: If the executable does not exist.
            ToolExecutionError: If the tool exceeded :attr:`timeout`.
        """
        command = [tool, *args]
        logger.debug("run: %s (cwd=%s)", " ".join(command), work_dir)
        try:
            completed = subprocess.run(
                command,
                cwd=work_dir,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise ToolNotFound(tool) from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolExecutionError(
                tool, list(args), -1, f"timed out after {self.timeout} seconds"
            ) from exc

        logger.debug("exit %d: %s", completed.returncode, tool)
        return ToolResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def run_or_fail(
        self,
        tool: str,
        args: Sequence[str] = (),
        work_dir: Optional[Path] = None,
    ) -> str:
        """Run *tool* and return its stdout.

        Raises:
            ToolNotFound: If the executable does not exist.
            ToolExecutionError: If the tool exits non-zero.
        """
        result = self.run(tool, args, work_dir)
        if not result.ok:
            raise ToolExecutionError(tool, list(args), result.exit_code, result.stderr)
        return result.stdout

    def run_first_available(
        self,
        candidates: Sequence[Invocation],
        work_dir: Optional[Path] = None,
        not_found: Type[ToolNotFound] = ToolNotFound,
    ) -> tuple[Invocation, str]:
        """Run the first candidate whose executable is on ``PATH``.

        Candidates are tried in order; only a missing executable moves on to
        the next one. A candidate that starts and fails raises immediately.

        Args:
            candidates: Ordered invocations, most preferred first.
            work_dir: Working directory for the chosen tool.
            not_found: Error type raised when the list is exhausted.

        Returns:
            The invocation that ran and its stdout.

        Raises:
            ToolNotFound: (or *not_found*) when no candidate is available.
            ToolExecutionError: If the chosen candidate exits non-zero.
        """
        for candidate in candidates:
            if not self.tool_available(candidate.tool):
                logger.debug("candidate unavailable: %s", candidate.tool)
                continue
            stdout = self.run_or_fail(candidate.tool, candidate.args, work_dir)
            return candidate, stdout

        tried = ", ".join(str(c) for c in candidates)
        tool = candidates[0].tool if candidates else "<none>"
        raise not_found(tool, f"None of the candidate commands are available: {tried}")

    def run_attached(
        self,
        tool: str,
        args: Sequence[str] = (),
        work_dir: Optional[Path] = None,
    ) -> int:
        """Run *tool* with the terminal attached (no capture) and return its exit status.

        Used for long-running interactive processes such as a nested shell.
        """
        command = [tool, *args]
        logger.debug("run attached: %s", " ".join(command))
        try:
            return subprocess.run(command, cwd=work_dir).returncode
        except FileNotFoundError as exc:
            raise ToolNotFound(tool) from exc

    def spawn(self, tool: str, args: Sequence[str] = ()) -> subprocess.Popen[str]:
        """Start *tool* with stdout piped for line-by-line reading."""
        command = [tool, *args]
        logger.debug("spawn: %s", " ".join(command))
        try:
            return subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError as exc:
            raise ToolNotFound(tool) from exc
