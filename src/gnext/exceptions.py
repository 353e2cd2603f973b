"""Exception hierarchy for gnext.

All exceptions inherit from :class:`GnextError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`gnext.exit_codes`.
The top-level error handler in :func:`gnext.app.main` catches
``GnextError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    GnextError (exit 1)
    +-- InvalidUsageError           (exit 2)
    +-- NotAProjectDirectory        (exit 3)
    +-- ToolNotFound                (exit 4)
    |   +-- CompilerNotFound
    |   +-- ResourceCompilerNotFound
    |   +-- SchemaCompilerNotFound
    +-- ToolExecutionError          (exit 5)
    +-- PackagingError              (exit 6)
    +-- HostIntegrationError        (exit 7)
    +-- PublishError                (exit 8)
    +-- ConfigError                 (exit 1)
"""

from __future__ import annotations

from typing import Optional

from gnext.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HOST_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NOT_A_PROJECT,
    EXIT_PACKAGING_ERROR,
    EXIT_PUBLISH_ERROR,
    EXIT_TOOL_FAILED,
    EXIT_TOOL_NOT_FOUND,
)


class GnextError(Exception):
    """Base exception for all gnext errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`gnext.exit_codes`. The build orchestrator fills
    in :attr:`stage` when the error escapes one of its stages so the CLI can
    name the failing step.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.stage: Optional[str] = None


class InvalidUsageError(GnextError):
    """Raised for invalid CLI arguments (e.g. a malformed version string)."""

    exit_code = EXIT_INVALID_USAGE


class NotAProjectDirectory(GnextError):
    """Raised when ``metadata.json`` or ``package.json`` is missing."""

    exit_code = EXIT_NOT_A_PROJECT


class ToolNotFound(GnextError):
    """Raised when a mandatory external executable is not on ``PATH``.

    Args:
        tool: Name of the missing executable.
        message: Optional message; a default naming the tool is used
            otherwise.
    """

    exit_code = EXIT_TOOL_NOT_FOUND

    def __init__(self, tool: str, message: str | None = None):
        super().__init__(message or f"{tool} not found on PATH")
        self.tool = tool


class CompilerNotFound(ToolNotFound):
    """Raised when no TypeScript compiler invocation could be started."""


class ResourceCompilerNotFound(ToolNotFound):
    """Raised when ``glib-compile-resources`` is missing but ``data/`` has files."""


class SchemaCompilerNotFound(ToolNotFound):
    """Raised when ``glib-compile-schemas`` is missing but schemas exist."""


class ToolExecutionError(GnextError):
    """Raised when an external tool exits with a non-zero status.

    Args:
        tool: The executable that failed.
        args: Arguments it was invoked with.
        exit_code_: The tool's exit status (named to avoid clashing with
            the process exit code attribute).
        stderr: Captured standard error of the tool.
    """

    exit_code = EXIT_TOOL_FAILED

    def __init__(
        self,
        tool: str,
        args: list[str] | tuple[str, ...],
        exit_code_: int,
        stderr: str = "",
    ):
        command = " ".join([tool, *args])
        message = f"Command failed ({exit_code_}): {command}"
        if stderr.strip():
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)
        self.tool = tool
        self.args_ = tuple(args)
        self.tool_exit_code = exit_code_
        self.stderr = stderr


class PackagingError(GnextError):
    """Raised when the extension zip cannot be assembled or written."""

    exit_code = EXIT_PACKAGING_ERROR


class HostIntegrationError(GnextError):
    """Raised when ``gnome-extensions`` install/enable fails or the shell version is unknown."""

    exit_code = EXIT_HOST_ERROR


class PublishError(GnextError):
    """Raised when authenticating with or uploading to extensions.gnome.org fails."""

    exit_code = EXIT_PUBLISH_ERROR


class ConfigError(GnextError):
    """Raised for malformed project files (invalid JSON, missing mandatory fields)."""

    exit_code = EXIT_GENERIC_FAILURE
