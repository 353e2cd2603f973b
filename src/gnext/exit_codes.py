"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~gnext.exceptions.GnextError` subclass.
CI scripts can inspect the exit code to tell a missing toolchain from a
failing one without parsing stderr.

Example::

    $ gnext build
    $ echo $?
    4   # EXIT_TOOL_NOT_FOUND -- e.g. glib-compile-resources is not installed
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_A_PROJECT = 3
"""The working directory is not an extension project (metadata files missing)."""

EXIT_TOOL_NOT_FOUND = 4
"""A mandatory external tool is not on ``PATH``."""

EXIT_TOOL_FAILED = 5
"""An external tool exited with a non-zero status."""

EXIT_PACKAGING_ERROR = 6
"""The extension archive could not be written."""

EXIT_HOST_ERROR = 7
"""Installing or enabling the extension on the running host failed."""

EXIT_PUBLISH_ERROR = 8
"""Authentication with, or upload to, extensions.gnome.org failed."""
