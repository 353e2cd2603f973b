"""Configuration management with XDG paths and atomic writes.

This module handles the small amount of persistent state gnext owns:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.gnext/`` elsewhere. Only the data directory is used, for crash logs.
* **Project config** -- an optional ``gnext.json`` next to
  ``metadata.json`` holding :class:`~gnext.models.BuildConfig` defaults.
* **JSON writes** -- :func:`write_json` persists project files with a
  temp-file-then-rename strategy (:func:`_atomic_write`) so that an
  interrupted ``gnext bump`` never leaves a truncated ``metadata.json``.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from gnext.exceptions import ConfigError
from gnext.models import BuildConfig

_APP_NAME = "gnext"
_PROJECT_CONFIG_FILENAME = "gnext.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/gnext/`` (default ``~/.local/share/gnext/``).
    On macOS/Windows: ``~/.gnext/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object from *path*.

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}")
    return data


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Atomically write *data* as 2-space indented JSON with a trailing newline."""
    _atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


# --- Project-local config ---


def load_build_config(root: Path) -> BuildConfig:
    """Load ``gnext.json`` from the project root.

    Returns:
        The parsed :class:`~gnext.models.BuildConfig`, or defaults when the
        file does not exist.

    Raises:
        ConfigError: If the file exists but is invalid JSON or fails
            validation.
    """
    path = root / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return BuildConfig()
    data = read_json(path)
    try:
        return BuildConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
