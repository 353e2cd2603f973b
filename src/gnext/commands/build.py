"""Build command -- compile and pack the extension, optionally install it.

Implements ``gnext build``. Options given on the command line are merged
over the project's ``gnext.json`` (see :class:`~gnext.models.BuildConfig`)
and handed to :func:`~gnext.pipeline.run_build`.
"""

from __future__ import annotations

from pathlib import Path

import typer

from gnext.exceptions import GnextError
from gnext.output import error, suggest


def build_command(
    install: bool = typer.Option(
        False, "--install", "-i", help="Install the extension after building."
    ),
    unsafe_reload: bool = typer.Option(
        False,
        "--unsafe-reload",
        "-r",
        help="Build, install, and reload GNOME Shell (X11 only, requires unsafe mode).",
    ),
    use_esbuild: bool = typer.Option(
        False,
        "--use-esbuild",
        help="Compile with scripts/esbuild.js (bundled output, not recommended for EGO).",
    ),
    path: Path = typer.Option(
        Path("."), "--path", "-C", help="Extension project directory."
    ),
) -> None:
    """Build the GNOME extension.

    Runs only the stages the project needs (TypeScript, translations,
    resources, schemas), then writes
    ``build/<uuid>.shell-extension-v<version>.zip``.

    Example::

        gnext build
        gnext build --install
        gnext build --unsafe-reload
    """
    from gnext.config import load_build_config
    from gnext.models import BuildOptions
    from gnext.pipeline import run_build

    try:
        config = load_build_config(path)
        options = BuildOptions.resolve(
            config,
            install=install,
            unsafe_reload=unsafe_reload,
            use_esbuild=use_esbuild,
        )
        run_build(path, options)
    except GnextError as exc:
        where = f" at stage '{exc.stage}'" if exc.stage else ""
        error(f"Build failed{where}: {exc}")
        if exc.stage == "inspect":
            suggest("Run gnext build from the extension root, or pass --path.")
        raise typer.Exit(code=exc.exit_code) from None
