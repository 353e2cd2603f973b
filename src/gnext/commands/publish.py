"""Publish command -- upload the built zip to extensions.gnome.org.

Credentials come from ``--username``/``--password`` or, failing that, the
``GNOME_USERNAME``/``GNOME_PASSWORD`` environment variables. The archive
must already exist; run ``gnext build`` first.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer

from gnext.exceptions import GnextError
from gnext.output import error, info, stage, success, suggest


def publish_command(
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="Username for extensions.gnome.org."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password for extensions.gnome.org."
    ),
    path: Path = typer.Option(
        Path("."), "--path", "-C", help="Extension project directory."
    ),
) -> None:
    """Publish extension to extensions.gnome.org.

    Example::

        gnext publish --username me
        GNOME_USERNAME=me GNOME_PASSWORD=... gnext publish
    """
    from gnext.models import BUILD_DIR
    from gnext.project import load_identity
    from gnext.publish import ExtensionsSiteClient

    try:
        identity = load_identity(path)
    except GnextError as exc:
        error(f"Publish failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    archive_path = path / BUILD_DIR / identity.archive_name
    if not archive_path.is_file():
        error(f"Extension package not found: {archive_path}")
        suggest("Build the extension first with: gnext build")
        raise typer.Exit(code=1)

    username = username or os.environ.get("GNOME_USERNAME")
    password = password or os.environ.get("GNOME_PASSWORD")
    if not username or not password:
        error("Username and password are required.")
        suggest("Pass --username/--password or set GNOME_USERNAME and GNOME_PASSWORD.")
        raise typer.Exit(code=2)

    info(f"Publishing {identity.display_name} ({identity.id}) version {identity.version}...")

    try:
        with ExtensionsSiteClient() as site:
            with stage("Authenticating with extensions.gnome.org...") as status:
                token = site.login(username, password)
                status.succeed("Authentication successful")
            with stage(f"Uploading {archive_path.name}...") as status:
                site.upload(token, archive_path)
                status.succeed("Extension uploaded successfully!")
    except GnextError as exc:
        raise typer.Exit(code=exc.exit_code) from None

    success("Your extension has been published to extensions.gnome.org")
