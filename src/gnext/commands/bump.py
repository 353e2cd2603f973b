"""Bump command -- update version fields, optionally cut a git release.

``gnext bump 1.2.0`` sets ``package.json`` ``version`` and
``metadata.json`` ``version-name`` to ``1.2.0`` and increments the integer
``metadata.json`` ``version``. With ``--release`` the change is committed,
pushed and tagged ``v1.2.0``.
"""

from __future__ import annotations

import re
from pathlib import Path

import typer

from gnext.exceptions import GnextError, InvalidUsageError
from gnext.output import error, info, stage, success
from gnext.shell import StageRunner

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")


def validate_version(version: str) -> None:
    if not _SEMVER_RE.match(version):
        raise InvalidUsageError(
            "Invalid version format. Please use semantic versioning (e.g., 1.2.0)"
        )


def bump_version(root: Path, new_version: str) -> int:
    """Write *new_version* into both descriptors.

    Returns:
        The new integer ``metadata.json`` version.

    Raises:
        InvalidUsageError: *new_version* is not ``X.Y.Z``.
    """
    from gnext.project import read_metadata, read_package, write_metadata, write_package

    validate_version(new_version)

    package = read_package(root)
    metadata = read_metadata(root)

    package.version = new_version
    metadata.version_name = new_version
    metadata.version = (metadata.version or 0) + 1

    write_package(root, package)
    write_metadata(root, metadata)
    return metadata.version


def create_release(root: Path, new_version: str, runner: StageRunner) -> None:
    """Bump, commit, push, tag and push the tag.

    Raises:
        InvalidUsageError: Not a git work tree, or uncommitted changes exist.
        ToolExecutionError: Any git step failed.
    """
    validate_version(new_version)
    if not runner.run("git", ["rev-parse", "--git-dir"], root).ok:
        raise InvalidUsageError("Not in a git repository")

    porcelain = runner.run_or_fail("git", ["status", "--porcelain"], root)
    if porcelain.strip():
        raise InvalidUsageError(
            "There are uncommitted changes. Please commit or stash them first.\n"
            + porcelain.rstrip()
        )

    tag = f"v{new_version}"
    with stage(f"Creating release {new_version}...") as status:
        bump_version(root, new_version)
        status.update("Committing version files...")
        runner.run_or_fail("git", ["add", "package.json", "metadata.json"], root)
        runner.run_or_fail(
            "git", ["commit", "-m", f"chore: bump version to {new_version}"], root
        )
        status.update("Pushing to remote...")
        runner.run_or_fail("git", ["push"], root)
        status.update(f"Creating tag {tag}...")
        runner.run_or_fail("git", ["tag", tag], root)
        runner.run_or_fail("git", ["push", "origin", tag], root)
        status.succeed(f"Release {new_version} created")


def bump_command(
    version: str = typer.Argument(help="New semantic version, e.g. 1.2.0."),
    release: bool = typer.Option(
        False, "--release", "-r", help="Create git release (commit, push, tag)."
    ),
    path: Path = typer.Option(
        Path("."), "--path", "-C", help="Extension project directory."
    ),
) -> None:
    """Bump extension version.

    Example::

        gnext bump 1.2.0
        gnext bump 1.2.0 --release
    """
    try:
        if release:
            create_release(path, version, StageRunner())
            info(f"Tag v{version} created and pushed")
        else:
            schema_version = bump_version(path, version)
            success("Version bumped successfully!")
            info(f"package.json: {version}")
            info(f"metadata.json: version-name = {version}, version = {schema_version}")
    except GnextError as exc:
        error(f"Version bump failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None
