"""Assemble the extension zip.

The archive root is the compiled-output tree. ``metadata.json``, an
optional ``LICENSE`` and an optional ``<uuid>.gresource`` are copied into
that tree just for the duration of archiving and removed again afterwards,
whether or not archiving succeeded. A file that already sat at one of those
paths gets its previous bytes back.

Member order and timestamps are fixed so that an unchanged tree always packs
to the same bytes.
"""

from __future__ import annotations

import logging
import os
import shutil
import zipfile
from pathlib import Path
from typing import Iterator, Optional

from gnext.exceptions import PackagingError
from gnext.models import BuildArtifact, ExtensionIdentity, ProjectDescriptor
from gnext.output import stage
from gnext.project import LICENSE_FILE, METADATA_FILE

logger = logging.getLogger(__name__)

_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class _InjectedFiles:
    """Files copied into the compiled-output tree for packaging only."""

    def __init__(self) -> None:
        self._entries: list[tuple[Path, Optional[bytes]]] = []

    def add(self, source: Path, dest: Path) -> None:
        previous = dest.read_bytes() if dest.is_file() else None
        self._entries.append((dest, previous))
        shutil.copyfile(source, dest)

    def restore(self) -> None:
        for dest, previous in reversed(self._entries):
            if previous is None:
                dest.unlink(missing_ok=True)
            else:
                dest.write_bytes(previous)
        self._entries.clear()


def _iter_members(tree: Path) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, arcname)`` for every file under *tree*, sorted by arcname."""
    files = [p for p in tree.rglob("*") if p.is_file()]
    for path in sorted(files, key=lambda p: p.relative_to(tree).as_posix()):
        yield path, path.relative_to(tree).as_posix()


def write_archive(tree: Path, archive_path: Path) -> int:
    """Zip the contents of *tree* into *archive_path* with tree-relative member names.

    The archive is written to a temporary sibling and renamed into place.

    Returns:
        Number of members written.
    """
    tmp_path = archive_path.with_name(f".{archive_path.name}.tmp")
    count = 0
    try:
        with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path, arcname in _iter_members(tree):
                info = zipfile.ZipInfo(arcname, date_time=_FIXED_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = (path.stat().st_mode & 0o777 | 0o100000) << 16
                zf.writestr(info, path.read_bytes())
                count += 1
        os.replace(tmp_path, archive_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return count


def create_package(
    project: ProjectDescriptor,
    identity: ExtensionIdentity,
    resource_blob: Optional[Path] = None,
) -> BuildArtifact:
    """Pack the compiled-output tree plus metadata into ``build/<name>.zip``.

    Args:
        project: Descriptor of the project being built.
        identity: Provides the uuid and version for file names.
        resource_blob: Compiled ``.gresource`` from the resources stage.

    Returns:
        The written :class:`~gnext.models.BuildArtifact`.

    Raises:
        PackagingError: If the tree is missing or the archive cannot be
            written. Injected files are removed first.
    """
    with stage("Creating extension package...") as status:
        tree = project.output_dir
        if not tree.is_dir():
            raise PackagingError(f"Compiled output directory not found: {tree}")

        project.build_dir.mkdir(parents=True, exist_ok=True)
        archive_path = project.build_dir / identity.archive_name
        if archive_path.exists():
            archive_path.unlink()

        injected = _InjectedFiles()
        try:
            if resource_blob is not None:
                injected.add(resource_blob, tree / f"{identity.id}.gresource")
            injected.add(project.root / METADATA_FILE, tree / METADATA_FILE)
            license_path = project.root / LICENSE_FILE
            if license_path.is_file():
                injected.add(license_path, tree / LICENSE_FILE)

            count = write_archive(tree, archive_path)
        except (OSError, zipfile.LargeZipFile) as exc:
            raise PackagingError(f"Failed to write {archive_path.name}: {exc}") from exc
        finally:
            injected.restore()

        logger.debug("packed %d members into %s", count, archive_path)
        status.succeed(f"Extension package created ({count} files)")

    return BuildArtifact(archive_path=archive_path, identity=identity)
