"""Project feature detection and metadata files.

:func:`inspect` probes an extension project once per build and returns an
immutable :class:`~gnext.models.ProjectDescriptor`. The probes are pure
filesystem reads and run concurrently; every later stage trusts the
descriptor even if the tree changes under it.

Layout conventions (relative to the project root)::

    metadata.json      extension descriptor (mandatory)
    package.json       package descriptor (mandatory)
    tsconfig.json      present => TypeScript; output goes to dist/
    src/               raw sources; the compiled-output tree for JS projects
    po/*.po            gettext translations
    data/              files bundled into <uuid>.gresource
    src/schemas/       GSettings schemas (copied to dist/schemas by compile)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from gnext.config import read_json, write_json
from gnext.exceptions import ConfigError, NotAProjectDirectory
from gnext.models import (
    COMPILED_DIR,
    RESOURCES_DIR,
    SCHEMAS_DIR,
    SOURCE_DIR,
    TRANSLATIONS_DIR,
    ExtensionIdentity,
    ExtensionMetadata,
    PackageJson,
    ProjectDescriptor,
)

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
PACKAGE_FILE = "package.json"
LICENSE_FILE = "LICENSE"
TSCONFIG_FILE = "tsconfig.json"

TYPED_SOURCE_SUFFIX = ".ts"
TRANSLATION_SUFFIX = ".po"
SCHEMA_SUFFIX = ".gschema.xml"


# --- Probes ---


def uses_typed_source(root: Path) -> bool:
    """A ``tsconfig.json`` at the root marks a TypeScript project."""
    return (root / TSCONFIG_FILE).is_file()


def output_dir_for(root: Path, typed: bool) -> Path:
    """Compiled-output tree: ``dist/`` for TypeScript, ``src/`` otherwise."""
    return root / (COMPILED_DIR if typed else SOURCE_DIR)


def _has_file(directory: Path, suffix: Optional[str] = None, recursive: bool = False) -> bool:
    """True if *directory* exists and holds at least one (matching) file."""
    if not directory.is_dir():
        return False
    entries = directory.rglob("*") if recursive else directory.iterdir()
    for entry in entries:
        if entry.is_file() and (suffix is None or entry.name.endswith(suffix)):
            return True
    return False


def has_translations(root: Path) -> bool:
    return _has_file(root / TRANSLATIONS_DIR, TRANSLATION_SUFFIX)


def has_resources(root: Path) -> bool:
    return _has_file(root / RESOURCES_DIR, recursive=True)


def has_schemas(root: Path) -> bool:
    """Schemas are looked up in the raw tree; compilation happens later."""
    return _has_file(root / SOURCE_DIR / SCHEMAS_DIR, SCHEMA_SUFFIX)


def require_project(root: Path) -> None:
    """Raise :class:`NotAProjectDirectory` unless both descriptor files exist."""
    for name in (METADATA_FILE, PACKAGE_FILE):
        if not (root / name).is_file():
            raise NotAProjectDirectory(
                f"{name} not found in {root}. Are you in a GNOME extension directory?"
            )


def inspect(root: Path) -> ProjectDescriptor:
    """Probe *root* and return its :class:`ProjectDescriptor`.

    Raises:
        NotAProjectDirectory: If ``metadata.json`` or ``package.json`` is
            missing. Nothing else is probed in that case.
    """
    root = root.resolve()
    require_project(root)

    with ThreadPoolExecutor(max_workers=4, thread_name_prefix="gnext-probe") as pool:
        typed = pool.submit(uses_typed_source, root)
        translations = pool.submit(has_translations, root)
        resources = pool.submit(has_resources, root)
        schemas = pool.submit(has_schemas, root)

        descriptor = ProjectDescriptor(
            root=root,
            uses_typed_source=typed.result(),
            has_translations=translations.result(),
            has_resources=resources.result(),
            has_schemas=schemas.result(),
            output_dir=output_dir_for(root, typed.result()),
        )

    logger.debug("inspected %s: %s", root, descriptor)
    return descriptor


# --- Metadata files ---


def read_metadata(root: Path) -> ExtensionMetadata:
    """Load ``metadata.json``.

    Raises:
        NotAProjectDirectory: If the file is missing.
        ConfigError: If it is malformed or lacks ``uuid``/``name``.
    """
    path = root / METADATA_FILE
    if not path.is_file():
        raise NotAProjectDirectory(
            f"{METADATA_FILE} not found. Are you in a GNOME extension directory?"
        )
    try:
        return ExtensionMetadata.model_validate(read_json(path))
    except ValueError as exc:
        raise ConfigError(f"Invalid {METADATA_FILE}: {exc}") from exc


def read_package(root: Path) -> PackageJson:
    """Load ``package.json``.

    Raises:
        NotAProjectDirectory: If the file is missing.
        ConfigError: If it is malformed or lacks ``name``/``version``.
    """
    path = root / PACKAGE_FILE
    if not path.is_file():
        raise NotAProjectDirectory(f"{PACKAGE_FILE} not found.")
    try:
        return PackageJson.model_validate(read_json(path))
    except ValueError as exc:
        raise ConfigError(f"Invalid {PACKAGE_FILE}: {exc}") from exc


def write_metadata(root: Path, metadata: ExtensionMetadata) -> None:
    write_json(root / METADATA_FILE, metadata.to_json_dict())


def write_package(root: Path, package: PackageJson) -> None:
    write_json(root / PACKAGE_FILE, package.to_json_dict())


def load_identity(root: Path) -> ExtensionIdentity:
    """Read both descriptors and combine them into an :class:`ExtensionIdentity`."""
    return ExtensionIdentity.from_descriptors(read_metadata(root), read_package(root))
