"""Canonical Pydantic models shared across all gnext modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Project files** -- JSON documents read from (and written back to) the
extension project:
    :class:`ExtensionMetadata` (``metadata.json``), :class:`PackageJson`
    (``package.json``) and :class:`BuildConfig` (optional ``gnext.json``).

**Build records** -- immutable values that flow through one build:
    :class:`ExtensionIdentity`, :class:`ProjectDescriptor`,
    :class:`StageResult`, :class:`BuildArtifact` and :class:`BuildOptions`.

**Tool invocation** -- :class:`ToolResult` and :class:`Invocation`.

The two project-file models use ``extra="allow"`` so that keys gnext does
not know about are preserved in ``model_extra`` and written back unchanged,
in the order they were read.

The directory names of the project layout are defined here as well, next
to :class:`ProjectDescriptor` which resolves them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


# --- Project layout ---

SOURCE_DIR = "src"
COMPILED_DIR = "dist"
BUILD_DIR = "build"
TRANSLATIONS_DIR = "po"
RESOURCES_DIR = "data"
SCHEMAS_DIR = "schemas"


# --- Project files ---


class _ProjectFile(BaseModel):
    """A JSON project file written back in the key order it was read in.

    Keys that were not in the loaded document (newly set fields) follow
    the original keys.
    """

    _key_order: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def _remember_key_order(
        cls, data: Any, handler: Callable[[Any], _ProjectFile]
    ) -> _ProjectFile:
        model = handler(data)
        if isinstance(data, dict):
            model._key_order = list(data)
        return model

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise with the on-disk key spelling, omitting keys never present."""
        dumped = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        ordered = {key: dumped.pop(key) for key in self._key_order if key in dumped}
        ordered.update(dumped)
        return ordered


class ExtensionMetadata(_ProjectFile):
    """The extension descriptor, ``metadata.json``.

    GNOME Shell reads this file from the root of the installed extension.
    Hyphenated keys are exposed under snake_case attribute names and
    serialised back with their original spelling.

    Example::

        ExtensionMetadata.model_validate({
            "uuid": "clock@example.com",
            "name": "Clock",
            "description": "Shows a clock",
            "shell-version": ["46", "47"],
        })
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    uuid: str = Field(description="Stable unique identifier, e.g. name@domain")
    name: str = Field(description="Human-readable extension name")
    description: str = ""
    version: Optional[int] = Field(
        default=None, description="Integer schema version, bumped on every release"
    )
    version_name: Optional[str] = Field(default=None, alias="version-name")
    shell_version: list[Union[str, int]] = Field(
        default_factory=list,
        alias="shell-version",
        description="Supported shell releases; integers are kept as written",
    )
    url: Optional[str] = None


class PackageJson(_ProjectFile):
    """The package descriptor, ``package.json``. Only ``name`` and ``version`` are read."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str
    description: Optional[str] = None


class BuildConfig(BaseModel):
    """Project-local build defaults read from ``gnext.json``.

    Flags given on the command line are OR-ed with these values, so a file
    setting can turn a behaviour on but a missing flag never turns it off.
    """

    use_esbuild: bool = False
    install: bool = False
    unsafe_reload: bool = False
    tool_timeout: Optional[int] = Field(
        default=None, description="Seconds before an external tool is killed"
    )


# --- Build records ---


class ExtensionIdentity(BaseModel):
    """Identity of the extension being built, read once at build start."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    version: str

    @classmethod
    def from_descriptors(
        cls, metadata: ExtensionMetadata, package: PackageJson
    ) -> ExtensionIdentity:
        """Combine ``uuid``/``name`` from metadata.json with ``version`` from package.json."""
        return cls(id=metadata.uuid, display_name=metadata.name, version=package.version)

    @property
    def archive_name(self) -> str:
        """Deterministic artifact file name: ``<uuid>.shell-extension-v<version>.zip``."""
        return f"{self.id}.shell-extension-v{self.version}.zip"


class ProjectDescriptor(BaseModel):
    """Feature flags of one project, computed once per build.

    ``output_dir`` is the compiled-output tree: ``dist/`` for TypeScript
    projects, ``src/`` otherwise. Every stage resolves paths through it.
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    uses_typed_source: bool
    has_translations: bool
    has_resources: bool
    has_schemas: bool
    output_dir: Path

    @property
    def source_dir(self) -> Path:
        return self.root / SOURCE_DIR

    @property
    def build_dir(self) -> Path:
        return self.root / BUILD_DIR

    @property
    def po_dir(self) -> Path:
        return self.root / TRANSLATIONS_DIR

    @property
    def data_dir(self) -> Path:
        return self.root / RESOURCES_DIR

    @property
    def schemas_dir(self) -> Path:
        return self.output_dir / SCHEMAS_DIR


class StageResult(BaseModel):
    """Outcome of one pipeline stage, consumed immediately by the orchestrator."""

    stage_name: str
    succeeded: bool
    skipped: bool = False
    produced_path: Optional[Path] = None
    diagnostic: Optional[str] = None


class BuildArtifact(BaseModel):
    """The packed extension zip. Exactly one exists per successful build."""

    model_config = ConfigDict(frozen=True)

    archive_path: Path
    identity: ExtensionIdentity


class BuildOptions(BaseModel):
    """Effective options for one ``gnext build`` invocation."""

    install: bool = False
    unsafe_reload: bool = False
    use_esbuild: bool = False
    tool_timeout: Optional[int] = None

    @classmethod
    def resolve(
        cls,
        config: BuildConfig,
        *,
        install: bool = False,
        unsafe_reload: bool = False,
        use_esbuild: bool = False,
    ) -> BuildOptions:
        """Merge CLI flags over project config. ``unsafe_reload`` implies ``install``."""
        reload_ = unsafe_reload or config.unsafe_reload
        return cls(
            install=install or config.install or reload_,
            unsafe_reload=reload_,
            use_esbuild=use_esbuild or config.use_esbuild,
            tool_timeout=config.tool_timeout,
        )


# --- Tool invocation ---


class ToolResult(BaseModel):
    """Captured outcome of one external process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Invocation(BaseModel):
    """One candidate command line in an ordered fallback chain."""

    model_config = ConfigDict(frozen=True)

    tool: str
    args: tuple[str, ...] = ()

    def __str__(self) -> str:
        return " ".join([self.tool, *self.args])
