"""The four conditional build stages.

Each stage opens its own :class:`~gnext.output.StageStatus`, does its work
through a :class:`~gnext.shell.StageRunner`, and returns a
:class:`~gnext.models.StageResult`. Errors propagate as typed
:class:`~gnext.exceptions.GnextError` subclasses; the status handle is
failed on the way out.

==============  =================================  ==================
Stage           Tool                               Missing tool
==============  =================================  ==================
compile         bun/npm, tsc via bunx/npx, esbuild fatal
translate       msgfmt                             skipped, warning
resources       glib-compile-resources             fatal
schemas         glib-compile-schemas               fatal
==============  =================================  ==================
"""

from __future__ import annotations

import shutil
import xml.etree.ElementTree as ET
from pathlib import Path

from gnext.exceptions import (
    CompilerNotFound,
    ResourceCompilerNotFound,
    SchemaCompilerNotFound,
    ToolNotFound,
)
from gnext.models import Invocation, ProjectDescriptor, StageResult
from gnext.output import stage, warning
from gnext.project import TRANSLATION_SUFFIX, TYPED_SOURCE_SUFFIX
from gnext.shell import StageRunner

DEPENDENCY_DIR = "node_modules"
BUNDLER_SCRIPT = Path("scripts") / "esbuild.js"

INSTALL_CANDIDATES = (
    Invocation(tool="bun", args=("install",)),
    Invocation(tool="npm", args=("install",)),
)
COMPILER_CANDIDATES = (
    Invocation(tool="bunx", args=("tsc",)),
    Invocation(tool="npx", args=("tsc",)),
)
BUNDLER_CANDIDATES = (
    Invocation(tool="bun", args=(f"./{BUNDLER_SCRIPT.as_posix()}",)),
    Invocation(tool="node", args=(f"./{BUNDLER_SCRIPT.as_posix()}",)),
)

MSGFMT = "msgfmt"
RESOURCE_COMPILER = "glib-compile-resources"
SCHEMA_COMPILER = "glib-compile-schemas"


# ------------------------------------------------------------------ #
# Compile
# ------------------------------------------------------------------ #


def compile_typed_source(
    project: ProjectDescriptor,
    runner: StageRunner,
    use_esbuild: bool = False,
) -> StageResult:
    """Compile TypeScript from ``src/`` into ``dist/`` from scratch.

    1. Remove any previous ``dist/``.
    2. Install dependencies when ``node_modules/`` is missing.
    3. Run the esbuild script when requested and present, else ``tsc``.
    4. Copy every non-``.ts`` file from ``src/`` into ``dist/``.

    Raises:
        ToolNotFound: No package manager available for the install step.
        CompilerNotFound: Neither ``bunx`` nor ``npx`` is available.
        ToolExecutionError: The install or compile step exited non-zero.
    """
    with stage("Compiling TypeScript...") as status:
        if project.output_dir.exists():
            shutil.rmtree(project.output_dir)

        if not (project.root / DEPENDENCY_DIR).is_dir():
            status.update("Installing dependencies...")
            runner.run_first_available(INSTALL_CANDIDATES, project.root, ToolNotFound)

        candidates = COMPILER_CANDIDATES
        if use_esbuild:
            if (project.root / BUNDLER_SCRIPT).is_file():
                status.update("Compiling with esbuild...")
                candidates = BUNDLER_CANDIDATES
            else:
                warning(f"{BUNDLER_SCRIPT.as_posix()} not found, falling back to tsc")
        if candidates is COMPILER_CANDIDATES:
            status.update("Compiling with tsc...")

        invocation, _ = runner.run_first_available(
            candidates, project.root, CompilerNotFound
        )

        copied = copy_assets(project.source_dir, project.output_dir)
        status.succeed(f"TypeScript compiled with {invocation.tool} ({copied} assets copied)")

    return StageResult(
        stage_name="compile", succeeded=True, produced_path=project.output_dir
    )


def copy_assets(source_dir: Path, output_dir: Path) -> int:
    """Copy every file not ending in ``.ts`` from *source_dir*, keeping relative paths.

    Returns:
        Number of files copied.
    """
    copied = 0
    if not source_dir.is_dir():
        return copied
    for path in sorted(source_dir.rglob("*")):
        if not path.is_file() or path.name.endswith(TYPED_SOURCE_SUFFIX):
            continue
        dest = output_dir / path.relative_to(source_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, dest)
        copied += 1
    return copied


# ------------------------------------------------------------------ #
# Translate
# ------------------------------------------------------------------ #


def compile_translations(
    project: ProjectDescriptor,
    runner: StageRunner,
    uuid: str,
) -> StageResult:
    """Compile ``po/<lang>.po`` into ``<tree>/locale/<lang>/LC_MESSAGES/<uuid>.mo``.

    Skipped with a warning when ``msgfmt`` is not installed. Any single
    catalog failing aborts the build.
    """
    with stage("Compiling translations...") as status:
        if not runner.tool_available(MSGFMT):
            status.warn("gettext (msgfmt) not installed. Skipping translations.")
            return StageResult(
                stage_name="translate",
                succeeded=True,
                skipped=True,
                diagnostic="msgfmt not installed",
            )

        locale_root = project.output_dir / "locale"
        po_files = sorted(
            p for p in project.po_dir.iterdir()
            if p.is_file() and p.name.endswith(TRANSLATION_SUFFIX)
        )
        for po_file in po_files:
            lang = po_file.name[: -len(TRANSLATION_SUFFIX)]
            status.update(f"Compiling translations ({lang})...")
            messages_dir = locale_root / lang / "LC_MESSAGES"
            messages_dir.mkdir(parents=True, exist_ok=True)
            runner.run_or_fail(
                MSGFMT,
                ["-c", str(po_file), "-o", str(messages_dir / f"{uuid}.mo")],
                project.root,
            )

        status.succeed(f"Translations compiled ({len(po_files)} languages)")

    return StageResult(stage_name="translate", succeeded=True, produced_path=locale_root)


# ------------------------------------------------------------------ #
# Resources
# ------------------------------------------------------------------ #


def resource_manifest(data_dir: Path) -> str:
    """Render a GResource XML manifest listing every file under *data_dir*.

    Paths are POSIX-style, relative to *data_dir*, and sorted so the
    manifest is byte-stable across filesystems.
    """
    files = sorted(
        p.relative_to(data_dir).as_posix() for p in data_dir.rglob("*") if p.is_file()
    )
    root = ET.Element("gresources")
    bundle = ET.SubElement(root, "gresource")
    for name in files:
        ET.SubElement(bundle, "file").text = name
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f"<?xml version='1.0' encoding='UTF-8'?>\n{body}\n"


def compile_resources(
    project: ProjectDescriptor,
    runner: StageRunner,
    uuid: str,
) -> StageResult:
    """Bundle ``data/`` into ``build/<uuid>.gresource``.

    Raises:
        ResourceCompilerNotFound: ``glib-compile-resources`` is missing.
        ToolExecutionError: The compiler exited non-zero.
    """
    with stage("Compiling resources...") as status:
        if not runner.tool_available(RESOURCE_COMPILER):
            raise ResourceCompilerNotFound(
                RESOURCE_COMPILER,
                f"{RESOURCE_COMPILER} not installed. Cannot compile resources.",
            )

        project.build_dir.mkdir(parents=True, exist_ok=True)
        manifest = project.build_dir / f"{uuid}.gresource.xml"
        target = project.build_dir / f"{uuid}.gresource"
        manifest.write_text(resource_manifest(project.data_dir), encoding="utf-8")

        runner.run_or_fail(
            RESOURCE_COMPILER,
            [
                "--generate",
                str(manifest),
                f"--sourcedir={project.data_dir}",
                f"--target={target}",
            ],
            project.root,
        )
        status.succeed("Resources compiled")

    return StageResult(stage_name="resources", succeeded=True, produced_path=target)


# ------------------------------------------------------------------ #
# Schemas
# ------------------------------------------------------------------ #


def compile_schemas(project: ProjectDescriptor, runner: StageRunner) -> StageResult:
    """Compile ``<tree>/schemas`` in place, producing ``gschemas.compiled``.

    Raises:
        SchemaCompilerNotFound: ``glib-compile-schemas`` is missing.
        ToolExecutionError: The compiler exited non-zero.
    """
    with stage("Compiling schemas...") as status:
        if not runner.tool_available(SCHEMA_COMPILER):
            raise SchemaCompilerNotFound(
                SCHEMA_COMPILER,
                f"{SCHEMA_COMPILER} not installed. Cannot compile schemas.",
            )
        runner.run_or_fail(SCHEMA_COMPILER, [str(project.schemas_dir)], project.root)
        status.succeed("Schemas compiled")

    return StageResult(
        stage_name="schemas", succeeded=True, produced_path=project.schemas_dir
    )
