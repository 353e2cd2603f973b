"""Build orchestration.

:func:`run_build` drives one build::

    inspect -> [compile] -> [translate] -> [resources] -> [schemas] -> package
            -> [install -> enable -> [reload | ask for re-login]]

Bracketed steps are gated by the project descriptor or the build options.
The first failing step stops everything after it; the error propagates with
its :attr:`~gnext.exceptions.GnextError.stage` set to the failing step's
name. Outputs of steps that already finished are left on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, TypeVar

from gnext import host
from gnext.exceptions import GnextError
from gnext.models import BuildArtifact, BuildOptions, ProjectDescriptor
from gnext.output import info, success
from gnext.pipeline.packager import create_package
from gnext.pipeline.stages import (
    compile_resources,
    compile_schemas,
    compile_translations,
    compile_typed_source,
)
from gnext.project import inspect, load_identity
from gnext.shell import StageRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_stage(name: str, func: Callable[[], T]) -> T:
    """Run one step, tagging any gnext error with the step name."""
    try:
        result = func()
    except GnextError as exc:
        if exc.stage is None:
            exc.stage = name
        raise
    logger.debug("stage %s: %s", name, result)
    return result


def run_build(
    root: Path,
    options: Optional[BuildOptions] = None,
    runner: Optional[StageRunner] = None,
) -> BuildArtifact:
    """Build the extension project at *root* and optionally install it.

    Args:
        root: Project directory containing ``metadata.json``.
        options: Effective build options. Defaults to a plain build.
        runner: Tool runner; a default :class:`StageRunner` honouring
            ``options.tool_timeout`` is created when omitted.

    Returns:
        The packed :class:`~gnext.models.BuildArtifact`.

    Raises:
        NotAProjectDirectory: Before any stage runs.
        GnextError: From the first failing step, with ``stage`` set.
    """
    options = options or BuildOptions()
    runner = runner or StageRunner(timeout=options.tool_timeout)

    project = _run_stage("inspect", lambda: inspect(root))
    identity = _run_stage("inspect", lambda: load_identity(project.root))

    info(f"Building extension: {identity.display_name} ({identity.id})")
    info(f"Version: {identity.version}")

    resource_blob = run_stages(project, runner, identity.id, options.use_esbuild)
    artifact = _run_stage(
        "package", lambda: create_package(project, identity, resource_blob)
    )

    success("Extension built successfully!")
    info(f"Package: {artifact.archive_path}")

    if options.install:
        install_tail(runner, artifact, options.unsafe_reload)

    return artifact


def run_stages(
    project: ProjectDescriptor,
    runner: StageRunner,
    uuid: str,
    use_esbuild: bool = False,
) -> Optional[Path]:
    """Run the gated stages in order and return the resource blob, if any."""
    if project.uses_typed_source:
        _run_stage("compile", lambda: compile_typed_source(project, runner, use_esbuild))

    if project.has_translations:
        _run_stage("translate", lambda: compile_translations(project, runner, uuid))

    resource_blob: Optional[Path] = None
    if project.has_resources:
        result = _run_stage("resources", lambda: compile_resources(project, runner, uuid))
        resource_blob = result.produced_path

    if project.has_schemas:
        _run_stage("schemas", lambda: compile_schemas(project, runner))

    return resource_blob


def install_tail(runner: StageRunner, artifact: BuildArtifact, unsafe_reload: bool) -> None:
    """Install, enable, then reload the shell or tell the user to log out.

    Enable only runs after a successful install; reload only after both,
    and only when *unsafe_reload* was requested.
    """
    _run_stage("install", lambda: host.install_extension(runner, artifact.archive_path))
    _run_stage("enable", lambda: host.enable_extension(runner, artifact.identity.id))

    if unsafe_reload and host.restart_shell(runner):
        return
    info("Log out and log back in to apply changes.")
