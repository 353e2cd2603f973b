"""gnext -- build, install and publish GNOME Shell extensions.

This package turns an extension project directory into the zip archive that
``gnome-extensions install`` and extensions.gnome.org accept. It detects
which toolchain stages a project needs (TypeScript, gettext, GResource,
GSettings schemas), runs them in order, and packs the result.

Typical workflow::

    gnext build --install        # compile, package and install
    gnext bump 1.2.0 --release   # bump versions, commit and tag
    gnext publish                # upload to extensions.gnome.org

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    project: Project feature detection and metadata files.
    shell: External tool invocation.
    pipeline: Build stages, packager and orchestrator.
    host: GNOME Shell host integration.
    publish: extensions.gnome.org upload client.
    config: XDG paths, JSON files and project build defaults.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting and stage status handles.
"""

__version__ = "0.3.0"
