"""Shared test fixtures for gnext.

Provides an on-disk extension project factory, a recording fake
:class:`~gnext.shell.StageRunner` that emulates the external tools'
side effects, and automatic reset of the global output state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from gnext.exceptions import ToolNotFound
from gnext.models import ToolResult
from gnext.output import OutputManager, reset_output, set_output
from gnext.shell import StageRunner


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams the
    cached references become stale, so a fresh manager is forced on
    next use.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless OutputManager for the test."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Extension project factory
# ---------------------------------------------------------------------------

UUID = "clock@example.com"


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def write_project(
    root: Path,
    *,
    uuid: str = UUID,
    name: str = "Clock",
    version: str = "1.0.0",
    typed: bool = False,
    languages: Sequence[str] = (),
    resources: bool = False,
    schemas: bool = False,
    license_text: Optional[str] = None,
    dependencies_installed: bool = True,
    extra_metadata: Optional[dict[str, Any]] = None,
) -> Path:
    """Lay out a minimal GNOME extension project under *root*."""
    metadata: dict[str, Any] = {
        "uuid": uuid,
        "name": name,
        "description": "Shows a clock",
        "shell-version": ["46", "47"],
        "version": 3,
    }
    metadata.update(extra_metadata or {})
    _write_json(root / "metadata.json", metadata)
    _write_json(root / "package.json", {"name": "clock", "version": version, "private": True})

    src = root / "src"
    src.mkdir(parents=True, exist_ok=True)
    if typed:
        _write_json(root / "tsconfig.json", {"compilerOptions": {"outDir": "dist"}})
        (src / "extension.ts").write_text("export default class Clock {}\n")
        (src / "stylesheet.css").write_text(".clock { color: red; }\n")
        if dependencies_installed:
            (root / "node_modules").mkdir()
    else:
        (src / "extension.js").write_text("export default class Clock {}\n")

    for lang in languages:
        po = root / "po" / f"{lang}.po"
        po.parent.mkdir(parents=True, exist_ok=True)
        po.write_text(f'msgid "Clock"\nmsgstr "Clock-{lang}"\n')

    if resources:
        (root / "data" / "icons").mkdir(parents=True)
        (root / "data" / "icons" / "clock.svg").write_text("<svg/>")
        (root / "data" / "style.css").write_text("* {}")

    if schemas:
        schema_dir = src / "schemas"
        schema_dir.mkdir()
        (schema_dir / "org.gnome.shell.extensions.clock.gschema.xml").write_text(
            "<schemalist/>\n"
        )

    if license_text is not None:
        (root / "LICENSE").write_text(license_text)

    return root


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A plain JavaScript extension project with no optional features."""
    return write_project(tmp_path / "clock")


# ---------------------------------------------------------------------------
# Fake tool runner
# ---------------------------------------------------------------------------

Handler = Callable[[list[str], Optional[Path]], Optional[ToolResult]]


def fake_tsc(args: list[str], work_dir: Optional[Path]) -> None:
    """Emit ``dist/<name>.js`` for every ``src/<name>.ts``."""
    src = work_dir / "src"
    for ts in src.rglob("*.ts"):
        out = work_dir / "dist" / ts.relative_to(src).with_suffix(".js")
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text("// compiled\n")


def fake_msgfmt(args: list[str], work_dir: Optional[Path]) -> None:
    Path(args[args.index("-o") + 1]).write_bytes(b"\xde\x12\x04\x95")


def fake_glib_compile_resources(args: list[str], work_dir: Optional[Path]) -> None:
    target = next(a for a in args if a.startswith("--target="))
    Path(target.split("=", 1)[1]).write_bytes(b"GVariant")


def fake_glib_compile_schemas(args: list[str], work_dir: Optional[Path]) -> None:
    (Path(args[0]) / "gschemas.compiled").write_bytes(b"GVariant")


DEFAULT_HANDLERS: dict[str, Handler] = {
    "bunx": fake_tsc,
    "npx": fake_tsc,
    "msgfmt": fake_msgfmt,
    "glib-compile-resources": fake_glib_compile_resources,
    "glib-compile-schemas": fake_glib_compile_schemas,
}

ALL_TOOLS = (
    "bun",
    "bunx",
    "npm",
    "npx",
    "node",
    "msgfmt",
    "glib-compile-resources",
    "glib-compile-schemas",
    "gnome-extensions",
    "gdbus",
    "killall",
    "git",
)


class FakeRunner(StageRunner):
    """Records every invocation; tools not in *available* are missing.

    A handler may return a :class:`ToolResult`; returning ``None`` means
    success with empty output.
    """

    def __init__(
        self,
        available: Sequence[str] = ALL_TOOLS,
        handlers: Optional[dict[str, Handler]] = None,
    ) -> None:
        super().__init__()
        self.available = set(available)
        self.handlers = {**DEFAULT_HANDLERS, **(handlers or {})}
        self.calls: list[tuple[str, tuple[str, ...], Optional[Path]]] = []

    def tool_available(self, name: str) -> bool:
        return name in self.available

    def run(
        self,
        tool: str,
        args: Sequence[str] = (),
        work_dir: Optional[Path] = None,
    ) -> ToolResult:
        self.calls.append((tool, tuple(args), work_dir))
        if tool not in self.available:
            raise ToolNotFound(tool)
        handler = self.handlers.get(tool)
        result = handler(list(args), work_dir) if handler else None
        return result if result is not None else ToolResult(exit_code=0)

    @property
    def tools(self) -> list[str]:
        return [call[0] for call in self.calls]

    def args_for(self, tool: str) -> list[tuple[str, ...]]:
        return [call[1] for call in self.calls if call[0] == tool]


def failing(exit_code: int = 1, stderr: str = "boom") -> Handler:
    """Handler that makes a tool exit non-zero."""

    def _handler(args: list[str], work_dir: Optional[Path]) -> ToolResult:
        return ToolResult(exit_code=exit_code, stderr=stderr)

    return _handler


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
