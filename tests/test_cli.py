"""CLI tests for the gnext Typer app."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from conftest import UUID, write_project
from gnext import __version__
from gnext.app import app
from gnext.exceptions import ResourceCompilerNotFound, ToolExecutionError
from gnext.models import BuildArtifact, BuildOptions, ExtensionIdentity

runner = CliRunner()


def _artifact(root: Path) -> BuildArtifact:
    identity = ExtensionIdentity(id=UUID, display_name="Clock", version="1.0.0")
    return BuildArtifact(archive_path=root / "build" / identity.archive_name, identity=identity)


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.parametrize("flags, expected", [(["-v"], 1), ([], 0)])
def test_verbose_routes_logging(project: Path, flags: list[str], expected: int) -> None:
    with patch("gnext.app.logging.basicConfig") as basic_config:
        result = runner.invoke(app, [*flags, "bump", "1.1.0", "--path", str(project)])

    assert result.exit_code == 0, result.output
    assert basic_config.call_count == expected
    if expected:
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

class TestBuildCommand:
    def test_passes_resolved_options(self, project: Path) -> None:
        (project / "gnext.json").write_text(json.dumps({"use_esbuild": True}))

        with patch("gnext.pipeline.run_build", return_value=_artifact(project)) as run_build:
            result = runner.invoke(app, ["build", "--install", "--path", str(project)])

        assert result.exit_code == 0, result.output
        run_build.assert_called_once_with(
            project, BuildOptions(install=True, use_esbuild=True)
        )

    def test_unsafe_reload_implies_install(self, project: Path) -> None:
        with patch("gnext.pipeline.run_build", return_value=_artifact(project)) as run_build:
            runner.invoke(app, ["build", "-r", "-C", str(project)])

        options = run_build.call_args.args[1]
        assert options.install is True
        assert options.unsafe_reload is True

    def test_not_a_project_exit_code(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["build", "--path", str(tmp_path)])

        assert result.exit_code == 3
        assert "inspect" in result.output

    def test_stage_failure_names_stage(self, project: Path) -> None:
        exc = ResourceCompilerNotFound("glib-compile-resources")
        exc.stage = "resources"

        with patch("gnext.pipeline.run_build", side_effect=exc):
            result = runner.invoke(app, ["build", "-C", str(project)])

        assert result.exit_code == 4
        assert "stage 'resources'" in result.output

    def test_invalid_project_config(self, project: Path) -> None:
        (project / "gnext.json").write_text("{")

        result = runner.invoke(app, ["build", "-C", str(project)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output


class TestBumpCommand:
    def test_bumps_both_files(self, project: Path) -> None:
        result = runner.invoke(app, ["bump", "1.1.0", "--path", str(project)])

        assert result.exit_code == 0, result.output
        package = json.loads((project / "package.json").read_text())
        metadata = json.loads((project / "metadata.json").read_text())
        assert package["version"] == "1.1.0"
        assert package["private"] is True
        assert metadata["version-name"] == "1.1.0"
        assert metadata["version"] == 4
        assert metadata["shell-version"] == ["46", "47"]

    def test_keeps_metadata_layout(self, project: Path) -> None:
        written = {
            "shell-version": [45, "46"],
            "version": 3,
            "uuid": "clock@example.com",
            "name": "Clock",
            "url": "https://example.com/clock",
        }
        (project / "metadata.json").write_text(json.dumps(written))

        result = runner.invoke(app, ["bump", "1.1.0", "--path", str(project)])

        assert result.exit_code == 0, result.output
        metadata = json.loads((project / "metadata.json").read_text())
        assert list(metadata) == [*written, "version-name"]
        assert metadata["shell-version"] == [45, "46"]
        assert metadata["version"] == 4

    def test_rejects_non_semver(self, project: Path) -> None:
        result = runner.invoke(app, ["bump", "v1.1", "--path", str(project)])

        assert result.exit_code == 2
        assert json.loads((project / "package.json").read_text())["version"] == "1.0.0"

    def test_release_refuses_dirty_tree(self, project: Path) -> None:
        def fake_run(tool, args=(), work_dir=None):
            from gnext.models import ToolResult

            if args[0] == "status":
                return ToolResult(exit_code=0, stdout=" M src/extension.js\n")
            return ToolResult(exit_code=0)

        with patch("gnext.shell.StageRunner.run", side_effect=fake_run):
            result = runner.invoke(app, ["bump", "1.1.0", "--release", "-C", str(project)])

        assert result.exit_code == 2
        assert "uncommitted changes" in result.output
        assert json.loads((project / "package.json").read_text())["version"] == "1.0.0"

    def test_release_runs_git_steps(self, project: Path) -> None:
        from gnext.models import ToolResult

        run = MagicMock(return_value=ToolResult(exit_code=0))
        with patch("gnext.shell.StageRunner.run", run):
            result = runner.invoke(app, ["bump", "1.1.0", "--release", "-C", str(project)])

        assert result.exit_code == 0, result.output
        git_args = [call.args[1] for call in run.call_args_list]
        assert git_args == [
            ["rev-parse", "--git-dir"],
            ["status", "--porcelain"],
            ["add", "package.json", "metadata.json"],
            ["commit", "-m", "chore: bump version to 1.1.0"],
            ["push"],
            ["tag", "v1.1.0"],
            ["push", "origin", "v1.1.0"],
        ]

    def test_release_push_failure(self, project: Path) -> None:
        def fake_run(tool, args=(), work_dir=None):
            from gnext.models import ToolResult

            if args == ["push"]:
                return ToolResult(exit_code=128, stderr="no upstream")
            return ToolResult(exit_code=0)

        with patch("gnext.shell.StageRunner.run", side_effect=fake_run):
            result = runner.invoke(app, ["bump", "1.1.0", "--release", "-C", str(project)])

        assert result.exit_code == 5
        assert "no upstream" in result.output


class TestPublishCommand:
    def test_requires_built_archive(self, project: Path) -> None:
        result = runner.invoke(
            app, ["publish", "-u", "me", "-p", "pw", "--path", str(project)]
        )
        assert result.exit_code == 1
        assert "gnext build" in result.output

    def test_requires_credentials(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GNOME_USERNAME", raising=False)
        monkeypatch.delenv("GNOME_PASSWORD", raising=False)
        archive = project / "build" / f"{UUID}.shell-extension-v1.0.0.zip"
        archive.parent.mkdir()
        archive.write_bytes(b"zip")

        result = runner.invoke(app, ["publish", "--path", str(project)])

        assert result.exit_code == 2

    def test_uploads_with_env_credentials(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GNOME_USERNAME", "me")
        monkeypatch.setenv("GNOME_PASSWORD", "pw")
        archive = project / "build" / f"{UUID}.shell-extension-v1.0.0.zip"
        archive.parent.mkdir()
        archive.write_bytes(b"zip")

        site = MagicMock()
        site.__enter__.return_value = site
        site.login.return_value = "tok"
        with patch("gnext.publish.ExtensionsSiteClient", return_value=site):
            result = runner.invoke(app, ["publish", "--path", str(project)])

        assert result.exit_code == 0, result.output
        site.login.assert_called_once_with("me", "pw")
        site.upload.assert_called_once_with("tok", archive)


class TestLogsCommand:
    def test_watches_with_extension_name(self, project: Path) -> None:
        with patch("gnext.host.watch_logs") as watch:
            result = runner.invoke(app, ["logs", "-f", "--path", str(project)])

        assert result.exit_code == 0, result.output
        assert watch.call_args.args[1:3] == ("Clock", True)

    def test_outside_project(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["logs", "--path", str(tmp_path)])
        assert result.exit_code == 3


def test_dev_propagates_shell_exit_code() -> None:
    with patch("gnext.host.run_nested_shell", return_value=1):
        result = runner.invoke(app, ["dev"])
    assert result.exit_code == 1


def test_bump_and_build_end_to_end(tmp_path: Path) -> None:
    root = write_project(tmp_path / "p")

    runner.invoke(app, ["bump", "2.0.0", "-C", str(root)])
    result = runner.invoke(app, ["build", "-C", str(root)])

    assert result.exit_code == 0, result.output
    assert (root / "build" / f"{UUID}.shell-extension-v2.0.0.zip").is_file()
