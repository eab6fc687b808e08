"""Tests for CLI functionality."""

import json

import pytest
from typer.testing import CliRunner

from apps.cli.main import app
from locksmith.lockfile import LOCK_FILE_NAME


def flat(output):
    """Collapse rich's line wrapping so assertions do not depend on width."""
    return " ".join(output.split())


@pytest.fixture
def cli_workspace(tmp_path, write_project, package_cache):
    """App depends on Json from the package cache and a sibling project."""
    package_cache("Json", "1.0.0")
    package_cache("Json", "1.2.0")
    write_project("Shared", {"Json": "1.2"})
    app_file = write_project("App", {"Json": "1.0", "Shared": {"target": "project"}})
    return app_file, package_cache.root


class TestCLI:
    """Test CLI command interface."""

    def setup_method(self):
        """Setup test fixtures."""
        self.runner = CliRunner()

    def test_cli_help_command(self):
        """Should display help when called with --help."""
        result = self.runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "locksmith" in result.output.lower()
        for command in ("restore", "check", "graph"):
            assert command in result.output

    def test_restore_writes_lock_file(self, cli_workspace):
        """Should resolve the project and write its lock file."""
        app_file, packages = cli_workspace
        result = self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])

        assert result.exit_code == 0, result.output
        lock_file = app_file.parent / LOCK_FILE_NAME
        assert lock_file.exists()
        assert "Wrote" in result.output
        assert "Json/1.2.0 was chosen" in flat(result.output)

        document = json.loads(lock_file.read_text())
        assert document["project"] == "App/1.0.0"
        assert sorted(document["libraries"]) == ["Json/1.2.0", "Shared/1.0.0"]

    def test_restore_accepts_directory(self, cli_workspace):
        """Should find project.json in the given directory."""
        app_file, packages = cli_workspace
        result = self.runner.invoke(app, ["restore", str(app_file.parent), "-p", str(packages)])
        assert result.exit_code == 0, result.output
        assert (app_file.parent / LOCK_FILE_NAME).exists()

    def test_restore_reuses_current_lock_file(self, cli_workspace):
        """Should report a current lock file as up to date."""
        app_file, packages = cli_workspace
        self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])

        result = self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])
        assert result.exit_code == 0
        assert "is up to date" in flat(result.output)

    def test_restore_packages_from_environment(self, cli_workspace):
        """Should read the package directory from LOCKSMITH_PACKAGES."""
        app_file, packages = cli_workspace
        result = self.runner.invoke(
            app, ["restore", str(app_file)], env={"LOCKSMITH_PACKAGES": str(packages)}
        )
        assert result.exit_code == 0, result.output

    def test_restore_dry_run(self, cli_workspace):
        """Should print the lock file instead of writing it."""
        app_file, packages = cli_workspace
        result = self.runner.invoke(
            app, ["restore", str(app_file), "--packages", str(packages), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert not (app_file.parent / LOCK_FILE_NAME).exists()
        document = json.loads(result.output[result.output.index("{"):])
        assert document["projectFileDependencies"] == ["Json >= 1.0", "Shared *"]

    def test_restore_rejects_zero_concurrency(self, cli_workspace):
        """Should refuse a concurrency limit below one."""
        app_file, packages = cli_workspace
        result = self.runner.invoke(
            app, ["restore", str(app_file), "--packages", str(packages), "--max-concurrency", "0"]
        )
        assert result.exit_code == 2
        assert not (app_file.parent / LOCK_FILE_NAME).exists()

    def test_restore_missing_file(self, tmp_path):
        """Should fail when the project file does not exist."""
        result = self.runner.invoke(app, ["restore", str(tmp_path / "project.json")])
        assert result.exit_code == 1
        assert "not found" in flat(result.output)

    def test_restore_unresolvable(self, cli_workspace, tmp_path):
        """Should report resolution errors and exit non-zero."""
        app_file, _ = cli_workspace
        result = self.runner.invoke(
            app, ["restore", str(app_file), "--packages", str(tmp_path / "empty")]
        )
        assert result.exit_code == 1
        assert "Unable to locate Json" in flat(result.output)

    def test_check_valid_lock_file(self, cli_workspace):
        """Should accept a current lock file."""
        app_file, packages = cli_workspace
        self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])

        result = self.runner.invoke(app, ["check", str(app_file.parent / LOCK_FILE_NAME)])
        assert result.exit_code == 0, result.output
        assert "is valid" in flat(result.output)

    def test_check_stale_lock_file(self, cli_workspace, write_project):
        """Should exit with 2 when the project changed since locking."""
        app_file, packages = cli_workspace
        self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])
        write_project("App", {"Json": "1.2"})

        result = self.runner.invoke(app, ["check", str(app_file.parent / LOCK_FILE_NAME)])
        assert result.exit_code == 2
        assert "out of date" in flat(result.output)

    def test_check_invalid_lock_file(self, tmp_path):
        """Should exit with 1 and the reason for a malformed lock file."""
        lock_file = tmp_path / LOCK_FILE_NAME
        lock_file.write_text('{"version": 1}')

        result = self.runner.invoke(app, ["check", str(lock_file)])
        assert result.exit_code == 1
        assert "Invalid lock file" in flat(result.output)

    def test_check_missing_file(self, tmp_path):
        """Should fail when the lock file does not exist."""
        result = self.runner.invoke(app, ["check", str(tmp_path / LOCK_FILE_NAME)])
        assert result.exit_code == 1

    def test_graph_lists_libraries(self, cli_workspace):
        """Should show every locked library in a table."""
        app_file, packages = cli_workspace
        self.runner.invoke(app, ["restore", str(app_file), "--packages", str(packages)])

        result = self.runner.invoke(app, ["graph", str(app_file.parent / LOCK_FILE_NAME)])
        assert result.exit_code == 0, result.output
        assert "Json" in result.output
        assert "Shared" in result.output
        assert "1.2.0" in result.output
