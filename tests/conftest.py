"""Pytest configuration and fixtures."""

import json

import pytest

from locksmith.restore import build_provider_chain


@pytest.fixture
def sample_project_json():
    """Sample project.json content for testing."""
    return """
{
  "version": "1.0.0",
  "dependencies": {
    "Newtonsoft.Json": "6.0.4",
    "Logging": { "version": "[2.0, 3.0)", "target": "package" },
    "Shared": { "target": "project" }
  },
  "frameworkAssemblies": {
    "System.Net.Http": ""
  }
}
"""


@pytest.fixture
def sample_feed():
    """Feed snapshot: name -> version -> dependencies."""
    return {
        "A": {"1.0": {"B": "1.0"}},
        "B": {"1.0": {}, "2.0": {}},
        "C": {"1.0": {"B": "2.0"}},
    }


@pytest.fixture
def feed_providers():
    """Build a provider chain over an in-memory feed."""
    def _build(feed, assemblies=None):
        return build_provider_chain(feed_index=feed, assemblies=assemblies)
    return _build


@pytest.fixture
def write_project(tmp_path):
    """Create ``<tmp>/<name>/project.json`` and return its path."""
    def _write(name, dependencies=None, version="1.0.0", **extra):
        project_dir = tmp_path / name
        project_dir.mkdir(parents=True, exist_ok=True)
        content = {"version": version, "dependencies": dependencies or {}, **extra}
        project_file = project_dir / "project.json"
        project_file.write_text(json.dumps(content, indent=2))
        return project_file
    return _write


@pytest.fixture
def package_cache(tmp_path):
    """Create packages under ``<tmp>/packages/<name>/<version>/metadata.json``."""
    root = tmp_path / "packages"
    root.mkdir()

    def _add(name, version, dependencies=None, raw=None):
        package_dir = root / name / version
        package_dir.mkdir(parents=True)
        metadata = raw if raw is not None else json.dumps({"dependencies": dependencies or {}})
        (package_dir / "metadata.json").write_text(metadata)
        return package_dir

    _add.root = root
    return _add
