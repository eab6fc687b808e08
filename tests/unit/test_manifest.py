"""Tests for project.json parsing."""

import pytest
from packaging.version import Version

from locksmith.dependencies import DependencyKind
from locksmith.errors import InvalidVersionFormatError, JsonError, JsonSyntaxError, Position
from locksmith.manifest import extract_dependencies, load_project, parse_project
from locksmith.values import parse


class TestProjectParser:
    """Test project.json manifest parsing."""

    def test_parse_dependencies_in_order(self, sample_project_json):
        """Should parse every dependency form in declaration order."""
        manifest = parse_project(sample_project_json, name="App")

        assert manifest.name == "App"
        assert manifest.version == Version("1.0.0")
        assert [d.name for d in manifest.dependencies] == [
            "Newtonsoft.Json", "Logging", "Shared", "System.Net.Http",
        ]

        newtonsoft, logging_dep, shared, http = manifest.dependencies
        assert newtonsoft.kind is DependencyKind.DEFAULT
        assert newtonsoft.range.satisfies(Version("6.0.4"))
        assert logging_dep.kind is DependencyKind.PACKAGE
        assert str(logging_dep.range) == "[2.0, 3.0)"
        assert shared.kind is DependencyKind.PROJECT
        assert str(shared.range) == "*"
        assert http.kind is DependencyKind.REFERENCE

    def test_dependency_strings(self, sample_project_json):
        """Should render dependencies the way lock files record them."""
        manifest = parse_project(sample_project_json)
        assert manifest.dependency_strings == (
            "Newtonsoft.Json >= 6.0.4",
            "Logging [2.0, 3.0)",
            "Shared *",
            "System.Net.Http *",
        )

    def test_name_precedence(self):
        """Should prefer the declared name, then the given name, then a default."""
        assert parse_project('{"name": "Declared"}', name="Dir").name == "Declared"
        assert parse_project("{}", name="Dir").name == "Dir"
        assert parse_project("{}").name == "project"

    def test_default_version(self):
        """Should default the project version to 1.0.0."""
        manifest = parse_project("{}")
        assert manifest.version == Version("1.0.0")
        assert manifest.dependencies == ()

    def test_exact_dependency_flag(self):
        """Should flag exact ranges as must-match-exact."""
        manifest = parse_project('{"dependencies": {"A": "[1.0]", "B": "1.0"}}')
        assert manifest.dependencies[0].must_match_exact_version
        assert not manifest.dependencies[1].must_match_exact_version

    def test_invalid_version_reports_key_position(self):
        """Should point at the dependency whose version is malformed."""
        content = '{\n  "dependencies": {\n    "Foo": "not.a.version!"\n  }\n}'
        with pytest.raises(InvalidVersionFormatError) as exc:
            parse_project(content)
        assert exc.value.key == "Foo"
        assert exc.value.position == Position(3, 5)

    def test_invalid_project_version(self):
        """Should reject a malformed project version."""
        with pytest.raises(InvalidVersionFormatError):
            parse_project('{"version": "one"}')

    def test_non_object_document(self):
        """Should reject a project file that is not an object."""
        with pytest.raises(JsonSyntaxError):
            parse_project("[]")

    def test_malformed_json(self):
        """Should surface JSON errors."""
        with pytest.raises(JsonError):
            parse_project('{"dependencies": {')


class TestExtractDependencies:
    """Test the dependencies section reader."""

    def test_missing_section(self):
        """Should return no dependencies for a missing section."""
        assert extract_dependencies(None) == []

    def test_unknown_target_keeps_kind(self):
        """Should fall back to the section kind for unknown targets."""
        section = parse('{"A": {"version": "1.0", "target": "other"}, "B": {"target": "Package"}}')
        dependencies = extract_dependencies(section, DependencyKind.REFERENCE)
        assert dependencies[0].kind is DependencyKind.REFERENCE
        assert dependencies[1].kind is DependencyKind.PACKAGE

    def test_null_version_means_any(self):
        """Should treat null and non-string versions as any version."""
        section = parse('{"A": null, "B": {"version": null}}')
        assert [str(d.range) for d in extract_dependencies(section)] == ["*", "*"]


class TestLoadProject:
    """Test reading project files from disk."""

    def test_named_after_directory(self, write_project):
        """Should name the project after the directory containing it."""
        project_file = write_project("MyApp", {"A": "1.0"}, version="2.1.0")
        manifest = load_project(project_file)
        assert manifest.name == "MyApp"
        assert manifest.version == Version("2.1.0")
        assert manifest.path == str(project_file)

    def test_accepts_directory(self, write_project):
        """Should find project.json inside a directory."""
        project_file = write_project("Lib")
        assert load_project(project_file.parent).name == "Lib"
