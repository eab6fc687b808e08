"""project.json manifest parsing."""

from dataclasses import dataclass
from pathlib import Path

from packaging.version import Version

from .dependencies import DependencyKind, LibraryDependency
from .errors import JsonSyntaxError
from .values import JsonObject, JsonString, parse
from .versions import parse_version, parse_version_range

PROJECT_FILE_NAME = "project.json"
DEFAULT_PROJECT_VERSION = "1.0.0"

_TARGETS = {
    "package": DependencyKind.PACKAGE,
    "project": DependencyKind.PROJECT,
}


@dataclass(frozen=True)
class ProjectManifest:
    """A parsed project manifest."""

    name: str
    version: Version
    dependencies: tuple[LibraryDependency, ...] = ()
    path: str | None = None

    @property
    def dependency_strings(self) -> tuple[str, ...]:
        """The declared dependencies as recorded in lock files."""
        return tuple(str(dependency) for dependency in self.dependencies)


def extract_dependencies(
    section: JsonObject | None, kind: DependencyKind = DependencyKind.DEFAULT
) -> list[LibraryDependency]:
    """Translate a dependencies object into ordered ``LibraryDependency`` entries.

    Each entry is either ``"name": "<range>"`` or
    ``"name": {"version": "<range>", "target": "package|project"}``.
    A missing or null version means any version.

    Raises:
        InvalidVersionFormatError: an entry has malformed version text
    """
    if section is None:
        return []

    dependencies = []
    for name in section.keys:
        value = section.value(name)
        dependency_kind = kind
        version_text = None

        if isinstance(value, JsonString):
            version_text = value.value
        elif isinstance(value, JsonObject):
            version_text = value.value_as_string("version")
            target = value.value_as_string("target")
            if target:
                dependency_kind = _TARGETS.get(target.lower(), kind)

        version_range = parse_version_range(version_text, section.key_position(name), name)
        dependencies.append(LibraryDependency(name, version_range, dependency_kind))

    return dependencies


class ProjectParser:
    """Parser for project.json content."""

    def parse(self, content: str, name: str | None = None, path: str | None = None) -> ProjectManifest:
        root = parse(content)
        if not isinstance(root, JsonObject):
            raise JsonSyntaxError("A project file must contain a JSON object", root.position)

        project_name = root.value_as_string("name") or name or "project"
        version_text = root.value_as_string("version") or DEFAULT_PROJECT_VERSION
        version = parse_version(version_text, root.key_position("version"), "version")

        dependencies = extract_dependencies(root.value_as_object("dependencies"))
        dependencies += extract_dependencies(
            root.value_as_object("frameworkAssemblies"), DependencyKind.REFERENCE
        )

        return ProjectManifest(
            name=project_name,
            version=version,
            dependencies=tuple(dependencies),
            path=path,
        )


def parse_project(content: str, name: str | None = None, path: str | None = None) -> ProjectManifest:
    """Parse project.json content into a ProjectManifest.

    Args:
        content: The project.json file content
        name: Project name to use when the file does not declare one
        path: Where the content came from, kept for diagnostics

    Returns:
        Parsed ProjectManifest object
    """
    parser = ProjectParser()
    return parser.parse(content, name=name, path=path)


def load_project(path: str | Path) -> ProjectManifest:
    """Read a project.json file; the project is named after its directory."""
    path = Path(path)
    if path.is_dir():
        path = path / PROJECT_FILE_NAME
    return parse_project(path.read_text(encoding="utf-8"), name=path.parent.name, path=str(path))
