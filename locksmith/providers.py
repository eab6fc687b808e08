"""Library providers consulted by the graph walker."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Mapping

from packaging.version import InvalidVersion, Version

from .dependencies import (
    DependencyKind,
    LibraryDependency,
    LibraryIdentity,
    ProviderKind,
    WalkProviderMatch,
)
from .errors import JsonError, ProviderError
from .manifest import PROJECT_FILE_NAME, ProjectManifest, extract_dependencies, load_project
from .values import JsonObject, parse
from .versions import VersionRange, parse_version, parse_version_range

logger = logging.getLogger(__name__)

PACKAGE_METADATA_FILE = "metadata.json"


def find_best_match(version_range: VersionRange, versions: Iterable[Version]) -> Version | None:
    """Pick the candidate the range prefers, or None when nothing satisfies it."""
    best = None
    for version in versions:
        if version_range.is_better_match(version, best):
            best = version
    return best


class WalkProvider(ABC):
    """Base class for a source of libraries.

    ``resolve`` and ``dependencies_of`` may block (disk or network) and are
    called from worker threads. They may raise ``ProviderError`` for
    transient failures.
    """

    supported_kinds: frozenset[DependencyKind] = frozenset()
    accepts_default: bool = True

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Provider kind recorded on matches."""

    def supports(self, dependency_kind: DependencyKind) -> bool:
        if dependency_kind is DependencyKind.DEFAULT:
            return self.accepts_default
        return dependency_kind in self.supported_kinds

    @abstractmethod
    def resolve(self, dependency: LibraryDependency) -> WalkProviderMatch:
        """Locate the best library for ``dependency`` or return an unresolved match."""

    @abstractmethod
    def dependencies_of(self, identity: LibraryIdentity) -> list[LibraryDependency]:
        """Declared dependencies of a library previously returned by ``resolve``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ProjectReferenceProvider(WalkProvider):
    """Resolves dependencies to sibling projects on disk.

    A project named ``Foo`` is found at ``<search path>/Foo/project.json``.
    """

    supported_kinds = frozenset({DependencyKind.PROJECT})

    def __init__(self, search_paths: Iterable[str | Path]):
        self.search_paths = [Path(p) for p in search_paths]
        self._projects: dict[str, ProjectManifest] = {}

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.PROJECT

    def _find_project(self, name: str) -> ProjectManifest | None:
        key = name.lower()
        if key in self._projects:
            return self._projects[key]
        for search_path in self.search_paths:
            project_file = search_path / name / PROJECT_FILE_NAME
            if project_file.is_file():
                manifest = load_project(project_file)
                self._projects[key] = manifest
                return manifest
        return None

    def resolve(self, dependency: LibraryDependency) -> WalkProviderMatch:
        manifest = self._find_project(dependency.name)
        if manifest is None or not dependency.range.satisfies(manifest.version):
            return WalkProviderMatch.unresolved()
        logger.debug("Project %s/%s matched %s", manifest.name, manifest.version, dependency)
        return WalkProviderMatch(
            identity=LibraryIdentity(dependency.name, manifest.version),
            provider_kind=ProviderKind.PROJECT,
            path=manifest.path,
        )

    def dependencies_of(self, identity: LibraryIdentity) -> list[LibraryDependency]:
        manifest = self._find_project(identity.name)
        if manifest is None:
            raise ProviderError(f"Project {identity} is no longer available")
        return list(manifest.dependencies)

    def __repr__(self) -> str:
        return f"ProjectReferenceProvider({[str(p) for p in self.search_paths]})"


class ReferenceAssemblyProvider(WalkProvider):
    """Resolves framework references from a fixed set of known assemblies."""

    supported_kinds = frozenset({DependencyKind.REFERENCE})
    accepts_default = False

    def __init__(self, assemblies: Mapping[str, str]):
        self._assemblies = {
            name.lower(): LibraryIdentity(name, parse_version(version, key=name))
            for name, version in assemblies.items()
        }

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.REFERENCE

    def resolve(self, dependency: LibraryDependency) -> WalkProviderMatch:
        identity = self._assemblies.get(dependency.name.lower())
        if identity is None or not dependency.range.satisfies(identity.version):
            return WalkProviderMatch.unresolved()
        return WalkProviderMatch(identity=identity, provider_kind=ProviderKind.REFERENCE)

    def dependencies_of(self, identity: LibraryIdentity) -> list[LibraryDependency]:
        return []


class PackageCacheProvider(WalkProvider):
    """Resolves packages already present in a local package directory.

    Layout: ``<packages_dir>/<name>/<version>/metadata.json`` where the
    metadata file holds ``{"dependencies": {...}}``. The cache is only read.
    """

    supported_kinds = frozenset({DependencyKind.PACKAGE})

    def __init__(self, packages_dir: str | Path):
        self.packages_dir = Path(packages_dir)

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.PACKAGE_CACHE

    def _package_dir(self, name: str) -> Path | None:
        candidate = self.packages_dir / name
        if candidate.is_dir():
            return candidate
        if not self.packages_dir.is_dir():
            return None
        lowered = name.lower()
        for child in sorted(self.packages_dir.iterdir()):
            if child.is_dir() and child.name.lower() == lowered:
                return child
        return None

    def _versions(self, name: str) -> dict[Version, Path]:
        package_dir = self._package_dir(name)
        if package_dir is None:
            return {}
        versions = {}
        for child in sorted(package_dir.iterdir()):
            if not (child / PACKAGE_METADATA_FILE).is_file():
                continue
            try:
                versions[Version(child.name)] = child
            except InvalidVersion:
                logger.debug("Skipping %s: not a version directory", child)
        return versions

    def resolve(self, dependency: LibraryDependency) -> WalkProviderMatch:
        versions = self._versions(dependency.name)
        best = find_best_match(dependency.range, versions)
        if best is None:
            return WalkProviderMatch.unresolved()
        logger.debug("Package cache matched %s/%s for %s", dependency.name, best, dependency)
        return WalkProviderMatch(
            identity=LibraryIdentity(dependency.name, best),
            provider_kind=ProviderKind.PACKAGE_CACHE,
            path=str(versions[best]),
        )

    def dependencies_of(self, identity: LibraryIdentity) -> list[LibraryDependency]:
        package_dir = self._versions(identity.name).get(identity.version)
        if package_dir is None:
            raise ProviderError(f"Package {identity} is missing from {self.packages_dir}")
        metadata_file = package_dir / PACKAGE_METADATA_FILE
        try:
            metadata = parse(metadata_file.read_text(encoding="utf-8"))
        except JsonError as e:
            raise ProviderError(f"Corrupt metadata for {identity}: {e}") from e
        if not isinstance(metadata, JsonObject):
            raise ProviderError(f"Corrupt metadata for {identity}: expected an object")
        return extract_dependencies(metadata.value_as_object("dependencies"), DependencyKind.PACKAGE)

    def __repr__(self) -> str:
        return f"PackageCacheProvider({str(self.packages_dir)!r})"


class InMemoryFeedProvider(WalkProvider):
    """Resolves packages from a feed index already held in memory.

    ``index`` maps package name to version to that version's dependencies
    (name to range text).
    """

    supported_kinds = frozenset({DependencyKind.PACKAGE})

    def __init__(
        self,
        index: Mapping[str, Mapping[str, Mapping[str, str | None]]],
        kind: ProviderKind = ProviderKind.REMOTE_FEED,
    ):
        self._kind = kind
        self._packages: dict[str, tuple[str, dict[Version, Mapping[str, str | None]]]] = {}
        for name, versions in index.items():
            parsed = {
                parse_version(version, key=name): dependencies or {}
                for version, dependencies in versions.items()
            }
            self._packages[name.lower()] = (name, parsed)

    @property
    def kind(self) -> ProviderKind:
        return self._kind

    def resolve(self, dependency: LibraryDependency) -> WalkProviderMatch:
        entry = self._packages.get(dependency.name.lower())
        if entry is None:
            return WalkProviderMatch.unresolved()
        name, versions = entry
        best = find_best_match(dependency.range, versions)
        if best is None:
            return WalkProviderMatch.unresolved()
        return WalkProviderMatch(identity=LibraryIdentity(name, best), provider_kind=self._kind)

    def dependencies_of(self, identity: LibraryIdentity) -> list[LibraryDependency]:
        entry = self._packages.get(identity.name.lower())
        if entry is None or identity.version not in entry[1]:
            raise ProviderError(f"Feed does not contain {identity}")
        return [
            LibraryDependency(name, parse_version_range(text, key=name), DependencyKind.PACKAGE)
            for name, text in entry[1][identity.version].items()
        ]
