"""Core data models for dependency walking and resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from packaging.version import Version

from .versions import VersionRange


class DependencyKind(Enum):
    """Which providers may satisfy a dependency."""

    DEFAULT = "default"  # any provider
    PACKAGE = "package"
    PROJECT = "project"
    REFERENCE = "reference"


class DependencyFlag(Enum):
    MUST_MATCH_EXACT_VERSION = "mustMatchExactVersion"


class ProviderKind(Enum):
    """Where a library was found. Declaration order is priority order."""

    PROJECT = "project"
    REFERENCE = "reference"
    PACKAGE_CACHE = "package"
    REMOTE_FEED = "remote"
    UNRESOLVED = "unresolved"

    @property
    def priority(self) -> int:
        return list(ProviderKind).index(self)


@dataclass(frozen=True, eq=False)
class LibraryIdentity:
    """A concrete library; names compare case-insensitively."""

    name: str
    version: Version

    def _key(self) -> tuple[str, Version]:
        return (self.name.lower(), self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LibraryIdentity):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


@dataclass(frozen=True)
class LibraryDependency:
    """A named requirement with a version range."""

    name: str
    range: VersionRange = field(default_factory=VersionRange.any)
    kind: DependencyKind = DependencyKind.DEFAULT
    flags: frozenset[DependencyFlag] = frozenset()

    def __post_init__(self):
        if self.range.is_exact and DependencyFlag.MUST_MATCH_EXACT_VERSION not in self.flags:
            object.__setattr__(
                self, "flags", self.flags | {DependencyFlag.MUST_MATCH_EXACT_VERSION}
            )

    @property
    def must_match_exact_version(self) -> bool:
        return DependencyFlag.MUST_MATCH_EXACT_VERSION in self.flags

    def __str__(self) -> str:
        return f"{self.name} {self.range}"


@dataclass(frozen=True)
class WalkProviderMatch:
    """What a provider found for a dependency."""

    identity: LibraryIdentity | None
    provider_kind: ProviderKind
    path: str | None = None

    @classmethod
    def unresolved(cls) -> "WalkProviderMatch":
        return cls(identity=None, provider_kind=ProviderKind.UNRESOLVED)

    @property
    def is_resolved(self) -> bool:
        return self.provider_kind is not ProviderKind.UNRESOLVED and self.identity is not None


@dataclass(frozen=True)
class GraphItem:
    match: WalkProviderMatch
    dependencies: tuple[LibraryDependency, ...] = ()


@dataclass(frozen=True)
class GraphNode:
    """One occurrence of a library in the walk tree.

    ``requested`` is the dependency that led here; it is ``None`` for the
    root project.
    """

    item: GraphItem
    requested: LibraryDependency | None = None
    children: tuple["GraphNode", ...] = ()

    @property
    def identity(self) -> LibraryIdentity:
        return self.item.match.identity

    def iter_nodes(self) -> Iterator["GraphNode"]:
        """Pre-order traversal, children in declaration order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class ResolvedLibrary:
    identity: LibraryIdentity
    provider_kind: ProviderKind
    path: str | None = None
    dependencies: tuple[LibraryIdentity, ...] = ()


@dataclass
class ResolvedGraph:
    """Exactly one chosen library per name, keyed by lower-cased name."""

    root: LibraryIdentity
    libraries: dict[str, ResolvedLibrary]
    project_dependencies: tuple[str, ...] = ()

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.libraries

    def __len__(self) -> int:
        return len(self.libraries)

    def __iter__(self) -> Iterator[ResolvedLibrary]:
        return iter(self.libraries.values())

    def get(self, name: str) -> ResolvedLibrary | None:
        return self.libraries.get(name.lower())

    def version_of(self, name: str) -> Version | None:
        library = self.get(name)
        return library.identity.version if library else None


@dataclass(frozen=True)
class ResolutionWarning:
    """A dependency ended up on a different version than the one it matched."""

    requirer: LibraryIdentity
    name: str
    requested: Version
    chosen: Version

    def __str__(self) -> str:
        return (
            f"{self.requirer} depends on {self.name}/{self.requested} "
            f"but {self.name}/{self.chosen} was chosen"
        )


@dataclass
class ResolutionOutcome:
    graph: ResolvedGraph
    warnings: list[ResolutionWarning] = field(default_factory=list)
