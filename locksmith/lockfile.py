"""Reading and writing project.lock.json files."""

import logging
from dataclasses import dataclass

from .dependencies import LibraryIdentity, ProviderKind, ResolvedGraph, ResolvedLibrary
from .errors import JsonError, LocksmithError
from .manifest import ProjectManifest
from .values import JsonObject, from_python, parse
from .versions import parse_version
from .writer import dumps

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = "project.lock.json"
LOCK_FILE_FORMAT_VERSION = 1

_LIBRARY_TYPES = {kind.value: kind for kind in ProviderKind if kind is not ProviderKind.UNRESOLVED}


class _InvalidLockFile(Exception):
    """Raised internally when the lock file does not have the expected shape."""


@dataclass
class LockFileLoadResult:
    """Outcome of reading a lock file.

    An invalid or stale lock file is not an error: ``graph`` is ``None`` and
    ``reason`` says why, so the caller can resolve afresh.
    """

    graph: ResolvedGraph | None = None
    locked: bool = False
    reason: str | None = None
    error: LocksmithError | None = None

    @property
    def is_valid(self) -> bool:
        return self.graph is not None


def write_lock_file(graph: ResolvedGraph, locked: bool = False) -> JsonObject:
    """Build the JSON value for a resolved graph."""
    libraries = {}
    for library in graph:
        entry = {
            "version": str(library.identity.version),
            "type": library.provider_kind.value,
        }
        if library.path:
            entry["path"] = library.path
        entry["dependencies"] = [str(dependency) for dependency in library.dependencies]
        libraries[str(library.identity)] = entry

    return from_python({
        "locked": locked,
        "version": LOCK_FILE_FORMAT_VERSION,
        "project": str(graph.root),
        "libraries": libraries,
        "projectFileDependencies": list(graph.project_dependencies),
    })


def serialize_lock_file(graph: ResolvedGraph, locked: bool = False) -> str:
    return dumps(write_lock_file(graph, locked)) + "\n"


def _parse_identity(text: str) -> LibraryIdentity:
    name, separator, version = text.rpartition("/")
    if not separator or not name:
        raise _InvalidLockFile(f"'{text}' is not a library reference")
    return LibraryIdentity(name, parse_version(version))


def _require(obj: JsonObject, key: str, value, expected: str):
    if value is None:
        if key in obj:
            raise _InvalidLockFile(f"'{key}' must be {expected}")
        raise _InvalidLockFile(f"missing '{key}'")
    return value


def _require_strings(obj: JsonObject, key: str) -> list[str]:
    items = _require(obj, key, obj.value_as_string_array(key), "an array of strings")
    if any(item is None for item in items):
        raise _InvalidLockFile(f"'{key}' must only contain strings")
    return items


def _read_library(key: str, entry: JsonObject) -> tuple[ResolvedLibrary, list[str]]:
    version_text = _require(entry, "version", entry.value_as_string("version"), "a string")
    version = parse_version(version_text, entry.key_position("version"), key)

    name, separator, key_version = key.rpartition("/")
    if not separator:
        name = key
    elif parse_version(key_version) != version:
        raise _InvalidLockFile(f"'{key}' records version {version_text}")

    type_text = _require(entry, "type", entry.value_as_string("type"), "a string")
    provider_kind = _LIBRARY_TYPES.get(type_text)
    if provider_kind is None:
        raise _InvalidLockFile(f"unknown library type '{type_text}' for '{key}'")

    library = ResolvedLibrary(
        identity=LibraryIdentity(name, version),
        provider_kind=provider_kind,
        path=entry.value_as_string("path"),
    )
    return library, _require_strings(entry, "dependencies")


def _read_graph(root) -> tuple[ResolvedGraph, bool]:
    if not isinstance(root, JsonObject):
        raise _InvalidLockFile("the lock file is not a JSON object")

    format_version = _require(root, "version", root.value_as_number("version"), "a number")
    if not format_version.is_integer or format_version.as_int() != LOCK_FILE_FORMAT_VERSION:
        raise _InvalidLockFile(f"unsupported lock file version {format_version.raw}")

    project = _parse_identity(_require(root, "project", root.value_as_string("project"), "a string"))
    section = _require(root, "libraries", root.value_as_object("libraries"), "an object")
    project_dependencies = _require_strings(root, "projectFileDependencies")

    entries: list[tuple[ResolvedLibrary, list[str]]] = []
    by_identity: dict[LibraryIdentity, ResolvedLibrary] = {}
    names: set[str] = set()
    for key in section.keys:
        entry = section.value_as_object(key)
        if entry is None:
            raise _InvalidLockFile(f"library '{key}' must be an object")
        library, dependencies = _read_library(key, entry)
        if library.identity.name.lower() in names:
            raise _InvalidLockFile(f"'{library.identity.name}' is locked at more than one version")
        names.add(library.identity.name.lower())
        by_identity[library.identity] = library
        entries.append((library, dependencies))

    libraries: dict[str, ResolvedLibrary] = {}
    for library, dependencies in entries:
        resolved = []
        for text in dependencies:
            identity = _parse_identity(text)
            if identity not in by_identity:
                raise _InvalidLockFile(f"'{library.identity}' depends on unknown library '{text}'")
            resolved.append(by_identity[identity].identity)
        libraries[library.identity.name.lower()] = ResolvedLibrary(
            identity=library.identity,
            provider_kind=library.provider_kind,
            path=library.path,
            dependencies=tuple(resolved),
        )

    graph = ResolvedGraph(
        root=project,
        libraries=libraries,
        project_dependencies=tuple(project_dependencies),
    )
    return graph, root.value_as_boolean("locked")


def load_lock_file(text: str) -> LockFileLoadResult:
    """Read lock file text back into a resolved graph.

    Never raises for bad input; malformed text or an unexpected shape gives
    an invalid result carrying the reason.
    """
    try:
        graph, locked = _read_graph(parse(text))
    except JsonError as e:
        return LockFileLoadResult(reason=f"Malformed lock file: {e}", error=e)
    except _InvalidLockFile as e:
        return LockFileLoadResult(reason=f"Invalid lock file: {e}")
    return LockFileLoadResult(graph=graph, locked=locked)


def is_lock_file_current(graph: ResolvedGraph, manifest: ProjectManifest) -> bool:
    """Whether a lock file was produced for the manifest as it is now."""
    if graph.root != LibraryIdentity(manifest.name, manifest.version):
        logger.info("Lock file was written for %s, not %s/%s", graph.root, manifest.name, manifest.version)
        return False
    if graph.project_dependencies != manifest.dependency_strings:
        logger.info("Dependencies of %s changed since the lock file was written", manifest.name)
        return False
    return True
