"""Entry points used by build tooling: resolve, lock, and reuse lock files."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .conflicts import ConflictResolver
from .dependencies import ResolutionOutcome, ResolutionWarning, ResolvedGraph
from .errors import LockedLockFileError
from .lockfile import (
    LOCK_FILE_NAME,
    LockFileLoadResult,
    is_lock_file_current,
    load_lock_file,
    serialize_lock_file,
)
from .manifest import ProjectManifest, load_project
from .providers import (
    InMemoryFeedProvider,
    PackageCacheProvider,
    ProjectReferenceProvider,
    ReferenceAssemblyProvider,
    WalkProvider,
)
from .walker import GraphWalker

logger = logging.getLogger(__name__)

__all__ = [
    "RestoreReport",
    "build_provider_chain",
    "load_lock_file",
    "resolve",
    "restore",
    "serialize_lock_file",
    "LockFileLoadResult",
]


@dataclass
class RestoreReport:
    """What a restore did."""

    graph: ResolvedGraph
    lock_path: Path
    reused: bool
    warnings: list[ResolutionWarning] = field(default_factory=list)


def build_provider_chain(
    search_paths: Iterable[str | Path] = (),
    packages_dir: str | Path | None = None,
    feed_index: Mapping | None = None,
    assemblies: Mapping[str, str] | None = None,
) -> list[WalkProvider]:
    """Build providers in priority order: projects, assemblies, package cache, feed."""
    providers: list[WalkProvider] = [ProjectReferenceProvider(search_paths)]
    if assemblies:
        providers.append(ReferenceAssemblyProvider(assemblies))
    if packages_dir is not None:
        providers.append(PackageCacheProvider(packages_dir))
    if feed_index:
        providers.append(InMemoryFeedProvider(feed_index))
    return providers


async def resolve(
    manifest: ProjectManifest,
    providers: Iterable[WalkProvider],
    *,
    max_concurrency: int = 6,
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> ResolutionOutcome:
    """Walk and resolve a project's dependency graph.

    Args:
        manifest: The project to resolve
        providers: Providers in priority order
        max_concurrency: Maximum concurrent provider calls
        cancel_event: Set it to abandon the walk
        timeout: Seconds after which the walk is cancelled

    Returns:
        Resolved graph and informational warnings

    Raises:
        ResolutionError: the graph cannot be resolved or the walk was cancelled
    """
    timer = None
    if timeout is not None:
        if cancel_event is None:
            cancel_event = asyncio.Event()
        timer = asyncio.get_running_loop().call_later(timeout, cancel_event.set)

    walker = GraphWalker(providers, max_concurrency=max_concurrency, cancel_event=cancel_event)
    try:
        root = await walker.walk(manifest)
    finally:
        if timer is not None:
            timer.cancel()

    return ConflictResolver().resolve(root)


async def restore(
    manifest_path: str | Path,
    providers: Iterable[WalkProvider],
    lock_path: str | Path | None = None,
    force: bool = False,
    write: bool = True,
    **resolve_options,
) -> RestoreReport:
    """Reuse a current lock file or resolve and write a new one.

    Raises:
        LockedLockFileError: the lock file is locked but out of date
        ResolutionError: resolution failed
    """
    manifest = load_project(manifest_path)
    if lock_path is None:
        lock_path = Path(manifest.path).parent / LOCK_FILE_NAME
    lock_path = Path(lock_path)

    if lock_path.is_file() and not force:
        existing = load_lock_file(lock_path.read_text(encoding="utf-8"))
        if not existing.is_valid:
            logger.info("Ignoring %s: %s", lock_path, existing.reason)
        elif is_lock_file_current(existing.graph, manifest):
            logger.info("%s is up to date", lock_path)
            return RestoreReport(graph=existing.graph, lock_path=lock_path, reused=True)
        elif existing.locked:
            raise LockedLockFileError(lock_path)

    outcome = await resolve(manifest, providers, **resolve_options)
    if write:
        lock_path.write_text(serialize_lock_file(outcome.graph), encoding="utf-8")
        logger.info("Wrote %s", lock_path)

    return RestoreReport(
        graph=outcome.graph,
        lock_path=lock_path,
        reused=False,
        warnings=outcome.warnings,
    )
