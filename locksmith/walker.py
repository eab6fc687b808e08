"""Transitive dependency walk over an ordered chain of providers."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from .dependencies import (
    DependencyKind,
    GraphItem,
    GraphNode,
    LibraryDependency,
    LibraryIdentity,
    ProviderKind,
    WalkProviderMatch,
)
from .errors import (
    CyclicDependencyError,
    DependencyNotFoundError,
    ProviderError,
    ResolutionCancelledError,
)
from .manifest import ProjectManifest
from .providers import WalkProvider

logger = logging.getLogger(__name__)

_LookupKey = tuple[str, str, DependencyKind]


@dataclass
class _WalkState:
    """Bookkeeping owned by one walk. Only touched from the event loop thread."""

    semaphore: asyncio.Semaphore
    lookups: dict[_LookupKey, "asyncio.Future[GraphItem | None]"] = field(default_factory=dict)


class GraphWalker:
    """Walks a project's dependencies depth-first into a tree of ``GraphNode``.

    Providers are asked in order and the first match wins. Every edge is
    walked, so the same library name can appear at several versions; picking
    one version per name is left to the conflict resolver.
    """

    def __init__(
        self,
        providers: Iterable[WalkProvider],
        max_concurrency: int = 6,
        cancel_event: asyncio.Event | None = None,
    ):
        """Initialize the walker.

        Args:
            providers: Providers in priority order
            max_concurrency: Maximum provider calls in flight at once
            cancel_event: When set, the walk stops and raises ResolutionCancelledError
        """
        self.providers = list(providers)
        self.max_concurrency = max_concurrency
        self.cancel_event = cancel_event

    async def walk(self, project: ProjectManifest) -> GraphNode:
        """Walk every dependency reachable from ``project``.

        Args:
            project: The root project

        Returns:
            Root node of the walk tree

        Raises:
            DependencyNotFoundError: no provider could locate a dependency
            CyclicDependencyError: a library depends on itself on the active path
            ResolutionCancelledError: the cancel event was set
        """
        walk_task = asyncio.ensure_future(self._walk_root(project))
        if self.cancel_event is None:
            return await walk_task

        cancel_task = asyncio.ensure_future(self.cancel_event.wait())
        try:
            await asyncio.wait({walk_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not walk_task.done():
                walk_task.cancel()
                await asyncio.gather(walk_task, return_exceptions=True)

        if walk_task.cancelled():
            raise ResolutionCancelledError()
        return walk_task.result()

    async def _walk_root(self, project: ProjectManifest) -> GraphNode:
        state = _WalkState(semaphore=asyncio.Semaphore(self.max_concurrency))
        identity = LibraryIdentity(project.name, project.version)
        item = GraphItem(
            match=WalkProviderMatch(identity, ProviderKind.PROJECT, project.path),
            dependencies=project.dependencies,
        )
        try:
            children = await self._walk_children(item, (identity,), state)
        finally:
            for future in state.lookups.values():
                future.cancel()
        return GraphNode(item=item, requested=None, children=children)

    async def _walk_children(
        self, item: GraphItem, path: tuple[LibraryIdentity, ...], state: _WalkState
    ) -> tuple[GraphNode, ...]:
        if not item.dependencies:
            return ()
        tasks = [
            asyncio.ensure_future(self._walk_dependency(dependency, path, state))
            for dependency in item.dependencies
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        # Report the failure of the first branch in declaration order so the
        # outcome does not depend on which branch finished first.
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return tuple(results)

    async def _walk_dependency(
        self, dependency: LibraryDependency, path: tuple[LibraryIdentity, ...], state: _WalkState
    ) -> GraphNode:
        self._check_cancelled()
        item = await self._lookup(dependency, state)
        if item is None:
            raise DependencyNotFoundError(dependency, list(path))

        identity = item.match.identity
        if identity in path:
            cycle = list(path[path.index(identity):]) + [identity]
            raise CyclicDependencyError(cycle)

        children = await self._walk_children(item, path + (identity,), state)
        return GraphNode(item=item, requested=dependency, children=children)

    def _lookup(self, dependency: LibraryDependency, state: _WalkState) -> "asyncio.Future[GraphItem | None]":
        """Share one provider query between identical dependencies in a walk."""
        key = (dependency.name.lower(), str(dependency.range), dependency.kind)
        future = state.lookups.get(key)
        if future is None:
            future = asyncio.ensure_future(self._query_chain(dependency, state))
            state.lookups[key] = future
        return future

    async def _query_chain(self, dependency: LibraryDependency, state: _WalkState) -> GraphItem | None:
        for provider in self.providers:
            if not provider.supports(dependency.kind):
                continue
            self._check_cancelled()
            try:
                item = await self._query_provider(provider, dependency, state)
            except (ProviderError, OSError) as e:
                logger.warning("%r failed to resolve %s: %s", provider, dependency, e)
                continue
            if item is not None:
                return item
        return None

    async def _query_provider(
        self, provider: WalkProvider, dependency: LibraryDependency, state: _WalkState
    ) -> GraphItem | None:
        async with state.semaphore:
            match = await asyncio.to_thread(provider.resolve, dependency)
            if not match.is_resolved:
                return None
            if not dependency.range.satisfies(match.identity.version):
                logger.debug("%r offered %s outside %s", provider, match.identity, dependency)
                return None
            dependencies = await asyncio.to_thread(provider.dependencies_of, match.identity)
        return GraphItem(match=match, dependencies=tuple(dependencies))

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ResolutionCancelledError()
