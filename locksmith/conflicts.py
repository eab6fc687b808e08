"""Flatten a walk tree into one chosen version per library name."""

import logging
from collections import deque

from packaging.version import Version

from .dependencies import (
    GraphItem,
    GraphNode,
    LibraryIdentity,
    ResolutionOutcome,
    ResolutionWarning,
    ResolvedGraph,
    ResolvedLibrary,
)
from .errors import VersionConflictError
from .versions import VersionRange

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Chooses exactly one version for every library name in a walk.

    When a name was matched at several versions, the highest matched version
    that satisfies every range any requirer placed on the name wins. Only
    versions some provider actually matched are considered. If the same
    version was matched by several providers, the one earliest in provider
    priority order is kept.
    """

    def resolve(self, root: GraphNode) -> ResolutionOutcome:
        """Resolve a walk tree.

        Args:
            root: Root node produced by the graph walker

        Returns:
            The resolved graph and warnings for dependencies whose matched
            version differs from the chosen one

        Raises:
            VersionConflictError: no matched version satisfies every range on a name
        """
        names: dict[str, str] = {}
        candidates: dict[str, dict[Version, GraphItem]] = {}
        constraints: dict[str, list[tuple[LibraryIdentity, VersionRange]]] = {}

        for node in root.iter_nodes():
            identity = node.identity
            key = identity.name.lower()
            names.setdefault(key, identity.name)

            versions = candidates.setdefault(key, {})
            current = versions.get(identity.version)
            if current is None or (
                node.item.match.provider_kind.priority < current.match.provider_kind.priority
            ):
                versions[identity.version] = node.item

            for child in node.children:
                constraints.setdefault(child.identity.name.lower(), []).append(
                    (identity, child.requested.range)
                )

        chosen: dict[str, GraphItem] = {}
        for key, versions in candidates.items():
            chosen[key] = versions[self._choose(names[key], versions, constraints.get(key, []))]

        graph = self._build_graph(root, chosen)
        warnings = self._collect_warnings(root, chosen, names)
        return ResolutionOutcome(graph=graph, warnings=warnings)

    def _choose(
        self,
        name: str,
        versions: dict[Version, GraphItem],
        ranges: list[tuple[LibraryIdentity, VersionRange]],
    ) -> Version:
        if len(versions) == 1:
            return next(iter(versions))

        satisfying = [
            version
            for version in versions
            if all(version_range.satisfies(version) for _, version_range in ranges)
        ]
        if not satisfying:
            raise VersionConflictError(name, ranges)
        return max(satisfying)

    def _build_graph(self, root: GraphNode, chosen: dict[str, GraphItem]) -> ResolvedGraph:
        root_key = root.identity.name.lower()
        libraries: dict[str, ResolvedLibrary] = {}

        # Only libraries reachable through chosen versions end up in the graph.
        queue = deque([root.item])
        seen = {root_key}
        while queue:
            item = queue.popleft()
            for dependency in item.dependencies:
                key = dependency.name.lower()
                if key not in seen and key in chosen:
                    seen.add(key)
                    queue.append(chosen[key])

        for key in sorted(seen - {root_key}):
            item = chosen[key]
            dependencies = tuple(
                chosen[dependency.name.lower()].match.identity
                for dependency in item.dependencies
                if dependency.name.lower() in chosen
            )
            libraries[key] = ResolvedLibrary(
                identity=item.match.identity,
                provider_kind=item.match.provider_kind,
                path=item.match.path,
                dependencies=dependencies,
            )

        return ResolvedGraph(
            root=root.identity,
            libraries=libraries,
            project_dependencies=tuple(str(d) for d in root.item.dependencies),
        )

    def _collect_warnings(
        self, root: GraphNode, chosen: dict[str, GraphItem], names: dict[str, str]
    ) -> list[ResolutionWarning]:
        warnings = []
        seen = set()
        for node in root.iter_nodes():
            for child in node.children:
                key = child.identity.name.lower()
                chosen_version = chosen[key].match.identity.version
                if child.identity.version == chosen_version:
                    continue
                warning = ResolutionWarning(
                    requirer=node.identity,
                    name=names[key],
                    requested=child.identity.version,
                    chosen=chosen_version,
                )
                if warning not in seen:
                    seen.add(warning)
                    warnings.append(warning)
                    logger.info("%s", warning)
        return warnings
