"""Tests for choosing one version per library."""

import json

import pytest
from packaging.version import Version

from locksmith.conflicts import ConflictResolver
from locksmith.dependencies import (
    GraphItem,
    GraphNode,
    LibraryDependency,
    LibraryIdentity,
    ProviderKind,
    WalkProviderMatch,
)
from locksmith.errors import VersionConflictError
from locksmith.manifest import parse_project
from locksmith.providers import InMemoryFeedProvider
from locksmith.versions import parse_version_range
from locksmith.walker import GraphWalker


def node(name, version, children=(), kind=ProviderKind.REMOTE_FEED, range_text=None):
    """Build a walked node; its item depends on exactly its children."""
    item = GraphItem(
        match=WalkProviderMatch(LibraryIdentity(name, Version(version)), kind),
        dependencies=tuple(child.requested for child in children),
    )
    requested = LibraryDependency(name, parse_version_range(range_text or version))
    return GraphNode(item=item, requested=requested, children=tuple(children))


def root_node(*children):
    item = GraphItem(
        match=WalkProviderMatch(LibraryIdentity("Root", Version("1.0.0")), ProviderKind.PROJECT),
        dependencies=tuple(child.requested for child in children),
    )
    return GraphNode(item=item, children=tuple(children))


async def walk(feed, dependencies):
    manifest = parse_project(json.dumps({"dependencies": dependencies}), name="Root")
    return await GraphWalker([InMemoryFeedProvider(feed)]).walk(manifest)


class TestConflictResolver:
    """Test version selection across a walk tree."""

    def setup_method(self):
        """Setup test fixtures."""
        self.resolver = ConflictResolver()

    @pytest.mark.asyncio
    async def test_highest_satisfying_version_wins(self):
        """Should choose the highest matched version that satisfies every range."""
        feed = {
            "A": {"1.0": {"X": "1.4"}},
            "B": {"1.0": {"X": "1.5"}},
            "C": {"1.0": {"X": "1.6"}},
            "X": {"1.4": {}, "1.5": {}, "1.6": {}},
        }
        root = await walk(feed, {"A": "1.0", "B": "1.0", "C": "1.0"})
        outcome = self.resolver.resolve(root)

        assert outcome.graph.version_of("X") == Version("1.6")
        assert [str(w) for w in outcome.warnings] == [
            "A/1.0 depends on X/1.4 but X/1.6 was chosen",
            "B/1.0 depends on X/1.5 but X/1.6 was chosen",
        ]

    @pytest.mark.asyncio
    async def test_incompatible_exact_versions(self):
        """Should raise when no matched version satisfies every range."""
        feed = {
            "A": {"1.0": {"X": "[1.2]"}},
            "B": {"1.0": {"X": "[1.4]"}},
            "X": {"1.2": {}, "1.4": {}},
        }
        root = await walk(feed, {"A": "1.0", "B": "1.0"})

        with pytest.raises(VersionConflictError) as exc:
            self.resolver.resolve(root)

        assert exc.value.name == "X"
        assert "A/1.0 requires [1.2]" in str(exc.value)
        assert "B/1.0 requires [1.4]" in str(exc.value)

    def test_root_and_transitive_ranges(self):
        """Should pick 1.6 from 1.4/1.5/1.6 under >=1.0,<2.0 and >=1.5."""
        root = root_node(
            node("A", "1.4", range_text=">=1.0,<2.0"),
            node("B", "1.0", [node("A", "1.5", range_text=">=1.5")]),
            node("C", "1.0", [node("A", "1.6", range_text=">=1.5")]),
        )
        assert self.resolver.resolve(root).graph.version_of("A") == Version("1.6")

    def test_root_and_transitive_ranges_conflict(self):
        """Should fail when neither matched version, 1.2 or 1.4, fits every range."""
        root = root_node(
            node("A", "1.2", range_text=">=1.0,<2.0"),
            node("B", "1.0", [node("A", "1.4", range_text="[1.4]")]),
            node("C", "1.0", [node("A", "1.2", range_text="(,1.3]")]),
        )
        with pytest.raises(VersionConflictError) as exc:
            self.resolver.resolve(root)
        assert exc.value.name == "A"

    def test_only_matched_versions_are_candidates(self):
        """Should not invent a version that no provider matched."""
        # [1.0, 2.0) and >= 1.5 overlap, but 1.0 and 2.5 were the only matches.
        root = root_node(
            node("A", "1.0", [node("X", "1.0", range_text="[1.0, 2.0)")]),
            node("B", "1.0", [node("X", "2.5", range_text="1.5")]),
        )
        with pytest.raises(VersionConflictError):
            self.resolver.resolve(root)

    def test_single_version_is_chosen(self):
        """Should take the only matched version without warnings."""
        root = root_node(
            node("A", "1.0", [node("X", "1.0")]),
            node("B", "1.0", [node("X", "1.0")]),
        )
        outcome = self.resolver.resolve(root)

        assert outcome.graph.version_of("X") == Version("1.0")
        assert outcome.warnings == []

    def test_resolved_graph_shape(self):
        """Should record libraries by name with resolved dependency identities."""
        root = root_node(
            node("Zeta", "1.0", [node("Alpha", "2.0")]),
            node("Alpha", "2.0"),
        )
        graph = self.resolver.resolve(root).graph

        assert graph.root == LibraryIdentity("Root", Version("1.0.0"))
        assert "Root" not in graph
        assert list(graph.libraries) == ["alpha", "zeta"]
        assert graph.get("ZETA").dependencies == (LibraryIdentity("Alpha", Version("2.0")),)
        assert graph.project_dependencies == ("Zeta >= 1.0", "Alpha >= 2.0")
        assert len(graph) == 2

    def test_names_merge_case_insensitively(self):
        """Should treat differently cased names as one library."""
        root = root_node(
            node("A", "1.0", [node("json", "1.0")]),
            node("B", "1.0", [node("JSON", "2.0")]),
        )
        outcome = self.resolver.resolve(root)

        assert len([lib for lib in outcome.graph if lib.identity.name.lower() == "json"]) == 1
        assert outcome.graph.version_of("Json") == Version("2.0")

    def test_unreachable_libraries_are_pruned(self):
        """Should drop libraries only needed by versions that were not chosen."""
        root = root_node(
            node("A", "1.0", [node("Old", "1.0")]),
            node("D", "1.0", [node("A", "2.0")]),
        )
        graph = self.resolver.resolve(root).graph

        assert graph.version_of("A") == Version("2.0")
        assert "Old" not in graph
        assert graph.get("A").dependencies == ()

    def test_provider_priority_breaks_ties(self):
        """Should keep the higher-priority provider for the same version."""
        root = root_node(
            node("A", "1.0", [node("X", "1.0", kind=ProviderKind.REMOTE_FEED)]),
            node("B", "1.0", [node("X", "1.0", kind=ProviderKind.PACKAGE_CACHE)]),
        )
        graph = self.resolver.resolve(root).graph
        assert graph.get("X").provider_kind is ProviderKind.PACKAGE_CACHE

    def test_warnings_are_deduplicated(self):
        """Should report each requirer and version pair once."""
        shared = node("A", "1.0", [node("X", "1.0")])
        root = root_node(
            shared,
            node("B", "1.0", [shared, node("X", "2.0")]),
        )
        outcome = self.resolver.resolve(root)
        assert [str(w) for w in outcome.warnings] == [
            "A/1.0 depends on X/1.0 but X/2.0 was chosen",
        ]
