"""
Containment Topology Tests
==========================

Tests for the graph view of the idea forest.

FENCE POST VERIFICATION:
========================
These tests verify that the topology helpers:
1. build containment and pointer graphs that mirror the store
2. find malformed containment cycles
3. report which ideas depend on a changed idea
4. compute only structural counts (no ranking)
"""

import networkx as nx

from enforcer.contracts.idea import ContainerNode, Idea
from enforcer.store import IdeaStore
from enforcer.store.topology import (
    compute_metrics,
    containment_graph,
    descendant_ideas,
    find_containment_cycles,
    pointer_graph,
)


def create_idea(idea_id: str, parent_id: str, **values) -> Idea:
    return Idea.create(idea_id, parent_id=parent_id, title=idea_id, tags=("#contract",), **values)


def create_forest() -> IdeaStore:
    """
    root (container)
      a
        b
      c  (owner -> a)
    """
    return IdeaStore(
        [
            create_idea("a", "root", owner_local="Lee"),
            create_idea("b", "a"),
            create_idea("c", "root", owner_inherited_from="a"),
        ],
        [ContainerNode(id="root", parent_id=None, title="Root")],
    )


class TestGraphs:

    def test_containment_graph(self):
        graph = containment_graph(create_forest())
        assert set(graph.edges()) == {("root", "a"), ("a", "b"), ("root", "c")}
        assert graph.nodes["root"]["is_idea"] is False
        assert graph.nodes["a"]["is_idea"] is True

    def test_unknown_parent_dropped(self):
        store = IdeaStore([create_idea("orphan", "ghost")])
        graph = containment_graph(store)
        assert list(graph.edges()) == []
        assert "ghost" not in graph

    def test_pointer_graph_keyed_by_field(self):
        graph = pointer_graph(create_forest())
        assert list(graph.edges(keys=True)) == [("a", "c", "owner")]
        assert isinstance(graph, nx.MultiDiGraph)


class TestCycles:

    def test_acyclic_forest(self):
        assert find_containment_cycles(create_forest()) == []

    def test_containment_cycle_found(self):
        store = IdeaStore(
            [create_idea("x", "y"), create_idea("y", "x")],
        )
        cycles = find_containment_cycles(store)
        assert len(cycles) == 1
        assert set(cycles[0]) == {"x", "y"}
        assert compute_metrics(store).has_cycles is True


class TestDescendants:

    def test_structural_and_pointer_dependents(self):
        assert descendant_ideas(create_forest(), "a") == {"b", "c"}

    def test_leaf_has_none(self):
        assert descendant_ideas(create_forest(), "b") == set()

    def test_containers_excluded(self):
        assert descendant_ideas(create_forest(), "root") == {"a", "b", "c"}

    def test_unknown_id(self):
        assert descendant_ideas(create_forest(), "missing") == set()


class TestMetrics:

    def test_structural_counts_only(self):
        metrics = compute_metrics(create_forest())
        assert metrics.node_count == 4
        assert metrics.idea_count == 3
        assert metrics.containment_edges == 3
        assert metrics.pointer_edges == 1
        assert metrics.root_count == 1
        assert metrics.has_cycles is False

    def test_no_ranking_exposed(self):
        metrics = compute_metrics(create_forest())
        forbidden = ("centrality", "pagerank", "score", "rank", "importance")
        for attr in dir(metrics):
            assert not any(word in attr.lower() for word in forbidden)
