"""
Containment Topology
====================

Structural analysis of the idea forest using graph topology.

ALLOWED:
- Graph construction from parent links and inheritance pointers
- Cycle detection (malformed containment from the scraper)
- Descendant discovery (which ideas must be re-validated)

FORBIDDEN:
- Field resolution (resolution layer's job)
- Any ranking of ideas
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Set, Tuple
import networkx as nx

from ..contracts.base import FIELD_ORDER
from ..contracts.idea import Idea
from . import IdeaStore


@dataclass(frozen=True)
class ForestMetrics:
    """Immutable structural metrics for an idea store."""
    node_count: int
    idea_count: int
    containment_edges: int
    pointer_edges: int
    root_count: int
    has_cycles: bool


def containment_graph(store: IdeaStore) -> nx.DiGraph:
    """
    Directed parent -> child graph over every known node.

    Edges to unknown parents are dropped: an unknown parent ends the
    ancestor walk, so it is not part of the structure.
    """
    graph = nx.DiGraph()
    nodes = list(store.containers.values()) + list(store.ideas.values())
    for node in nodes:
        graph.add_node(node.id, is_idea=isinstance(node, Idea))
    for node in nodes:
        if node.parent_id and store.get_node(node.parent_id) is not None:
            graph.add_edge(node.parent_id, node.id)
    return graph


def pointer_graph(store: IdeaStore) -> nx.MultiDiGraph:
    """
    Directed source -> dependent graph of explicit inheritance pointers.
    Edge key is the field name.
    """
    graph = nx.MultiDiGraph()
    for idea in store:
        graph.add_node(idea.id)
        for f in FIELD_ORDER:
            source_id = idea.inherit_ptr(f)
            if source_id:
                graph.add_edge(source_id, idea.id, key=f.value)
    return graph


def find_containment_cycles(store: IdeaStore) -> List[Tuple[str, ...]]:
    """Every elementary containment cycle, as tuples of node ids."""
    graph = containment_graph(store)
    return [tuple(cycle) for cycle in nx.simple_cycles(graph)]


def descendant_ideas(store: IdeaStore, idea_id: str) -> Set[str]:
    """
    Ideas whose resolution may depend on `idea_id`: structural
    descendants plus ideas pointing at it (transitively).
    """
    combined = nx.DiGraph()
    combined.add_edges_from(containment_graph(store).edges())
    combined.add_edges_from((u, v) for u, v, _ in pointer_graph(store).edges(keys=True))
    if idea_id not in combined:
        return set()
    return {n for n in nx.descendants(combined, idea_id) if n in store}


def compute_metrics(store: IdeaStore) -> ForestMetrics:
    graph = containment_graph(store)
    pointers = pointer_graph(store)
    return ForestMetrics(
        node_count=graph.number_of_nodes(),
        idea_count=len(store),
        containment_edges=graph.number_of_edges(),
        pointer_edges=pointers.number_of_edges(),
        root_count=sum(1 for n in graph.nodes if graph.in_degree(n) == 0),
        has_cycles=not nx.is_directed_acyclic_graph(graph),
    )
