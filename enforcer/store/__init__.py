"""
Idea Store

RESPONSIBILITY: Read-only snapshot of ideas (and their structural containers)
ALLOWED INPUTS: Idea and ContainerNode records from the extraction layer
OUTPUTS: Lookups and bounded ancestor walks

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate ideas or containers after construction
- Resolve field values (resolution layer's job)
- Trust parent links: containment data comes from an untrusted scraper,
  so every walk is bounded by max_depth and by a visited set
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Union

from ..contracts.idea import Idea, ContainerNode


Node = Union[Idea, ContainerNode]

DEFAULT_MAX_DEPTH = 50


@dataclass
class StoreConfig:
    """Configuration for store traversal."""
    max_depth: int = DEFAULT_MAX_DEPTH


class IdeaStore:
    """
    Immutable mapping from idea id to Idea, plus non-idea containers.

    The engine borrows a store for the duration of a call and never
    writes to it, so concurrent validations need no coordination.
    """

    def __init__(
        self,
        ideas: Iterable[Idea] = (),
        containers: Iterable[ContainerNode] = (),
        max_depth: int = DEFAULT_MAX_DEPTH
    ):
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._ideas: Mapping[str, Idea] = MappingProxyType({i.id: i for i in ideas})
        self._containers: Mapping[str, ContainerNode] = MappingProxyType({
            c.id: c for c in containers if c.id not in self._ideas
        })
        self._max_depth = max_depth

    @staticmethod
    def from_config(
        ideas: Iterable[Idea],
        containers: Iterable[ContainerNode] = (),
        config: Optional[StoreConfig] = None
    ) -> IdeaStore:
        config = config or StoreConfig()
        return IdeaStore(ideas, containers, max_depth=config.max_depth)

    # -------------------------------------------------------------------------
    # Mapping protocol (ideas only)
    # -------------------------------------------------------------------------

    def __getitem__(self, idea_id: str) -> Idea:
        return self._ideas[idea_id]

    def __contains__(self, idea_id: object) -> bool:
        return idea_id in self._ideas

    def __iter__(self) -> Iterator[Idea]:
        return iter(self._ideas.values())

    def __len__(self) -> int:
        return len(self._ideas)

    def get(self, idea_id: Optional[str]) -> Optional[Idea]:
        if idea_id is None:
            return None
        return self._ideas.get(idea_id)

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        """Look up any structural node: idea first, then container."""
        if node_id is None:
            return None
        return self._ideas.get(node_id) or self._containers.get(node_id)

    @property
    def ideas(self) -> Mapping[str, Idea]:
        return self._ideas

    @property
    def containers(self) -> Mapping[str, ContainerNode]:
        return self._containers

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def replace_idea(self, idea: Idea) -> IdeaStore:
        """Return a new snapshot with one idea added or replaced."""
        ideas = dict(self._ideas)
        ideas[idea.id] = idea
        return IdeaStore(ideas.values(), self._containers.values(), self._max_depth)

    # -------------------------------------------------------------------------
    # Bounded walks
    # -------------------------------------------------------------------------

    def structural_ancestors(self, node: Node) -> Iterator[Node]:
        """
        Yield every known ancestor node, nearest first.

        Stops at the root, at an unknown parent id, at a revisited node
        (cyclic containment) or after max_depth hops. Restartable: each
        call begins a fresh walk.
        """
        visited = {node.id}
        current_id = node.parent_id
        depth = 0
        while current_id and depth < self._max_depth:
            if current_id in visited:
                return
            parent = self.get_node(current_id)
            if parent is None:
                return
            visited.add(current_id)
            yield parent
            current_id = parent.parent_id
            depth += 1

    def ancestors(self, idea: Node) -> Iterator[Idea]:
        """Yield only the idea ancestors, nearest first."""
        for node in self.structural_ancestors(idea):
            if isinstance(node, Idea):
                yield node

    def find_tagged_ancestor(self, node: Node, tag: str) -> Optional[Node]:
        for ancestor in self.structural_ancestors(node):
            if ancestor.has_tag(tag):
                return ancestor
        return None
