"""
Extraction Layer

RESPONSIBILITY: Turn an outline export into an IdeaStore snapshot
ALLOWED INPUTS: JSON-shaped outline nodes (dicts with id/name/children)
OUTPUTS: ExtractionResult (IdeaStore + per-node Error data)

OUTLINE SHAPE:
==============
    {"id": "a1", "name": "Build API #contract", "note": "...",
     "children": [...], "mirror_of": "x9", "last_modified": 1767225600000}

Short host keys are accepted too (nm / no / ch / lm). A node whose
name contains #contract becomes an Idea; every other node becomes a
ContainerNode. Field nodes are children labelled "Intent",
"Stakeholders", ... (exact label or "Label: inline value").

MIRRORS:
========
A field child with an empty name and `mirror_of` set is a mirror. If
the original is a contract (or lives under one) the mirror is an
inheritance pointer to that contract. Otherwise the original's text is
used as a local value.

WHAT THIS LAYER MUST NOT DO:
============================
- Resolve or validate fields
- Abort on a bad node: failures are collected as Error data
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html.parser import HTMLParser
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import re

from ..contracts.base import (
    FieldName, FIELD_LABELS, FIELD_ORDER, LifecycleState, Error, ErrorCode, Timestamp
)
from ..contracts.idea import (
    Idea, ContainerNode, FieldSlot, SystemRef, QaResults, is_blank
)
from ..store import IdeaStore, DEFAULT_MAX_DEPTH


TAG_PATTERN = re.compile(r"#\w+")
WHITESPACE = re.compile(r"\s+")

CONTRACT_TAG = "#contract"
PROJECT_TAG = "#project"
STATE_TAGS = tuple(state.tag for state in LifecycleState)


class OutlineFormatError(ValueError):
    """The outline export is not a node or a list of nodes."""


# =============================================================================
# TEXT HELPERS
# =============================================================================

class MLStripper(HTMLParser):
    """Simple HTML tag stripper."""

    def __init__(self):
        super().__init__()
        self.reset()
        self.fed = []

    def handle_data(self, data):
        self.fed.append(data)

    def get_data(self):
        return ''.join(self.fed)


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    stripper = MLStripper()
    stripper.feed(text)
    stripper.close()
    return stripper.get_data()


def extract_tags(name: Optional[str]) -> Tuple[str, ...]:
    return tuple(TAG_PATTERN.findall(strip_html(name)))


def clean_title(name: Optional[str]) -> str:
    plain = TAG_PATTERN.sub("", strip_html(name))
    return WHITESPACE.sub(" ", plain).strip()


def _to_timestamp(value: object) -> Optional[Timestamp]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return Timestamp.from_millis(float(value))
    if isinstance(value, datetime):
        return Timestamp(value=value)
    return Timestamp.from_iso(str(value))


# =============================================================================
# OUTLINE INDEX
# =============================================================================

@dataclass(frozen=True)
class OutlineNode:
    """One node of the outline export, with children flattened to ids."""
    id: str
    name: str = ""
    note: str = ""
    parent_id: Optional[str] = None
    child_ids: Tuple[str, ...] = field(default_factory=tuple)
    mirror_of: Optional[str] = None
    last_modified: Optional[Timestamp] = None

    @property
    def text(self) -> str:
        return strip_html(self.name).strip()

    @property
    def tags(self) -> Tuple[str, ...]:
        return extract_tags(self.name)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


def _pick(raw: Mapping, *keys, default=None):
    for key in keys:
        if key in raw:
            return raw[key]
    return default


class OutlineIndex:
    """
    Flat, id-addressable view of an outline export.

    Built once per extraction pass. Nodes deeper than max_depth are
    dropped and reported as errors.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self._nodes: Dict[str, OutlineNode] = {}
        self._roots: List[str] = []
        self._errors: List[Error] = []
        self._max_depth = max_depth

    @staticmethod
    def build(outline: Union[Mapping, Sequence[Mapping]], max_depth: int = DEFAULT_MAX_DEPTH) -> OutlineIndex:
        if isinstance(outline, Mapping):
            roots = [outline]
        elif isinstance(outline, (list, tuple)):
            roots = list(outline)
        else:
            raise OutlineFormatError(
                f"outline must be a node or a list of nodes, got {type(outline).__name__}"
            )
        index = OutlineIndex(max_depth=max_depth)
        for raw in roots:
            node_id = index._add(raw, parent_id=None, depth=0)
            if node_id:
                index._roots.append(node_id)
        return index

    def _error(self, code: ErrorCode, message: str, node_id: Optional[str] = None):
        error = Error(code=code, message=message, timestamp=datetime.now(timezone.utc))
        if node_id:
            error = error.with_context("node_id", node_id)
        self._errors.append(error)

    def _add(self, raw: object, parent_id: Optional[str], depth: int) -> Optional[str]:
        if depth > self._max_depth:
            self._error(
                ErrorCode.DEPTH_LIMIT_EXCEEDED,
                f"outline deeper than {self._max_depth} levels; subtree skipped",
                parent_id,
            )
            return None
        if not isinstance(raw, Mapping):
            self._error(ErrorCode.MALFORMED_NODE, f"node is not an object: {raw!r}", parent_id)
            return None
        node_id = _pick(raw, "id")
        if is_blank(node_id) or not isinstance(node_id, str):
            self._error(ErrorCode.MALFORMED_NODE, "node has no id", parent_id)
            return None
        if node_id in self._nodes:
            self._error(ErrorCode.DUPLICATE_NODE_ID, f"duplicate node id {node_id}", node_id)
            return None
        for key, value in (
            ("name", _pick(raw, "name", "nm")),
            ("note", _pick(raw, "note", "no")),
            ("mirror_of", _pick(raw, "mirror_of")),
        ):
            if value is not None and not isinstance(value, str):
                self._error(
                    ErrorCode.MALFORMED_NODE,
                    f"{key} must be a string, got {type(value).__name__}",
                    node_id,
                )
                return None

        try:
            last_modified = _to_timestamp(_pick(raw, "last_modified", "lm"))
        except (TypeError, ValueError, OverflowError):
            self._error(ErrorCode.MALFORMED_NODE, "unreadable last_modified", node_id)
            last_modified = None

        # Register before children so a child cannot reuse this id.
        self._nodes[node_id] = OutlineNode(id=node_id, parent_id=parent_id)
        child_ids = []
        children = _pick(raw, "children", "ch", default=()) or ()
        if not isinstance(children, (list, tuple)):
            self._error(
                ErrorCode.MALFORMED_NODE,
                f"children must be a list, got {type(children).__name__}",
                node_id,
            )
            children = ()
        for child in children:
            child_id = self._add(child, parent_id=node_id, depth=depth + 1)
            if child_id:
                child_ids.append(child_id)

        self._nodes[node_id] = OutlineNode(
            id=node_id,
            name=_pick(raw, "name", "nm", default="") or "",
            note=_pick(raw, "note", "no", default="") or "",
            parent_id=parent_id,
            child_ids=tuple(child_ids),
            mirror_of=_pick(raw, "mirror_of"),
            last_modified=last_modified,
        )
        return node_id

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: Optional[str]) -> Optional[OutlineNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def nodes(self) -> Iterable[OutlineNode]:
        return self._nodes.values()

    @property
    def roots(self) -> Tuple[str, ...]:
        return tuple(self._roots)

    @property
    def errors(self) -> Tuple[Error, ...]:
        return tuple(self._errors)

    def children(self, node: OutlineNode) -> List[OutlineNode]:
        return [self._nodes[cid] for cid in node.child_ids if cid in self._nodes]

    def ancestors(self, node: OutlineNode) -> Iterable[OutlineNode]:
        seen = {node.id}
        current = self.get(node.parent_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            yield current
            current = self.get(current.parent_id)

    def find_tagged_ancestor(self, node: OutlineNode, tag: str) -> Optional[OutlineNode]:
        for ancestor in self.ancestors(node):
            if ancestor.has_tag(tag):
                return ancestor
        return None

    def original(self, node: OutlineNode) -> Optional[OutlineNode]:
        """The node a mirror points at, if it is in the outline."""
        if node.mirror_of and node.mirror_of != node.id:
            return self.get(node.mirror_of)
        return None

    def is_mirror(self, node: OutlineNode) -> bool:
        return is_blank(node.text) and self.original(node) is not None

    def node_text(self, node: OutlineNode) -> str:
        """Plain text of a node, following a mirror to its original."""
        if node.text:
            return node.text
        original = self.original(node)
        return original.text if original else ""

    def find_child_by_label(self, node: OutlineNode, label: str) -> Optional[OutlineNode]:
        for child in self.children(node):
            text = child.text
            if text == label or text.startswith(label + ":"):
                return child
        return None

    def project_field_values(self, project_id: str, label: str) -> Optional[List[str]]:
        """Texts of the children under a project's `label` node, or None."""
        project = self.get(project_id)
        if project is None:
            return None
        field_node = self.find_child_by_label(project, label)
        if field_node is None:
            return None
        values = [self.node_text(c) for c in self.children(field_node)]
        values = [v for v in values if v]
        return values or None


# =============================================================================
# EXTRACTOR
# =============================================================================

@dataclass
class ExtractionConfig:
    """Configuration for outline extraction."""
    contract_tag: str = CONTRACT_TAG
    project_tag: str = PROJECT_TAG
    field_labels: Dict[FieldName, str] = field(default_factory=lambda: dict(FIELD_LABELS))
    blocks_label: str = "blocks"
    blocked_by_label: str = "blocked_by"
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass(frozen=True)
class ExtractionResult:
    """Store snapshot plus everything that went wrong building it."""
    store: IdeaStore
    index: OutlineIndex
    errors: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not self.errors


class OutlineExtractor:
    """
    Builds Idea records from an OutlineIndex.

    GUARANTEES:
    ===========
    1. Every #contract node either becomes an Idea or yields an Error
    2. Non-contract nodes are kept as ContainerNodes for ancestry checks
    3. Field values are normalized: lists become tuples, system_ref a SystemRef
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self._config = config or ExtractionConfig()

    def extract(
        self,
        outline: Union[Mapping, Sequence[Mapping], OutlineIndex],
        state_timestamps: Optional[Mapping[str, Timestamp]] = None
    ) -> ExtractionResult:
        if isinstance(outline, OutlineIndex):
            index = outline
        else:
            index = OutlineIndex.build(outline, max_depth=self._config.max_depth)
        state_timestamps = state_timestamps or {}

        ideas: List[Idea] = []
        containers: List[ContainerNode] = []
        errors: List[Error] = list(index.errors)

        for node in index.nodes():
            if not node.has_tag(self._config.contract_tag):
                containers.append(ContainerNode(
                    id=node.id,
                    parent_id=node.parent_id,
                    title=clean_title(node.name),
                    tags=frozenset(node.tags),
                ))
                continue
            try:
                ideas.append(self.build_idea(index, node, state_timestamps.get(node.id)))
            except (TypeError, ValueError, AttributeError) as e:
                errors.append(Error(
                    code=ErrorCode.IDEA_BUILD_FAILED,
                    message=f"could not build idea: {e}",
                    timestamp=datetime.now(timezone.utc),
                ).with_context("node_id", node.id))

        store = IdeaStore(ideas, containers, max_depth=self._config.max_depth)
        return ExtractionResult(store=store, index=index, errors=tuple(errors))

    # -------------------------------------------------------------------------
    # Idea construction
    # -------------------------------------------------------------------------

    def build_idea(
        self,
        index: OutlineIndex,
        node: OutlineNode,
        state_changed_at: Optional[Timestamp] = None
    ) -> Idea:
        tags = node.tags
        current_state = None
        for state_tag in STATE_TAGS:
            if state_tag in tags:
                current_state = LifecycleState(state_tag[1:])
                break

        slots = {f: self._parse_slot(index, node, f) for f in FIELD_ORDER}

        return Idea(
            id=node.id,
            parent_id=node.parent_id,
            title=clean_title(node.name),
            tags=frozenset(tags),
            slots=slots,
            current_state_tag=current_state,
            blocks=self._mirror_ids(index, node, self._config.blocks_label),
            blocked_by=self._mirror_ids(index, node, self._config.blocked_by_label),
            last_modified=node.last_modified,
            last_state_change_at=state_changed_at,
        )

    def _parse_slot(self, index: OutlineIndex, node: OutlineNode, f: FieldName) -> FieldSlot:
        field_node = index.find_child_by_label(node, self._config.field_labels[f])
        if field_node is None:
            return FieldSlot()

        # Pointer and local text are both recorded; contradictions are the
        # structural validator's to report.
        pointer = self.detect_inheritance_pointer(index, field_node)

        if f is FieldName.QA_RESULTS:
            local = QaResults.from_lines(self._local_lines(index, field_node))
        elif f is FieldName.SYSTEM_REF:
            lines = self._local_lines(index, field_node)
            local = SystemRef.parse(lines[0]) if lines else None
        elif f.is_list:
            local = tuple(self._local_lines(index, field_node)) or None
        else:
            lines = self._local_lines(index, field_node)
            local = lines[0] if lines else None

        return FieldSlot(local=local, inherited_from=pointer)

    def _local_lines(self, index: OutlineIndex, field_node: OutlineNode) -> List[str]:
        """
        Text content of a field node: its children (mirrors of non-contract
        nodes resolved to their text), else inline text after the label
        colon, else the note lines.
        """
        children = index.children(field_node)
        if children:
            return [
                text for text in (
                    index.node_text(c) for c in children
                    if not self._is_pointer(index, c)
                )
                if text
            ]

        text = field_node.text
        colon = text.find(":")
        if colon != -1:
            inline = text[colon + 1:].strip()
            if inline:
                return [inline]

        return [line.strip() for line in strip_html(field_node.note).splitlines() if line.strip()]

    def _contract_for(self, index: OutlineIndex, node: Optional[OutlineNode]) -> Optional[str]:
        """Id of the contract that is `node` or encloses it."""
        if node is None:
            return None
        if node.has_tag(self._config.contract_tag):
            return node.id
        ancestor = index.find_tagged_ancestor(node, self._config.contract_tag)
        return ancestor.id if ancestor else None

    def detect_inheritance_pointer(self, index: OutlineIndex, field_node: OutlineNode) -> Optional[str]:
        """
        First mirror child whose original belongs to a contract.
        Mirrors of #project values are local values, not pointers.
        """
        for child in index.children(field_node):
            if self._is_pointer(index, child):
                return self._contract_for(index, index.original(child))
        return None

    def _is_pointer(self, index: OutlineIndex, child: OutlineNode) -> bool:
        return index.is_mirror(child) and self._contract_for(index, index.original(child)) is not None

    def _mirror_ids(self, index: OutlineIndex, node: OutlineNode, label: str) -> Tuple[str, ...]:
        holder = index.find_child_by_label(node, label)
        if holder is None:
            return ()
        return tuple(c.mirror_of for c in index.children(holder) if c.mirror_of)


def extract_store(
    outline: Union[Mapping, Sequence[Mapping]],
    config: Optional[ExtractionConfig] = None
) -> IdeaStore:
    """Convenience: outline export -> IdeaStore, discarding node errors."""
    return OutlineExtractor(config).extract(outline).store
