"""
Idea Contracts

Immutable records produced by the extraction layer and consumed by
resolution, structure and lifecycle. The engine only ever READS these.

FIELD STORAGE:
==============
Each of the seven required fields is a FieldSlot holding an optional
local value and an optional inheritance pointer. Slots are keyed by
FieldName, so every field is always present (possibly empty).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Sequence, Tuple, Union
import re

from .base import FieldName, FIELD_ORDER, LifecycleState, Timestamp


def is_blank(value: object) -> bool:
    """
    Uniform blankness: None, whitespace-only string, empty sequence,
    or a structured value that reports itself blank.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (tuple, list, frozenset, set)):
        return len(value) == 0
    blank = getattr(value, "is_blank", None)
    if blank is not None:
        return bool(blank)
    return False


# =============================================================================
# STRUCTURED FIELD VALUES
# =============================================================================

_SYSTEM_REF_PATTERN = re.compile(
    r"^\s*(?P<domain>[^:/@]+?)\s*:\s*(?P<identifier>[^/@]*?)\s*"
    r"(?P<path>/[^@]*?)?\s*(?:@\s*(?P<version>\S+))?\s*$"
)


@dataclass(frozen=True)
class SystemRef:
    """Where a change occurs: domain / identifier / path, optionally versioned."""
    domain: str
    identifier: str
    path: Optional[str] = None
    version: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        return is_blank(self.domain) and is_blank(self.identifier) and is_blank(self.path)

    @staticmethod
    def parse(text: Optional[str]) -> Optional[SystemRef]:
        """
        Parse "domain: identifier /path @version".

        Text without a domain separator is kept whole as the identifier
        under the "unknown" domain.
        """
        if is_blank(text):
            return None
        text = text.strip()
        match = _SYSTEM_REF_PATTERN.match(text)
        if not match:
            return SystemRef(domain="unknown", identifier=text)
        path = match.group("path")
        return SystemRef(
            domain=match.group("domain").strip(),
            identifier=match.group("identifier").strip(),
            path=path.strip() if path and path.strip() else None,
            version=match.group("version"),
        )

    def __str__(self) -> str:
        text = f"{self.domain}: {self.identifier}"
        if self.path:
            text += f" {self.path}"
        if self.version:
            text += f" @{self.version}"
        return text


class QaStatus(Enum):
    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class QaResults:
    """Outcome of QA: overall status plus evidence lines."""
    status: QaStatus = QaStatus.UNKNOWN
    evidence: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_blank(self) -> bool:
        return self.status is QaStatus.UNKNOWN and len(self.evidence) == 0

    @staticmethod
    def from_lines(lines: Sequence[str]) -> Optional[QaResults]:
        """Later lines win: the last pass/fail mention sets the status."""
        lines = tuple(line for line in lines if not is_blank(line))
        if not lines:
            return None
        status = QaStatus.UNKNOWN
        for line in lines:
            lowered = line.lower()
            if "pass" in lowered:
                status = QaStatus.PASS
            elif "fail" in lowered:
                status = QaStatus.FAIL
        return QaResults(status=status, evidence=lines)


FieldValue = Union[str, Tuple[str, ...], SystemRef, QaResults]


# =============================================================================
# PER-FIELD RECORD
# =============================================================================

@dataclass(frozen=True)
class FieldSlot:
    """Local value and/or inheritance pointer for one field."""
    local: Optional[FieldValue] = None
    inherited_from: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.local, list):
            object.__setattr__(self, 'local', tuple(self.local))

    @property
    def has_local(self) -> bool:
        return not is_blank(self.local)

    @property
    def has_pointer(self) -> bool:
        return not is_blank(self.inherited_from)


EMPTY_SLOT = FieldSlot()


# =============================================================================
# IDEA
# =============================================================================

@dataclass(frozen=True)
class Idea:
    """
    A managed unit of work (a #contract node).

    Produced fresh on each extraction pass. `slots` always holds one
    FieldSlot per FieldName, in canonical order.
    """
    id: str
    parent_id: Optional[str] = None
    title: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)
    slots: Mapping[FieldName, FieldSlot] = field(default_factory=dict)
    current_state_tag: Optional[LifecycleState] = None
    blocks: Tuple[str, ...] = field(default_factory=tuple)
    blocked_by: Tuple[str, ...] = field(default_factory=tuple)
    last_modified: Optional[Timestamp] = None
    last_state_change_at: Optional[Timestamp] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Idea id must be a non-empty string")
        complete = {f: self.slots.get(f, EMPTY_SLOT) for f in FIELD_ORDER}
        object.__setattr__(self, 'slots', MappingProxyType(complete))
        object.__setattr__(self, 'tags', frozenset(self.tags))

    @staticmethod
    def create(
        id: str,
        parent_id: Optional[str] = None,
        title: str = "",
        tags: Sequence[str] = (),
        **values
    ) -> Idea:
        """
        Build an Idea from flat keyword arguments.

        Accepts `<field>_local` and `<field>_inherited_from` for every
        field, plus any other Idea attribute.
        """
        slots = {}
        for f in FIELD_ORDER:
            local = values.pop(f"{f.value}_local", None)
            pointer = values.pop(f"{f.value}_inherited_from", None)
            if local is not None or pointer is not None:
                slots[f] = FieldSlot(local=local, inherited_from=pointer)
        return Idea(id=id, parent_id=parent_id, title=title,
                    tags=frozenset(tags), slots=slots, **values)

    def slot(self, field_name: FieldName) -> FieldSlot:
        return self.slots[field_name]

    def local(self, field_name: FieldName) -> Optional[FieldValue]:
        slot = self.slots[field_name]
        return slot.local if slot.has_local else None

    def inherit_ptr(self, field_name: FieldName) -> Optional[str]:
        slot = self.slots[field_name]
        return slot.inherited_from if slot.has_pointer else None

    def has_local(self, field_name: FieldName) -> bool:
        return self.slots[field_name].has_local

    def has_inherit_ptr(self, field_name: FieldName) -> bool:
        return self.slots[field_name].has_pointer

    def with_slot(self, field_name: FieldName, slot: FieldSlot) -> Idea:
        """Return a copy with one field replaced (for proposed writes)."""
        slots = dict(self.slots)
        slots[field_name] = slot
        return replace(self, slots=slots)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def __eq__(self, other):
        if not isinstance(other, Idea):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def _key(self):
        return (
            self.id, self.parent_id, self.title, self.tags,
            tuple(self.slots[f] for f in FIELD_ORDER),
            self.current_state_tag, self.blocks, self.blocked_by,
            self.last_modified, self.last_state_change_at,
        )


@dataclass(frozen=True)
class ContainerNode:
    """
    A structural node that is not an idea (e.g. a #project or a plain
    grouping node). Kept so ancestry can be checked without the host.
    """
    id: str
    parent_id: Optional[str] = None
    title: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags
