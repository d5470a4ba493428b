"""
Base Contracts

The seven contract fields, lifecycle states, resolution outcomes,
structural issue codes, errors and timestamps shared by every layer.
Enums and frozen dataclasses only; nothing here reads a clock except
Timestamp.now().

BOUNDARY ENFORCEMENT:
=====================
- Field metadata (inheritable, list-valued, narrowing) is defined here once
- Other layers import these types and never extend them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# CONTRACT FIELDS (Explicit enumeration, no string-suffix keying)
# =============================================================================

class FieldName(Enum):
    """
    The seven required fields of a contract, in canonical order.

    Enum order IS the canonical order used by next-field derivation.
    """
    INTENT = "intent"
    STAKEHOLDERS = "stakeholders"
    OWNER = "owner"
    SYSTEM_REF = "system_ref"
    QA_DOC = "qa_doc"
    UPDATE_SET = "update_set"
    QA_RESULTS = "qa_results"

    @property
    def inheritable(self) -> bool:
        return self not in NON_INHERITABLE

    @property
    def is_list(self) -> bool:
        return self in (FieldName.STAKEHOLDERS, FieldName.UPDATE_SET)

    @property
    def allows_narrowing(self) -> bool:
        """
        Only system_ref may carry a local value AND an inheritance pointer.

        The local value narrows the inherited scope; the structural
        validator checks the narrowing instead of flagging exclusion.
        """
        return self is FieldName.SYSTEM_REF

    @property
    def label(self) -> str:
        return FIELD_LABELS[self]


FIELD_ORDER: Tuple[FieldName, ...] = tuple(FieldName)

NON_INHERITABLE: Tuple[FieldName, ...] = (FieldName.UPDATE_SET, FieldName.QA_RESULTS)

INHERITABLE: Tuple[FieldName, ...] = tuple(
    f for f in FIELD_ORDER if f not in NON_INHERITABLE
)

FIELD_LABELS = {
    FieldName.INTENT: "Intent",
    FieldName.STAKEHOLDERS: "Stakeholders",
    FieldName.OWNER: "Owner",
    FieldName.SYSTEM_REF: "System Reference",
    FieldName.QA_DOC: "QA Document",
    FieldName.UPDATE_SET: "Update Set",
    FieldName.QA_RESULTS: "QA Results",
}


# =============================================================================
# LIFECYCLE STATES (Derived only, never stored by the engine)
# =============================================================================

class LifecycleState(Enum):
    """
    Contract lifecycle states, ordered by completeness.
    Derived solely from field resolution.
    """
    RAW = "raw"                      # Intent unresolved
    WANTING = "wanting"              # Missing stakeholders/owner/system_ref
    PLANNING = "planning"            # Missing qa_doc/update_set
    IMPLEMENTING = "implementing"    # Missing qa_results
    DONE = "done"                    # All seven resolved

    @property
    def rank(self) -> int:
        return _STATE_RANK[self]

    @property
    def tag(self) -> str:
        return f"#{self.value}"


_STATE_RANK = {state: i for i, state in enumerate(LifecycleState)}


# =============================================================================
# RESOLUTION OUTCOMES
# =============================================================================

class ResolutionSource(Enum):
    """Where a resolved field value came from."""
    LOCAL = "local"            # Authored directly on the idea
    INHERITED = "inherited"    # Explicit pointer to an ancestor
    PARENT = "parent"          # Implicit walk of the ancestor chain


class ResolutionFailure(Enum):
    """
    Per-field resolution failure reasons.
    Non-fatal: surfaced inside the resolution map, never raised.
    """
    MUST_BE_LOCAL = "must be local"
    UNRESOLVED = "unresolved"
    MISSING_POINTER = "missing inheritance pointer"
    SOURCE_HAS_NO_LOCAL = "inherit source has no local value for field"
    CONTEXT_ONLY = "inherit source not in ancestor chain (context only)"
    NOT_FOUND = "inherit source not found in ancestor chain"
    NO_PARENT_VALUE = "no parent has field"


# =============================================================================
# STRUCTURAL FINDINGS
# =============================================================================

class IssueCode(Enum):
    """Codes for document-level invariant findings."""
    NESTED_CONTRACT = "nested_contract"
    MISSING_PROJECT = "missing_project"
    BOTH_LOCAL_AND_INHERITED = "both_local_and_inherited"
    INHERITANCE_FORBIDDEN = "inheritance_forbidden"
    NARROWING_VIOLATION = "narrowing_violation"
    NARROWING_UNVERIFIABLE = "narrowing_unverifiable"


# Findings that make an idea self-contradictory; only these block a write.
BLOCKING_CODES = frozenset({
    IssueCode.NESTED_CONTRACT,
    IssueCode.BOTH_LOCAL_AND_INHERITED,
    IssueCode.INHERITANCE_FORBIDDEN,
    IssueCode.NARROWING_VIOLATION,
})


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for the I/O edges of the system.
    Resolution and structure never use these; they report in the
    validation report instead.
    """
    # Extraction errors
    MALFORMED_NODE = auto()
    DUPLICATE_NODE_ID = auto()
    DEPTH_LIMIT_EXCEEDED = auto()
    IDEA_BUILD_FAILED = auto()

    # Persistence errors
    STORAGE_READ_FAILED = auto()
    STORAGE_WRITE_FAILED = auto()

    # Lookup errors
    IDEA_NOT_FOUND = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    @staticmethod
    def from_iso(iso_string: str) -> Timestamp:
        dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return Timestamp(value=dt)

    @staticmethod
    def from_millis(millis: float) -> Timestamp:
        return Timestamp(value=datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeRange:
    """Immutable time range for log queries."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value
