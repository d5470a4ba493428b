"""
Report Contracts

Immutable outputs of resolution, structural validation and the
validation façade. Reports are values: callers diff successive reports
to decide what changed; the engine owns no callbacks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

from .base import (
    FieldName, FIELD_ORDER, IssueCode, BLOCKING_CODES,
    LifecycleState, ResolutionFailure, ResolutionSource
)
from .idea import FieldValue


# =============================================================================
# FIELD RESOLUTION
# =============================================================================

@dataclass(frozen=True)
class FieldResolution:
    """
    Outcome of resolving one field.
    Either (value + source) OR failure, never both.
    """
    field: FieldName
    ok: bool
    value: Optional[FieldValue] = None
    source: Optional[ResolutionSource] = None
    failure: Optional[ResolutionFailure] = None

    @property
    def resolved(self) -> bool:
        return self.ok

    @property
    def error(self) -> Optional[str]:
        return self.failure.value if self.failure else None

    @staticmethod
    def success(field_name: FieldName, value: FieldValue, source: ResolutionSource) -> FieldResolution:
        return FieldResolution(field=field_name, ok=True, value=value, source=source)

    @staticmethod
    def fail(field_name: FieldName, failure: ResolutionFailure) -> FieldResolution:
        return FieldResolution(field=field_name, ok=False, failure=failure)


@dataclass(frozen=True)
class ResolutionMap:
    """All seven field resolutions, in canonical order."""
    entries: Tuple[FieldResolution, ...]

    def __post_init__(self):
        fields = tuple(e.field for e in self.entries)
        if fields != FIELD_ORDER:
            raise ValueError("ResolutionMap must hold exactly one entry per field, in canonical order")

    def __getitem__(self, field_name: FieldName) -> FieldResolution:
        return self.entries[FIELD_ORDER.index(field_name)]

    def __iter__(self) -> Iterator[FieldResolution]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def is_resolved(self, field_name: FieldName) -> bool:
        return self[field_name].ok

    def unresolved(self) -> Tuple[FieldName, ...]:
        return tuple(e.field for e in self.entries if not e.ok)


# =============================================================================
# STRUCTURAL FINDINGS
# =============================================================================

@dataclass(frozen=True)
class StructuralIssue:
    """A typed structural error or warning with its rendered message."""
    code: IssueCode
    message: str
    field: Optional[FieldName] = None

    @property
    def blocks_write(self) -> bool:
        return self.code in BLOCKING_CODES

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class IdeaValidation:
    """Output of the structural validator: findings plus the resolutions it used."""
    errors: Tuple[StructuralIssue, ...]
    warnings: Tuple[StructuralIssue, ...]
    resolution: ResolutionMap


# =============================================================================
# VALIDATION FAÇADE OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class ValidationReport:
    """
    Complete result of validating one idea against one store snapshot.

    Same store + same idea -> structurally equal report.
    """
    idea_id: str
    issues: Tuple[StructuralIssue, ...]
    warning_issues: Tuple[StructuralIssue, ...]
    resolution: ResolutionMap
    state: LifecycleState
    next_field: Optional[FieldName]

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(i.message for i in self.issues)

    @property
    def warnings(self) -> Tuple[str, ...]:
        return tuple(i.message for i in self.warning_issues)

    @property
    def unresolved_fields(self) -> Tuple[FieldName, ...]:
        return self.resolution.unresolved()


@dataclass(frozen=True)
class WriteDecision:
    """Admission decision for a proposed write."""
    allowed: bool
    issues: Tuple[StructuralIssue, ...] = field(default_factory=tuple)
    report: Optional[ValidationReport] = None

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(i.message for i in self.issues)
