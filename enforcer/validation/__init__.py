"""
Validation Façade

RESPONSIBILITY: Single entry point composing resolution, structure and lifecycle
ALLOWED INPUTS: IdeaStore snapshot + one (existing or proposed) Idea
OUTPUTS: ValidationReport, WriteDecision

POLICY:
=======
Permissive write, strict complete. A partially filled idea is always
writable; only self-contradictory ideas (BLOCKING_CODES) are rejected.
Marking done requires zero errors AND the done state.
"""

from __future__ import annotations
from typing import Optional

from ..contracts.base import LifecycleState
from ..contracts.idea import Idea
from ..contracts.report import ValidationReport, WriteDecision
from ..lifecycle import state_machine
from ..store import IdeaStore
from ..structure import StructureConfig, validate_idea


def validate(
    store: IdeaStore,
    idea: Idea,
    config: Optional[StructureConfig] = None
) -> ValidationReport:
    """Validate one idea. Idempotent: no clocks, no I/O, no store writes."""
    result = validate_idea(store, idea, config)
    return ValidationReport(
        idea_id=idea.id,
        issues=result.errors,
        warning_issues=result.warnings,
        resolution=result.resolution,
        state=state_machine.derive_state(result.resolution),
        next_field=state_machine.next_field(result.resolution),
    )


def validate_write(
    store: IdeaStore,
    proposed: Idea,
    config: Optional[StructureConfig] = None
) -> WriteDecision:
    """
    Admission control for a proposed idea.

    Unresolved fields never block; only structural contradictions do.
    The proposed idea is validated against the store as-is, so a
    proposal may replace the stored version of itself.
    """
    report = validate(store, proposed, config)
    blocking = tuple(i for i in report.issues if i.blocks_write)
    return WriteDecision(allowed=not blocking, issues=blocking, report=report)


def can_mark_done(report: ValidationReport) -> bool:
    return not report.issues and report.state is LifecycleState.DONE


def is_executable(report: ValidationReport) -> bool:
    return state_machine.is_executable(report.resolution)


def is_complete(report: ValidationReport) -> bool:
    return can_mark_done(report)


__all__ = [
    "validate",
    "validate_write",
    "can_mark_done",
    "is_executable",
    "is_complete",
]
