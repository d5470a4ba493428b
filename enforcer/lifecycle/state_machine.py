"""
State Machine
=============

Pure function state derivation from a resolution map.

INVARIANT: derive_state(resolution) is a PURE FUNCTION
Same resolution map -> identical lifecycle state.

This module DOES NOT store state.
Transition timestamps belong to the observer; the clock is always
passed in, never read here.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from ..contracts.base import FieldName, FIELD_ORDER, LifecycleState, Timestamp
from ..contracts.report import ResolutionMap


# Precedence table: first row with an unresolved field wins.
STATE_REQUIREMENTS: Tuple[Tuple[LifecycleState, Tuple[FieldName, ...]], ...] = (
    (LifecycleState.RAW, (FieldName.INTENT,)),
    (LifecycleState.WANTING, (FieldName.STAKEHOLDERS, FieldName.OWNER, FieldName.SYSTEM_REF)),
    (LifecycleState.PLANNING, (FieldName.QA_DOC, FieldName.UPDATE_SET)),
    (LifecycleState.IMPLEMENTING, (FieldName.QA_RESULTS,)),
)

DEFAULT_STALE_DAYS = 7


def derive_state(resolution: ResolutionMap) -> LifecycleState:
    for state, required in STATE_REQUIREMENTS:
        if any(not resolution.is_resolved(f) for f in required):
            return state
    return LifecycleState.DONE


def next_field(resolution: ResolutionMap) -> Optional[FieldName]:
    """First unresolved field in canonical order, or None when complete."""
    for f in FIELD_ORDER:
        if not resolution.is_resolved(f):
            return f
    return None


def is_executable(resolution: ResolutionMap) -> bool:
    """All fields except qa_results are resolved."""
    return all(
        resolution.is_resolved(f) for f in FIELD_ORDER if f is not FieldName.QA_RESULTS
    )


# =============================================================================
# STALENESS
# =============================================================================

@dataclass(frozen=True)
class Staleness:
    """How long an idea has sat in its current state."""
    stale: bool
    days_since_change: Optional[int]


def is_stale(
    last_change: Optional[Timestamp],
    now: Timestamp,
    stale_days: int = DEFAULT_STALE_DAYS
) -> Staleness:
    """An idea with no recorded transition is never stale."""
    if last_change is None:
        return Staleness(stale=False, days_since_change=None)
    elapsed: timedelta = now.value - last_change.value
    days = elapsed.total_seconds() / 86400.0
    return Staleness(stale=days >= stale_days, days_since_change=int(days // 1))


def state_from_tag(tag: str) -> Optional[LifecycleState]:
    """'#planning' or 'planning' -> LifecycleState.PLANNING."""
    value = tag[1:] if tag.startswith("#") else tag
    for state in LifecycleState:
        if state.value == value:
            return state
    return None
