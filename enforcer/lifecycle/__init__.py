"""
Lifecycle Layer

RESPONSIBILITY: Lifecycle state and next-field derivation
ALLOWED INPUTS: ResolutionMap
OUTPUTS: LifecycleState, FieldName, Staleness
"""

from .state_machine import (
    STATE_REQUIREMENTS,
    DEFAULT_STALE_DAYS,
    Staleness,
    derive_state,
    next_field,
    is_executable,
    is_stale,
    state_from_tag,
)

__all__ = [
    "STATE_REQUIREMENTS",
    "DEFAULT_STALE_DAYS",
    "Staleness",
    "derive_state",
    "next_field",
    "is_executable",
    "is_stale",
    "state_from_tag",
]
