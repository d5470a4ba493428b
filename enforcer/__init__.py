"""
Contract Enforcer

Enforces a structured contract model on top of a free-form outline:
#contract nodes ("ideas") must progressively acquire seven required
fields. This package resolves those fields, validates structure, and
derives each idea's lifecycle state and next required field.

LAYER STRUCTURE:
================

1. EXTRACTION (extraction/)
   - Outline export -> IdeaStore snapshot
   - MUST NOT: validate or resolve

2. STORE (store/)
   - Read-only snapshot with bounded ancestor walks
   - MUST NOT: mutate ideas

3. RESOLUTION (resolution/)
   - Field -> value + source, or failure reason
   - MUST NOT: raise for blank data

4. STRUCTURE (structure/)
   - Nesting, containment, exclusion, forbidden inheritance, narrowing

5. LIFECYCLE (lifecycle/)
   - Resolution map -> lifecycle state + next field

6. VALIDATION (validation/)
   - validate / validate_write façade

7. OBSERVER / OBSERVABILITY / STORAGE
   - Caller-side diffing, audit trail, timestamp persistence

DATA FLOW:
==========
Store -> Resolution -> Structure -> Lifecycle -> Validation -> caller
"""

from .contracts import (
    FieldName, FIELD_ORDER, LifecycleState, ResolutionSource, Idea,
    SystemRef, QaResults, QaStatus, ValidationReport, WriteDecision,
)
from .store import IdeaStore
from .resolution import resolve_field
from .structure import validate_idea
from .lifecycle import derive_state, next_field
from .validation import validate, validate_write, can_mark_done, is_executable, is_complete

__version__ = "0.1.0"
