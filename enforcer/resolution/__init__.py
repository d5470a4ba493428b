"""
Field Resolver

RESPONSIBILITY: Resolve each required field to (value + source) or a failure reason
ALLOWED INPUTS: IdeaStore snapshot + one Idea
OUTPUTS: FieldResolution / ResolutionMap (immutable)

RESOLUTION ORDER (inheritable fields):
======================================
1. Non-blank local value              -> source LOCAL
2. Explicit inheritance pointer       -> source INHERITED (or the pointer's failure)
3. Nearest ancestor with a local value -> source PARENT
4. Otherwise                          -> UNRESOLVED

Non-inheritable fields resolve from a local value only.

WHAT THIS LAYER MUST NOT DO:
============================
- Raise for blank or absent data (blank is a normal input)
- Report structural violations (structure layer's job)
- Treat a pointer to a non-ancestor as inheritance
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..contracts.base import (
    FieldName, FIELD_ORDER, ResolutionFailure, ResolutionSource
)
from ..contracts.idea import Idea, FieldValue
from ..contracts.report import FieldResolution, ResolutionMap
from ..store import IdeaStore


@dataclass(frozen=True)
class InheritanceLookup:
    """Result of following one inheritance pointer."""
    ok: bool
    value: Optional[FieldValue] = None
    failure: Optional[ResolutionFailure] = None
    source_id: Optional[str] = None


def resolve_inherited(store: IdeaStore, idea: Idea, field_name: FieldName) -> InheritanceLookup:
    """
    Follow the idea's pointer for `field_name` along its ancestor chain.

    A pointer to an idea that exists but is not an ancestor is a context
    reference: valid data, but it confers no value.
    """
    source_id = idea.inherit_ptr(field_name)
    if source_id is None:
        return InheritanceLookup(ok=False, failure=ResolutionFailure.MISSING_POINTER)

    for ancestor in store.ancestors(idea):
        if ancestor.id == source_id:
            if ancestor.has_local(field_name):
                return InheritanceLookup(
                    ok=True, value=ancestor.local(field_name), source_id=source_id
                )
            return InheritanceLookup(
                ok=False, failure=ResolutionFailure.SOURCE_HAS_NO_LOCAL, source_id=source_id
            )

    if source_id in store:
        return InheritanceLookup(
            ok=False, failure=ResolutionFailure.CONTEXT_ONLY, source_id=source_id
        )

    return InheritanceLookup(
        ok=False, failure=ResolutionFailure.NOT_FOUND, source_id=source_id
    )


def resolve_from_parent(store: IdeaStore, idea: Idea, field_name: FieldName) -> InheritanceLookup:
    """Implicit inheritance: first ancestor (nearest first) with a local value."""
    for ancestor in store.ancestors(idea):
        if ancestor.has_local(field_name):
            return InheritanceLookup(
                ok=True, value=ancestor.local(field_name), source_id=ancestor.id
            )
    return InheritanceLookup(ok=False, failure=ResolutionFailure.NO_PARENT_VALUE)


def resolve_field(store: IdeaStore, idea: Idea, field_name: FieldName) -> FieldResolution:
    """Resolve one field of one idea. Never raises for missing data."""
    if not field_name.inheritable:
        if idea.has_local(field_name):
            return FieldResolution.success(field_name, idea.local(field_name), ResolutionSource.LOCAL)
        return FieldResolution.fail(field_name, ResolutionFailure.MUST_BE_LOCAL)

    if idea.has_local(field_name):
        return FieldResolution.success(field_name, idea.local(field_name), ResolutionSource.LOCAL)

    if idea.has_inherit_ptr(field_name):
        lookup = resolve_inherited(store, idea, field_name)
        if lookup.ok:
            return FieldResolution.success(field_name, lookup.value, ResolutionSource.INHERITED)
        return FieldResolution.fail(field_name, lookup.failure)

    parent = resolve_from_parent(store, idea, field_name)
    if parent.ok:
        return FieldResolution.success(field_name, parent.value, ResolutionSource.PARENT)

    return FieldResolution.fail(field_name, ResolutionFailure.UNRESOLVED)


def resolve_all(store: IdeaStore, idea: Idea) -> ResolutionMap:
    """Resolve every field independently; one failure never stops the rest."""
    return ResolutionMap(entries=tuple(
        resolve_field(store, idea, f) for f in FIELD_ORDER
    ))
