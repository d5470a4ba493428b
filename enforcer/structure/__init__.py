"""
Structural Validator

RESPONSIBILITY: Cross-field and containment invariants of a single idea
ALLOWED INPUTS: IdeaStore snapshot + one Idea
OUTPUTS: IdeaValidation (errors, warnings, resolution map)

CHECKS (all always run, never short-circuited):
===============================================
1. Nesting        - no idea may sit under another idea           (error)
2. Containment    - an idea should sit under a #project node     (warning)
3. Exclusion      - local AND pointer on one field               (error)
4. Forbidden      - pointer on a non-inheritable field           (error)
5. Narrowing      - local system_ref must narrow inherited scope (error)

system_ref is the single field allowed to carry both a local value and a
pointer (FieldName.allows_narrowing). Exclusion skips it; the narrowing
check takes over. Nothing else special-cases it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from ..contracts.base import FieldName, INHERITABLE, NON_INHERITABLE, IssueCode
from ..contracts.idea import Idea, SystemRef
from ..contracts.report import IdeaValidation, ResolutionMap, StructuralIssue
from ..resolution import resolve_all, resolve_inherited
from ..store import IdeaStore


CONTRACT_TAG = "#contract"
PROJECT_TAG = "#project"

NESTED_MESSAGE = "Contracts cannot be nested inside other contracts"
PROJECT_MESSAGE = "Contract should live inside a #project node"


@dataclass
class StructureConfig:
    """Configuration for structural checks."""
    project_tag: str = PROJECT_TAG
    require_project: bool = True


# =============================================================================
# INDIVIDUAL CHECKS
# =============================================================================

def check_nesting(store: IdeaStore, idea: Idea) -> Optional[StructuralIssue]:
    for _ in store.ancestors(idea):
        return StructuralIssue(code=IssueCode.NESTED_CONTRACT, message=NESTED_MESSAGE)
    return None


def check_project_containment(
    store: IdeaStore,
    idea: Idea,
    project_tag: str = PROJECT_TAG
) -> Optional[StructuralIssue]:
    if store.find_tagged_ancestor(idea, project_tag) is not None:
        return None
    return StructuralIssue(code=IssueCode.MISSING_PROJECT, message=PROJECT_MESSAGE)


def check_mutual_exclusion(idea: Idea) -> List[StructuralIssue]:
    issues = []
    for f in INHERITABLE:
        if f.allows_narrowing:
            continue
        if idea.has_local(f) and idea.has_inherit_ptr(f):
            issues.append(StructuralIssue(
                code=IssueCode.BOTH_LOCAL_AND_INHERITED,
                message=f"{f.value}: cannot be both local and inherited (pick one)",
                field=f,
            ))
    return issues


def check_forbidden_inheritance(idea: Idea) -> List[StructuralIssue]:
    return [
        StructuralIssue(
            code=IssueCode.INHERITANCE_FORBIDDEN,
            message=f"{f.value}: inheritance forbidden",
            field=f,
        )
        for f in NON_INHERITABLE
        if idea.has_inherit_ptr(f)
    ]


def _is_sub_path(parent_path: str, child_path: str) -> bool:
    parent_path = parent_path.rstrip("/")
    child_path = child_path.rstrip("/")
    if child_path == parent_path:
        return True
    return child_path.startswith(parent_path + "/")


def narrows(ancestor_ref: Optional[SystemRef], child_ref: Optional[SystemRef]) -> bool:
    """
    True when `child_ref` is a scope-compatible refinement of `ancestor_ref`:
    same domain, same identifier, and (if the ancestor has a path) a path
    equal to or below it. Missing refs cannot be compared and pass.
    """
    if ancestor_ref is None or child_ref is None:
        return True
    if ancestor_ref.domain != child_ref.domain:
        return False
    if ancestor_ref.identifier != child_ref.identifier:
        return False
    if ancestor_ref.path:
        if not child_ref.path:
            return False
        if not _is_sub_path(ancestor_ref.path, child_ref.path):
            return False
    return True


def check_reference_narrowing(store: IdeaStore, idea: Idea) -> Optional[StructuralIssue]:
    f = FieldName.SYSTEM_REF
    if not (idea.has_local(f) and idea.has_inherit_ptr(f)):
        return None

    lookup = resolve_inherited(store, idea, f)
    if not lookup.ok:
        return StructuralIssue(
            code=IssueCode.NARROWING_UNVERIFIABLE,
            message=f"{f.value}: cannot validate narrowing ({lookup.failure.value})",
            field=f,
        )

    inherited, local = lookup.value, idea.local(f)
    if not isinstance(inherited, SystemRef):
        inherited = SystemRef.parse(str(inherited))
    if not isinstance(local, SystemRef):
        local = SystemRef.parse(str(local))

    if not narrows(inherited, local):
        return StructuralIssue(
            code=IssueCode.NARROWING_VIOLATION,
            message=f"{f.value}: child broadens beyond inherited scope",
            field=f,
        )
    return None


# =============================================================================
# ENTRY POINT
# =============================================================================

def validate_idea(
    store: IdeaStore,
    idea: Idea,
    config: Optional[StructureConfig] = None
) -> IdeaValidation:
    """
    Run every structural check and resolve every field.

    Findings do not depend on whether fields resolve; all of them are
    enumerated so the caller sees the full defect list in one pass.
    """
    config = config or StructureConfig()
    errors: List[StructuralIssue] = []
    warnings: List[StructuralIssue] = []

    nesting = check_nesting(store, idea)
    if nesting:
        errors.append(nesting)

    if config.require_project:
        containment = check_project_containment(store, idea, config.project_tag)
        if containment:
            warnings.append(containment)

    errors.extend(check_mutual_exclusion(idea))
    errors.extend(check_forbidden_inheritance(idea))

    resolution: ResolutionMap = resolve_all(store, idea)

    narrowing = check_reference_narrowing(store, idea)
    if narrowing:
        errors.append(narrowing)

    return IdeaValidation(
        errors=tuple(errors),
        warnings=tuple(warnings),
        resolution=resolution,
    )
