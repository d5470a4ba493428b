"""
Contracts Module

This module defines the explicit data types that form the contracts
between layers. All inter-layer communication MUST use these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses or enums)
2. Failures are data: resolution reasons and structural issues are
   values inside reports, never exceptions
3. Fields are an explicit enumeration, not string suffixes
4. All timestamps use UTC and are never mutated
"""

from .base import (
    FieldName, FIELD_ORDER, INHERITABLE, NON_INHERITABLE, FIELD_LABELS,
    LifecycleState, ResolutionSource, ResolutionFailure,
    IssueCode, BLOCKING_CODES, ErrorCode, Error, Timestamp, TimeRange,
)
from .idea import (
    is_blank, SystemRef, QaStatus, QaResults, FieldSlot, Idea, ContainerNode,
)
from .report import (
    FieldResolution, ResolutionMap, StructuralIssue, IdeaValidation,
    ValidationReport, WriteDecision,
)
