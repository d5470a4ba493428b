"""
Event Contracts

Immutable events produced by diffing successive validation reports,
plus the audit and metric records of the observability layer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .base import FieldName, LifecycleState, Timestamp


# =============================================================================
# OBSERVER EVENTS
# =============================================================================

class ObserverEventType(Enum):
    """What changed between two observation passes."""
    CONTRACT_ADDED = "contract_added"
    CONTRACT_REMOVED = "contract_removed"
    STATE_CHANGED = "state_changed"
    FIELD_CHANGED = "field_changed"
    VALIDATION_ERRORS = "validation_errors"
    VALIDATION_WARNINGS = "validation_warnings"
    STATE_TAG_MISMATCH = "state_tag_mismatch"
    STALE = "stale"


@dataclass(frozen=True)
class ObserverEvent:
    """One change detected for one idea."""
    event_type: ObserverEventType
    idea_id: str
    timestamp: Timestamp
    previous_state: Optional[LifecycleState] = None
    new_state: Optional[LifecycleState] = None
    field: Optional[FieldName] = None
    messages: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type.value,
            "idea_id": self.idea_id,
            "timestamp": self.timestamp.to_iso(),
            "previous_state": self.previous_state.value if self.previous_state else None,
            "new_state": self.new_state.value if self.new_state else None,
            "field": self.field.value if self.field else None,
            "messages": list(self.messages),
        }


# =============================================================================
# AUDIT AND METRICS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    EXTRACTION = "extraction"
    VALIDATION = "validation"
    WRITE_CHECK = "write_check"
    STATE_CHANGE = "state_change"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
