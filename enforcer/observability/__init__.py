"""
Observability & Audit Layer

RESPONSIBILITY: Keep the audit trail and metric series of every enforcer layer
ALLOWED INPUTS: AuditLogEntry values and metric points handed in by other layers
OUTPUTS: Per-layer and unified audit logs, metric series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Change what resolution, validation or the observer decide
- Drop or rewrite recorded entries
- Feed recorded data back into any other layer
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import hashlib
import itertools

from ..contracts.base import Timestamp, TimeRange
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


LAYERS = ("extraction", "validation", "observer", "api")


def _within(timestamp: Timestamp, time_range: Optional[TimeRange]) -> bool:
    return time_range is None or time_range.contains(timestamp)


# =============================================================================
# AUDIT TRAIL
# =============================================================================

class LogCollector:
    """Append-only audit entries of one enforcer layer."""

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self._entries: List[AuditLogEntry] = []

    def collect(self, entry: AuditLogEntry):
        self._entries.append(entry)

    def get_entries(
        self,
        time_range: Optional[TimeRange] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        return [
            e for e in self._entries
            if _within(e.timestamp, time_range)
            and (event_type is None or e.event_type is event_type)
        ]

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = ()


ENFORCER_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition("validations_total", MetricType.COUNTER,
                     "Ideas validated, by derived state", ("state",)),
    MetricDefinition("validation_duration_ms", MetricType.TIMING,
                     "Wall time of one validate_all pass"),
    MetricDefinition("structural_errors_total", MetricType.COUNTER,
                     "Structural errors found, by issue code", ("code",)),
    MetricDefinition("state_transitions_total", MetricType.COUNTER,
                     "Lifecycle transitions seen by the observer", ("to_state",)),
    MetricDefinition("ideas_tracked", MetricType.GAUGE,
                     "Ideas in the latest store snapshot"),
    MetricDefinition("writes_rejected_total", MetricType.COUNTER,
                     "Proposed writes refused by validate_write"),
)


class MetricsCollector:
    """
    Append-only metric series keyed by metric name.

    Recording a name with no definition registers it as a gauge.
    """

    def __init__(self, definitions: Iterable[MetricDefinition] = ENFORCER_METRICS):
        self._definitions: Dict[str, MetricDefinition] = {}
        self._series: Dict[str, List[MetricPoint]] = {}
        for definition in definitions:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series.setdefault(definition.name, [])

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if metric_name not in self._definitions:
            self.register_metric(MetricDefinition(metric_name, MetricType.GAUGE, ""))
        self._series[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=tuple(sorted((labels or {}).items())),
        ))

    def get_metric(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[MetricPoint]:
        return [p for p in self._series.get(metric_name, ()) if _within(p.timestamp, time_range)]

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        series = self._series.get(metric_name)
        return series[-1] if series else None

    def total(self, metric_name: str) -> float:
        return sum(p.value for p in self._series.get(metric_name, ()))

    def compute_aggregates(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> Dict[str, float]:
        """count / sum / min / max / avg over the series; empty when nothing was recorded."""
        values = [p.value for p in self.get_metric(metric_name, time_range)]
        if not values:
            return {}
        total = sum(values)
        return {
            'count': len(values),
            'sum': total,
            'min': min(values),
            'max': max(values),
            'avg': total / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    enable_metrics: bool = True
    enable_audit: bool = True


class ObservabilityEngine:
    """
    Shared sink for the audit entries and metrics of every layer.

    Read access returns copies; nothing here is consulted by the
    layers that write to it.
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors = {name: LogCollector(name) for name in LAYERS}
        self._metrics = MetricsCollector() if self._config.enable_metrics else None
        self._sequence = itertools.count(1)

    def collect_audit(self, entry: AuditLogEntry):
        """Entries for layers outside LAYERS are ignored."""
        if self._config.enable_audit and entry.layer in self._collectors:
            self._collectors[entry.layer].collect(entry)

    def log_audit(
        self,
        action: str,
        layer: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        **metadata: str
    ) -> AuditLogEntry:
        """Build an entry stamped with the current time and a per-engine sequence number."""
        now = Timestamp.now()
        seed = f"{next(self._sequence)}|{layer}|{action}|{entity_id}|{now.to_iso()}"
        entry = AuditLogEntry(
            entry_id="audit_" + hashlib.sha256(seed.encode()).hexdigest()[:16],
            event_type=event_type,
            timestamp=now,
            layer=layer,
            action=action,
            entity_id=entity_id,
            metadata=tuple(sorted((key, str(value)) for key, value in metadata.items())),
        )
        self.collect_audit(entry)
        return entry

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if self._metrics is not None:
            self._metrics.record(metric_name, value, labels)

    def get_layer_log(
        self,
        layer_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[AuditLogEntry]:
        collector = self._collectors.get(layer_name)
        return collector.get_entries(time_range=time_range) if collector else []

    def get_unified_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List[AuditLogEntry]:
        """Entries of the given layers (default: all), oldest first."""
        merged = [
            entry
            for name in (layers or LAYERS)
            for entry in self.get_layer_log(name, time_range)
        ]
        return sorted(merged, key=lambda e: e.timestamp.value)

    def get_metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def generate_audit_report(self, time_range: Optional[TimeRange] = None) -> Dict:
        """Entry counts per layer and per event type, plus the covered time span."""
        entries = self.get_unified_log(time_range=time_range)
        return {
            'total_entries': len(entries),
            'by_layer': dict(Counter(e.layer for e in entries)),
            'by_event_type': dict(Counter(e.event_type.value for e in entries)),
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
            'generated_at': Timestamp.now().to_iso(),
        }
