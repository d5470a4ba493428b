"""
Engine Orchestration Module

This module provides the unified interface for coordinating all
enforcer layers while maintaining strict boundary separation.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Engine orchestrates flow without creating coupling
3. All operations are traceable through observability
4. Validation itself stays pure; clocks and files live out here
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
import os
import time

from .contracts.base import Error, ErrorCode, FieldName, Timestamp
from .contracts.events import AuditEventType
from .contracts.idea import Idea
from .contracts.report import ValidationReport, WriteDecision
from .extraction import ExtractionConfig, ExtractionResult, OutlineExtractor
from .lifecycle import Staleness, is_stale
from .observability import ObservabilityEngine, ObservabilityConfig
from .observer import ContractObserver, Observation, ObserverConfig
from .prompts import DEFAULT_CATALOG, PromptCatalog, Suggestion
from .storage import EventLog, TimestampLedger
from .store import IdeaStore, StoreConfig
from .structure import StructureConfig
from .validation import validate, validate_write


TIMESTAMPS_FILE = "state_timestamps.json"
EVENTS_FILE = "events.jsonl"


def idea_not_found(idea_id: str) -> Error:
    """Lookup failure for an id that is not in the current snapshot."""
    return Error(
        code=ErrorCode.IDEA_NOT_FOUND,
        message=f"Idea not found: {idea_id}",
        timestamp=datetime.now(timezone.utc),
        context=(("idea_id", idea_id),),
    )


@dataclass
class EnforcerConfig:
    """Unified configuration for the whole enforcer."""
    store: StoreConfig = None
    extraction: ExtractionConfig = None
    structure: StructureConfig = None
    observer: ObserverConfig = None
    observability: ObservabilityConfig = None
    data_dir: Optional[str] = None

    def __post_init__(self):
        self.store = self.store or StoreConfig()
        self.extraction = self.extraction or ExtractionConfig(max_depth=self.store.max_depth)
        self.structure = self.structure or StructureConfig(project_tag=self.extraction.project_tag)
        self.observer = self.observer or ObserverConfig()
        self.observability = self.observability or ObservabilityConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EnforcerConfig:
        """
        Build a config from ENFORCER_* environment variables.

        ENFORCER_MAX_DEPTH  ancestor walk / outline traversal bound
        ENFORCER_STALE_DAYS days without a transition before an idea is stale
        ENFORCER_DATA_DIR   where timestamps and events are persisted
        """
        environ = os.environ if environ is None else environ
        store = StoreConfig()
        observer = ObserverConfig()
        if environ.get("ENFORCER_MAX_DEPTH"):
            store = StoreConfig(max_depth=int(environ["ENFORCER_MAX_DEPTH"]))
        if environ.get("ENFORCER_STALE_DAYS"):
            observer = ObserverConfig(stale_days=int(environ["ENFORCER_STALE_DAYS"]))
        return cls(
            store=store,
            observer=observer,
            data_dir=environ.get("ENFORCER_DATA_DIR") or None,
        )


class ContractEnforcer:
    """
    Unified entry point over one outline document.

    LAYER FLOW:
    ===========
    1. Extraction: outline export -> IdeaStore snapshot
    2. Validation: IdeaStore + Idea -> ValidationReport / WriteDecision
    3. Observer: successive reports -> events, state timestamps
    4. Observability: records activity of every layer

    Each load replaces the snapshot; nothing validated is cached across
    loads except in the observer.
    """

    def __init__(self, config: Optional[EnforcerConfig] = None, catalog: Optional[PromptCatalog] = None):
        self._config = config or EnforcerConfig()
        self._catalog = catalog or DEFAULT_CATALOG
        self._extractor = OutlineExtractor(self._config.extraction)
        self._observability = ObservabilityEngine(self._config.observability)

        data_dir = self._config.data_dir
        self._ledger = TimestampLedger(os.path.join(data_dir, TIMESTAMPS_FILE) if data_dir else None)
        self._event_log = EventLog(os.path.join(data_dir, EVENTS_FILE) if data_dir else None)
        self._observer = ContractObserver(
            config=self._config.observer,
            ledger=self._ledger,
            event_log=self._event_log,
            observability=self._observability,
            structure_config=self._config.structure,
        )
        self._result: Optional[ExtractionResult] = None
        self._store = IdeaStore.from_config((), config=self._config.store)

    # =========================================================================
    # LOADING
    # =========================================================================

    def load_outline(self, outline: Union[Mapping, Sequence[Mapping]]) -> ExtractionResult:
        """
        Extract a new store snapshot. Raises OutlineFormatError only when
        the root itself is not an outline; per-node problems are returned.
        """
        result = self._extractor.extract(outline, state_timestamps=self._ledger.snapshot())
        self._result = result
        self._store = result.store

        self._observability.log_audit(
            action="load_outline",
            layer="extraction",
            event_type=AuditEventType.EXTRACTION,
            ideas=str(len(result.store)),
            containers=str(len(result.store.containers)),
            errors=str(len(result.errors)),
        )
        for error in result.errors:
            self._observability.log_audit(
                action=error.code.name.lower(),
                layer="extraction",
                event_type=AuditEventType.ERROR,
                entity_id=dict(error.context).get("node_id"),
                message=error.message,
            )
        self._observability.collect_metric("ideas_tracked", float(len(result.store)))
        return result

    def load_store(self, store: IdeaStore):
        """Use an already-built store (no outline index, so no project suggestions)."""
        self._result = None
        self._store = store

    @property
    def store(self) -> IdeaStore:
        return self._store

    @property
    def extraction(self) -> Optional[ExtractionResult]:
        return self._result

    @property
    def catalog(self) -> PromptCatalog:
        return self._catalog

    @property
    def observer(self) -> ContractObserver:
        return self._observer

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    # =========================================================================
    # VALIDATION INTERFACE
    # =========================================================================

    def validate_all(self) -> Dict[str, ValidationReport]:
        started = time.perf_counter()
        reports = {idea.id: self._validate(idea) for idea in sorted(self._store, key=lambda i: i.id)}
        self._observability.collect_metric(
            "validation_duration_ms", (time.perf_counter() - started) * 1000.0
        )
        return reports

    def validate_idea(self, idea_id: str) -> Optional[ValidationReport]:
        idea = self._store.get(idea_id)
        if idea is None:
            return None
        return self._validate(idea)

    def _validate(self, idea: Idea) -> ValidationReport:
        report = validate(self._store, idea, self._config.structure)
        self._observability.collect_metric("validations_total", 1.0, {"state": report.state.value})
        for issue in report.issues:
            self._observability.collect_metric("structural_errors_total", 1.0, {"code": issue.code.value})
        self._observability.log_audit(
            action="validate",
            layer="validation",
            event_type=AuditEventType.VALIDATION,
            entity_id=idea.id,
            state=report.state.value,
            errors=str(len(report.issues)),
        )
        return report

    def check_write(self, proposed: Idea) -> WriteDecision:
        decision = validate_write(self._store, proposed, self._config.structure)
        if not decision.allowed:
            self._observability.collect_metric("writes_rejected_total", 1.0)
        self._observability.log_audit(
            action="check_write",
            layer="validation",
            event_type=AuditEventType.WRITE_CHECK,
            entity_id=proposed.id,
            allowed=str(decision.allowed),
        )
        return decision

    # =========================================================================
    # GUIDANCE
    # =========================================================================

    def next_prompt(self, idea_id: str) -> Optional[Tuple[FieldName, str]]:
        """The field to fill next and its prompt text; None when done or unknown."""
        report = self.validate_idea(idea_id)
        if report is None or report.next_field is None:
            return None
        return report.next_field, self._catalog.prompt(report.next_field)

    def suggest(self, idea_id: str, field_name: Optional[FieldName] = None) -> Optional[Suggestion]:
        """
        Suggested value for `field_name` (default: the next field to fill).
        Returns None for an unknown idea or a complete one.
        """
        idea = self._store.get(idea_id)
        if idea is None:
            return None
        if field_name is None:
            report = self._validate(idea)
            if report.next_field is None:
                return None
            field_name = report.next_field

        project = self._store.find_tagged_ancestor(idea, self._config.structure.project_tag)
        lookup = self._result.index.project_field_values if self._result else None
        return self._catalog.suggest(
            field_name,
            idea=idea,
            project_id=project.id if project else None,
            lookup=lookup,
        )

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    def observe(self, now: Optional[Timestamp] = None, changed_ids: Optional[List[str]] = None) -> Observation:
        return self._observer.observe(self._store, now=now, changed_ids=changed_ids)

    def stale_ideas(self, now: Optional[Timestamp] = None) -> List[Tuple[Idea, Staleness]]:
        """Ideas with no lifecycle transition for `stale_days`, oldest first."""
        now = now or Timestamp.now()
        stale = []
        for idea in self._store:
            last_change = self._ledger.get(idea.id) or idea.last_state_change_at
            staleness = is_stale(last_change, now, self._config.observer.stale_days)
            if staleness.stale:
                stale.append((idea, staleness))
        stale.sort(key=lambda pair: (-pair[1].days_since_change, pair[0].id))
        return stale

    def audit_report(self) -> Dict:
        return self._observability.generate_audit_report()
