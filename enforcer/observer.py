"""
Contract Observer
=================

Caller-side companion to the validation façade.

The engine returns complete report values and owns no callbacks. This
observer keeps the previous pass, diffs it against the current one and
turns the differences into ObserverEvents: contract added/removed, state
changed, field changed, errors, warnings, tag mismatch, staleness.

It also owns what the engine deliberately does not:
- lifecycle transition timestamps (TimestampLedger)
- the clock (`now` is read here and nowhere in the engine)
- transitive re-validation of descendants after an ancestor changes
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .contracts.base import FIELD_ORDER, INHERITABLE, Error, Timestamp
from .contracts.events import ObserverEvent, ObserverEventType, AuditEventType
from .contracts.idea import Idea
from .contracts.report import ValidationReport
from .lifecycle import DEFAULT_STALE_DAYS, is_stale
from .observability import ObservabilityEngine
from .storage import EventLog, StorageWriteResult, TimestampLedger
from .store import IdeaStore
from .store.topology import descendant_ideas
from .structure import StructureConfig
from .validation import validate


@dataclass
class ObserverConfig:
    """Configuration for the observer."""
    stale_days: int = DEFAULT_STALE_DAYS
    report_stale: bool = True
    report_tag_mismatch: bool = True


@dataclass(frozen=True)
class Observation:
    """Result of one observation pass."""
    timestamp: Timestamp
    reports: Dict[str, ValidationReport]
    events: Tuple[ObserverEvent, ...] = field(default_factory=tuple)
    revalidated: FrozenSet[str] = field(default_factory=frozenset)
    errors: Tuple[Error, ...] = field(default_factory=tuple)

    def events_of(self, event_type: ObserverEventType) -> List[ObserverEvent]:
        return [e for e in self.events if e.event_type is event_type]


def changed_inheritable_sources(previous: Optional[Idea], current: Optional[Idea]) -> bool:
    """True when an idea's values that descendants may inherit differ."""
    if previous is None or current is None:
        return previous is not current
    if previous.parent_id != current.parent_id:
        return True
    return any(previous.local(f) != current.local(f) for f in INHERITABLE)


class ContractObserver:
    """
    Diffs successive validation passes.

    Not thread-safe: one observer per document session.
    """

    def __init__(
        self,
        config: Optional[ObserverConfig] = None,
        ledger: Optional[TimestampLedger] = None,
        event_log: Optional[EventLog] = None,
        observability: Optional[ObservabilityEngine] = None,
        structure_config: Optional[StructureConfig] = None
    ):
        self._config = config or ObserverConfig()
        self._ledger = ledger if ledger is not None else TimestampLedger()
        self._event_log = event_log if event_log is not None else EventLog()
        self._observability = observability
        self._structure_config = structure_config
        self._ideas: Dict[str, Idea] = {}
        self._reports: Dict[str, ValidationReport] = {}
        self._stale: Set[str] = set()
        self._write_errors: List[Error] = []

    @property
    def ledger(self) -> TimestampLedger:
        return self._ledger

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def previous_report(self, idea_id: str) -> Optional[ValidationReport]:
        return self._reports.get(idea_id)

    def reset(self):
        self._ideas.clear()
        self._reports.clear()
        self._stale.clear()

    # -------------------------------------------------------------------------
    # Re-validation scope
    # -------------------------------------------------------------------------

    def affected_ideas(self, store: IdeaStore, changed_ids: Iterable[str]) -> Set[str]:
        """
        The changed ideas plus every idea whose resolution can depend on
        them. Only ideas whose inheritable values (or position) actually
        changed propagate to descendants.
        """
        affected: Set[str] = set()
        for idea_id in changed_ids:
            affected.add(idea_id)
            if changed_inheritable_sources(self._ideas.get(idea_id), store.get(idea_id)):
                affected |= descendant_ideas(store, idea_id)
        return {i for i in affected if i in store or i in self._reports}

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def observe(
        self,
        store: IdeaStore,
        now: Optional[Timestamp] = None,
        changed_ids: Optional[Iterable[str]] = None
    ) -> Observation:
        """
        Validate the store and diff against the previous pass.

        With `changed_ids`, only those ideas and their dependents are
        re-validated; every other idea keeps its previous report.
        """
        now = now or Timestamp.now()
        self._write_errors = []

        if changed_ids is None:
            targets = set(store.ideas) | set(self._reports)
        else:
            targets = self.affected_ideas(store, changed_ids)
            # Ideas never seen before always need a first report.
            targets |= set(store.ideas) - set(self._reports)
            targets |= set(self._reports) - set(store.ideas)

        reports: Dict[str, ValidationReport] = {
            k: v for k, v in self._reports.items() if k in store
        }
        events: List[ObserverEvent] = []

        for idea_id in sorted(targets):
            idea = store.get(idea_id)
            previous = self._reports.get(idea_id)

            if idea is None:
                if previous is not None:
                    events.append(ObserverEvent(
                        event_type=ObserverEventType.CONTRACT_REMOVED,
                        idea_id=idea_id,
                        timestamp=now,
                        previous_state=previous.state,
                    ))
                    self._check_write(self._ledger.forget(idea_id))
                    self._stale.discard(idea_id)
                continue

            report = validate(store, idea, self._structure_config)
            reports[idea_id] = report
            events.extend(self._diff(idea, previous, report, now))

        if self._config.report_stale:
            events.extend(self._check_stale(store, reports, now))

        self._ideas = dict(store.ideas)
        self._reports = reports

        for event in events:
            self._check_write(self._event_log.append(event))
        self._record(store, reports, events, targets)

        return Observation(
            timestamp=now,
            reports=dict(reports),
            events=tuple(events),
            revalidated=frozenset(t for t in targets if t in store),
            errors=tuple(self._write_errors),
        )

    def _check_write(self, result: StorageWriteResult):
        if not result.success and result.error is not None:
            self._write_errors.append(result.error)

    def _diff(
        self,
        idea: Idea,
        previous: Optional[ValidationReport],
        report: ValidationReport,
        now: Timestamp
    ) -> List[ObserverEvent]:
        events: List[ObserverEvent] = []

        if previous is None:
            events.append(ObserverEvent(
                event_type=ObserverEventType.CONTRACT_ADDED,
                idea_id=idea.id,
                timestamp=now,
                new_state=report.state,
            ))
            if self._ledger.get(idea.id) is None and idea.last_state_change_at is None:
                self._check_write(self._ledger.record(idea.id, now))
        else:
            if previous.state is not report.state:
                events.append(ObserverEvent(
                    event_type=ObserverEventType.STATE_CHANGED,
                    idea_id=idea.id,
                    timestamp=now,
                    previous_state=previous.state,
                    new_state=report.state,
                ))
                self._check_write(self._ledger.record(idea.id, now))
                self._stale.discard(idea.id)

            for f in FIELD_ORDER:
                if previous.resolution[f] != report.resolution[f]:
                    events.append(ObserverEvent(
                        event_type=ObserverEventType.FIELD_CHANGED,
                        idea_id=idea.id,
                        timestamp=now,
                        field=f,
                    ))

        if report.errors and (previous is None or previous.errors != report.errors):
            events.append(ObserverEvent(
                event_type=ObserverEventType.VALIDATION_ERRORS,
                idea_id=idea.id,
                timestamp=now,
                new_state=report.state,
                messages=report.errors,
            ))

        if report.warnings and (previous is None or previous.warnings != report.warnings):
            events.append(ObserverEvent(
                event_type=ObserverEventType.VALIDATION_WARNINGS,
                idea_id=idea.id,
                timestamp=now,
                messages=report.warnings,
            ))

        tag = idea.current_state_tag
        if self._config.report_tag_mismatch and tag is not None and tag is not report.state:
            previous_idea = self._ideas.get(idea.id)
            already_reported = (
                previous is not None
                and previous_idea is not None
                and previous_idea.current_state_tag is idea.current_state_tag
                and previous.state is report.state
            )
            if not already_reported:
                events.append(ObserverEvent(
                    event_type=ObserverEventType.STATE_TAG_MISMATCH,
                    idea_id=idea.id,
                    timestamp=now,
                    previous_state=idea.current_state_tag,
                    new_state=report.state,
                ))

        return events

    def _check_stale(
        self,
        store: IdeaStore,
        reports: Dict[str, ValidationReport],
        now: Timestamp
    ) -> List[ObserverEvent]:
        events = []
        for idea_id in sorted(reports):
            idea = store[idea_id]
            last_change = self._ledger.get(idea_id) or idea.last_state_change_at
            staleness = is_stale(last_change, now, self._config.stale_days)
            if not staleness.stale:
                self._stale.discard(idea_id)
                continue
            if idea_id in self._stale:
                continue
            self._stale.add(idea_id)
            events.append(ObserverEvent(
                event_type=ObserverEventType.STALE,
                idea_id=idea_id,
                timestamp=now,
                new_state=reports[idea_id].state,
                messages=(f"no state change for {staleness.days_since_change} days",),
            ))
        return events

    def _record(
        self,
        store: IdeaStore,
        reports: Dict[str, ValidationReport],
        events: List[ObserverEvent],
        targets: Set[str]
    ):
        if self._observability is None:
            return
        self._observability.collect_metric("ideas_tracked", float(len(store)))
        for event in events:
            if event.event_type is ObserverEventType.STATE_CHANGED:
                self._observability.collect_metric(
                    "state_transitions_total", 1.0, {"to_state": event.new_state.value}
                )
                self._observability.log_audit(
                    action="state_changed",
                    layer="observer",
                    event_type=AuditEventType.STATE_CHANGE,
                    entity_id=event.idea_id,
                    previous_state=event.previous_state.value,
                    new_state=event.new_state.value,
                )
        self._observability.log_audit(
            action="observe",
            layer="observer",
            revalidated=str(len(targets)),
            events=str(len(events)),
        )
        for error in self._write_errors:
            self._observability.log_audit(
                action="storage_write_failed",
                layer="observer",
                event_type=AuditEventType.ERROR,
                code=error.code.name,
                message=error.message,
            )
