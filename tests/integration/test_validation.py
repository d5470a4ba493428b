"""
Validation Façade Tests

AXIOM UNDER TEST:
=================
Permissive write, strict complete: unresolved fields never block a
write; only self-contradictory ideas are rejected.
"""

from dataclasses import FrozenInstanceError

import pytest

from enforcer.contracts.base import FieldName, FIELD_ORDER, IssueCode, LifecycleState
from enforcer.contracts.idea import FieldSlot
from enforcer.validation import can_mark_done, is_complete, is_executable, validate, validate_write

from .fixtures import (
    BILLING_API_V2,
    BILLING_OTHER,
    create_ancestor_store,
    create_complete_idea,
    create_idea,
    create_intent_only_idea,
    create_narrowing_child,
    create_store,
    executable_values,
)


class TestValidate:

    def test_intent_only_is_wanting(self):
        idea = create_intent_only_idea()
        report = validate(create_store([idea]), idea)
        assert report.state is LifecycleState.WANTING
        assert report.next_field is FieldName.STAKEHOLDERS
        assert report.errors == ()
        assert report.unresolved_fields == FIELD_ORDER[1:]

    def test_complete_idea_is_done(self):
        idea = create_complete_idea()
        report = validate(create_store([idea]), idea)
        assert report.state is LifecycleState.DONE
        assert report.next_field is None
        assert can_mark_done(report)
        assert is_complete(report)

    def test_report_is_immutable(self):
        idea = create_intent_only_idea()
        report = validate(create_store([idea]), idea)
        with pytest.raises(FrozenInstanceError):
            report.state = LifecycleState.DONE

    def test_idempotent(self):
        child = create_narrowing_child(BILLING_OTHER)
        store = create_ancestor_store(child)
        assert validate(store, child) == validate(store, child)

    def test_does_not_mutate_idea_or_store(self):
        idea = create_intent_only_idea()
        store = create_store([idea])
        before = dict(store.ideas)
        validate(store, idea)
        assert dict(store.ideas) == before
        assert store[idea.id] is idea


class TestValidateWrite:

    def test_intent_only_allowed(self):
        idea = create_intent_only_idea()
        store = create_store([idea])
        decision = validate_write(store, idea)
        assert decision.allowed
        assert decision.errors == ()
        assert decision.report.state is LifecycleState.WANTING

    def test_mutual_exclusion_blocks(self):
        idea = create_idea(intent_local="x", intent_inherited_from="ancestor-1")
        decision = validate_write(create_store(), idea)
        assert not decision.allowed
        assert decision.errors == ("intent: cannot be both local and inherited (pick one)",)

    def test_narrowing_violation_blocks(self):
        child = create_narrowing_child(BILLING_OTHER)
        decision = validate_write(create_ancestor_store(child), child)
        assert not decision.allowed
        assert IssueCode.NARROWING_VIOLATION in [i.code for i in decision.issues]

    def test_unverifiable_narrowing_reported_but_not_blocking(self):
        child = create_idea(system_ref_local=BILLING_API_V2, system_ref_inherited_from="ghost")
        decision = validate_write(create_store([child]), child)
        assert decision.allowed
        assert [i.code for i in decision.report.issues] == [IssueCode.NARROWING_UNVERIFIABLE]

    def test_missing_project_warning_does_not_block(self):
        idea = create_idea(parent_id=None, intent_local="x")
        decision = validate_write(create_store(), idea)
        assert decision.allowed
        assert decision.report.warnings

    def test_proposed_change_replaces_stored_version(self):
        stored = create_intent_only_idea()
        store = create_store([stored])
        proposed = stored.with_slot(FieldName.UPDATE_SET, FieldSlot(inherited_from="project-1"))
        decision = validate_write(store, proposed)
        assert not decision.allowed
        assert decision.errors == ("update_set: inheritance forbidden",)
        assert not store[stored.id].has_inherit_ptr(FieldName.UPDATE_SET)


class TestPredicates:

    def test_executable_without_qa_results(self):
        idea = create_idea(**executable_values())
        report = validate(create_store([idea]), idea)
        assert report.state is LifecycleState.IMPLEMENTING
        assert is_executable(report)
        assert not can_mark_done(report)

    def test_done_with_errors_cannot_be_marked_done(self):
        values = dict(executable_values())
        values["qa_results_local"] = create_complete_idea().local(FieldName.QA_RESULTS)
        values["update_set_inherited_from"] = "project-1"
        idea = create_idea(**values)
        report = validate(create_store([idea]), idea)
        assert report.state is LifecycleState.DONE
        assert not can_mark_done(report)
