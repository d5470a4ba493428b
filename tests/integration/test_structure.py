"""
Structural Validator Tests

AXIOM UNDER TEST:
=================
Structural findings are fully enumerated and independent of whether
fields resolve. Only system_ref may carry both a local value and a
pointer; everything else is checked by a single rule each.
"""

import pytest

from enforcer.contracts.base import FieldName, IssueCode
from enforcer.contracts.idea import SystemRef
from enforcer.store import IdeaStore
from enforcer.structure import (
    NESTED_MESSAGE,
    PROJECT_MESSAGE,
    StructureConfig,
    check_mutual_exclusion,
    narrows,
    validate_idea,
)

from .fixtures import (
    BILLING_API_V2,
    BILLING_OTHER,
    FOLDER,
    PROJECT,
    create_ancestor_store,
    create_idea,
    create_narrowing_child,
    create_store,
)


def _codes(issues):
    return [i.code for i in issues]


class TestNesting:

    def test_idea_under_idea_is_error(self):
        child = create_idea("child-1", parent_id="ancestor-1")
        result = validate_idea(create_ancestor_store(child), child)
        assert NESTED_MESSAGE in [i.message for i in result.errors]

    def test_idea_under_containers_is_fine(self):
        idea = create_idea(parent_id=FOLDER.id)
        result = validate_idea(create_store([idea]), idea)
        assert result.errors == ()


class TestProjectContainment:

    def test_missing_project_is_warning_not_error(self):
        idea = create_idea(parent_id=None)
        result = validate_idea(IdeaStore([idea]), idea)
        assert result.errors == ()
        assert [w.message for w in result.warnings] == [PROJECT_MESSAGE]
        assert result.warnings[0].code is IssueCode.MISSING_PROJECT

    def test_project_found_through_folders(self):
        idea = create_idea(parent_id=FOLDER.id)
        assert validate_idea(create_store([idea]), idea).warnings == ()

    def test_containment_check_can_be_disabled(self):
        idea = create_idea(parent_id=None)
        result = validate_idea(IdeaStore([idea]), idea, StructureConfig(require_project=False))
        assert result.warnings == ()


class TestMutualExclusion:

    def test_exact_message(self):
        idea = create_idea(intent_local="x", intent_inherited_from="ancestor-1")
        result = validate_idea(create_store([idea]), idea)
        assert [i.message for i in result.errors] == [
            "intent: cannot be both local and inherited (pick one)"
        ]

    def test_every_violating_field_reported(self):
        idea = create_idea(
            intent_local="x", intent_inherited_from="a",
            owner_local="y", owner_inherited_from="a",
        )
        issues = check_mutual_exclusion(idea)
        assert [i.field for i in issues] == [FieldName.INTENT, FieldName.OWNER]

    def test_system_ref_is_exempt(self):
        idea = create_idea(system_ref_local=BILLING_API_V2, system_ref_inherited_from="ancestor-1")
        assert check_mutual_exclusion(idea) == []


class TestForbiddenInheritance:

    @pytest.mark.parametrize("field_name", [FieldName.UPDATE_SET, FieldName.QA_RESULTS])
    def test_pointer_on_non_inheritable_field(self, field_name):
        idea = create_idea(**{f"{field_name.value}_inherited_from": "ancestor-1"})
        result = validate_idea(create_store([idea]), idea)
        assert [i.message for i in result.errors] == [f"{field_name.value}: inheritance forbidden"]
        assert result.errors[0].code is IssueCode.INHERITANCE_FORBIDDEN

    def test_forbidden_not_doubled_as_exclusion(self):
        idea = create_idea(update_set_local=("a",), update_set_inherited_from="ancestor-1")
        result = validate_idea(create_store([idea]), idea)
        assert _codes(result.errors) == [IssueCode.INHERITANCE_FORBIDDEN]


class TestReferenceNarrowing:

    def test_sub_path_passes(self):
        child = create_narrowing_child(BILLING_API_V2)
        result = validate_idea(create_ancestor_store(child), child)
        assert IssueCode.NARROWING_VIOLATION not in _codes(result.errors)
        assert IssueCode.NARROWING_UNVERIFIABLE not in _codes(result.errors)

    def test_other_path_fails(self):
        child = create_narrowing_child(BILLING_OTHER)
        result = validate_idea(create_ancestor_store(child), child)
        assert "system_ref: child broadens beyond inherited scope" in [i.message for i in result.errors]

    def test_unresolvable_inherited_ref_reported(self):
        child = create_idea("child-1", parent_id="ancestor-1",
                            system_ref_local=BILLING_API_V2, system_ref_inherited_from="sibling-1")
        result = validate_idea(create_ancestor_store(child), child)
        unverifiable = [i for i in result.errors if i.code is IssueCode.NARROWING_UNVERIFIABLE]
        assert len(unverifiable) == 1
        assert unverifiable[0].message == (
            "system_ref: cannot validate narrowing "
            "(inherit source not in ancestor chain (context only))"
        )

    def test_string_refs_are_parsed(self):
        ancestor = create_idea("ancestor-1", system_ref_local="svc: billing /api")
        child = create_idea("child-1", parent_id="ancestor-1",
                            system_ref_local="svc: billing /api/v2",
                            system_ref_inherited_from="ancestor-1")
        result = validate_idea(create_store([ancestor, child]), child)
        assert IssueCode.NARROWING_VIOLATION not in _codes(result.errors)

    @pytest.mark.parametrize("parent,child,expected", [
        (SystemRef("svc", "billing", "/api"), SystemRef("svc", "billing", "/api"), True),
        (SystemRef("svc", "billing", "/api"), SystemRef("svc", "billing", "/api/v2"), True),
        (SystemRef("svc", "billing", "/api"), SystemRef("svc", "billing", "/apiary"), False),
        (SystemRef("svc", "billing", "/api"), SystemRef("svc", "billing", None), False),
        (SystemRef("svc", "billing", None), SystemRef("svc", "billing", "/anything"), True),
        (SystemRef("svc", "billing", "/api"), SystemRef("svc", "ledger", "/api"), False),
        (SystemRef("svc", "billing", "/api"), SystemRef("db", "billing", "/api"), False),
    ])
    def test_narrows(self, parent, child, expected):
        assert narrows(parent, child) is expected

    @pytest.mark.parametrize("parent_path,child_path,expected", [
        ("/api/", "/api", True),
        ("/api", "/api/", True),
        ("/api/", "/api/v2", True),
        ("/api/", "/api2", False),
        ("/", "/api", True),
    ])
    def test_trailing_slash_ignored(self, parent_path, child_path, expected):
        parent = SystemRef("svc", "billing", parent_path)
        child = SystemRef("svc", "billing", child_path)
        assert narrows(parent, child) is expected


class TestFullEnumeration:

    def test_all_findings_in_one_pass(self):
        child = create_idea(
            "child-1", parent_id="ancestor-1",
            intent_local="x", intent_inherited_from="ancestor-1",
            qa_results_inherited_from="ancestor-1",
            system_ref_local=BILLING_OTHER, system_ref_inherited_from="ancestor-1",
        )
        result = validate_idea(create_ancestor_store(child), child)
        assert _codes(result.errors) == [
            IssueCode.NESTED_CONTRACT,
            IssueCode.BOTH_LOCAL_AND_INHERITED,
            IssueCode.INHERITANCE_FORBIDDEN,
            IssueCode.NARROWING_VIOLATION,
        ]

    def test_findings_independent_of_resolution(self):
        idea = create_idea(parent_id=PROJECT.id)
        result = validate_idea(create_store([idea]), idea)
        assert result.errors == ()
        assert len(result.resolution.unresolved()) == 7
