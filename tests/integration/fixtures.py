"""
Integration Test Fixtures

Deterministic idea stores and outline exports.
All fixtures are explicit - no random generation.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable

from enforcer.contracts.base import Timestamp
from enforcer.contracts.idea import ContainerNode, Idea, QaResults, QaStatus, SystemRef
from enforcer.store import IdeaStore


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

EPOCH = Timestamp(datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc))
T1 = Timestamp(datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc))
T2 = Timestamp(datetime(2026, 1, 3, 10, 0, 0, tzinfo=timezone.utc))
T_WEEK_LATER = Timestamp(datetime(2026, 1, 9, 10, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# STRUCTURAL NODES
# =============================================================================

PROJECT_ID = "project-1"

PROJECT = ContainerNode(
    id=PROJECT_ID,
    parent_id=None,
    title="Billing",
    tags=frozenset({"#project"}),
)

FOLDER = ContainerNode(
    id="folder-1",
    parent_id=PROJECT_ID,
    title="Backlog",
)


# =============================================================================
# FIELD VALUES
# =============================================================================

BILLING_API = SystemRef(domain="svc", identifier="billing", path="/api")
BILLING_API_V2 = SystemRef(domain="svc", identifier="billing", path="/api/v2")
BILLING_OTHER = SystemRef(domain="svc", identifier="billing", path="/other")

QA_PASS = QaResults(status=QaStatus.PASS, evidence=("Pass: all checks green",))


def complete_values() -> Dict[str, object]:
    """Local values for all seven fields."""
    return {
        "intent_local": "Invoices are emailed on creation",
        "stakeholders_local": ("Finance", "Support"),
        "owner_local": "Dana",
        "system_ref_local": BILLING_API,
        "qa_doc_local": "Checklist: invoice emails",
        "update_set_local": ("Add mailer hook", "Add template"),
        "qa_results_local": QA_PASS,
    }


def executable_values() -> Dict[str, object]:
    """Everything except qa_results."""
    values = complete_values()
    del values["qa_results_local"]
    return values


# =============================================================================
# IDEA FIXTURES
# =============================================================================

def create_idea(idea_id: str = "idea-1", parent_id: str = PROJECT_ID, **values) -> Idea:
    return Idea.create(idea_id, parent_id=parent_id, title=f"Idea {idea_id}", tags=("#contract",), **values)


def create_intent_only_idea() -> Idea:
    return create_idea(intent_local="Invoices are emailed on creation")


def create_complete_idea(idea_id: str = "idea-1") -> Idea:
    return create_idea(idea_id, **complete_values())


def create_store(ideas: Iterable[Idea] = (), containers: Iterable[ContainerNode] = (PROJECT, FOLDER)) -> IdeaStore:
    return IdeaStore(ideas, containers)


def create_ancestor_store(child: Idea) -> IdeaStore:
    """
    project-1 (#project)
      ancestor-1 (idea, all inheritable fields local, system_ref svc:billing /api)
        <child>
      sibling-1 (idea, owner local)
    """
    ancestor = create_idea(
        "ancestor-1",
        intent_local="Parent intent",
        stakeholders_local=("Finance",),
        owner_local="Lee",
        system_ref_local=BILLING_API,
        qa_doc_local="Parent QA doc",
    )
    sibling = create_idea("sibling-1", owner_local="Sam")
    return create_store([ancestor, sibling, child])


def create_narrowing_child(path_ref: SystemRef) -> Idea:
    return create_idea(
        "child-1",
        parent_id="ancestor-1",
        system_ref_local=path_ref,
        system_ref_inherited_from="ancestor-1",
    )


# =============================================================================
# OUTLINE EXPORT FIXTURES
# =============================================================================

def create_outline() -> dict:
    """
    One project holding:
      c-done      complete contract tagged #planning (tag lags behind)
      c-raw       empty contract tagged #raw
      c-mirror    owner mirrored from the project's Owner value
    plus a project-level Owner/Stakeholders section for suggestions.
    """
    return {
        "id": "p1",
        "name": "Billing <b>revamp</b> #project",
        "children": [
            {"id": "p1-owner", "name": "Owner", "children": [
                {"id": "p1-owner-v", "name": "Dana"},
            ]},
            {"id": "p1-stake", "name": "Stakeholders", "children": [
                {"id": "p1-stake-1", "name": "Finance"},
                {"id": "p1-stake-2", "name": "Support"},
            ]},
            {"id": "c-done", "name": "Email invoices #contract #planning", "children": [
                {"id": "c-done-intent", "name": "Intent: Invoices are emailed on creation"},
                {"id": "c-done-stake", "name": "Stakeholders", "children": [
                    {"id": "c-done-stake-1", "name": "Finance"},
                ]},
                {"id": "c-done-owner", "name": "Owner: Dana"},
                {"id": "c-done-ref", "name": "System Reference", "children": [
                    {"id": "c-done-ref-1", "name": "svc: billing /api @v3"},
                ]},
                {"id": "c-done-qadoc", "name": "QA Document: Checklist A"},
                {"id": "c-done-update", "name": "Update Set", "children": [
                    {"id": "c-done-update-1", "name": "Add mailer hook"},
                    {"id": "c-done-update-2", "name": "Add template"},
                ]},
                {"id": "c-done-qares", "name": "QA Results", "children": [
                    {"id": "c-done-qares-1", "name": "Pass: all checks green"},
                ]},
            ]},
            {"id": "c-raw", "name": "Refund flow #contract #raw", "children": []},
            {"id": "c-mirror", "name": "Dunning emails #contract", "children": [
                {"id": "c-mirror-intent", "name": "Intent", "note": "Late payers get reminders"},
                {"id": "c-mirror-owner", "name": "Owner", "children": [
                    {"id": "c-mirror-owner-m", "name": "", "mirror_of": "p1-owner-v"},
                ]},
            ]},
        ],
    }


def create_nested_outline() -> dict:
    """A contract inside a contract, with an owner pointer to the outer one."""
    return {
        "id": "p2",
        "name": "Platform #project",
        "children": [
            {"id": "outer", "name": "Outer #contract", "children": [
                {"id": "outer-owner", "name": "Owner: Lee"},
                {"id": "inner", "name": "Inner #contract", "children": [
                    {"id": "inner-intent", "name": "Intent: Nested work"},
                    {"id": "inner-owner", "name": "Owner", "children": [
                        {"id": "inner-owner-m", "name": "", "mirror_of": "outer-owner"},
                    ]},
                    {"id": "inner-update", "name": "Update Set", "children": [
                        {"id": "inner-update-m", "name": "", "mirror_of": "outer"},
                        {"id": "inner-update-1", "name": "Local action"},
                    ]},
                ]},
            ]},
        ],
    }
