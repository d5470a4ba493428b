"""
Prompt Catalog

Human-readable prompts and suggestion templates per field. The engine
only ever emits FieldName values; callers look the text up here, and a
different catalog can be swapped in without touching the engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .contracts.base import FieldName
from .contracts.idea import Idea


# (project_id, label) -> values, or None when the project has no such field
ProjectValueLookup = Callable[[str, str], Optional[List[str]]]


DEFAULT_PROMPTS: Dict[FieldName, str] = {
    FieldName.INTENT: "What must be true after completion? (one sentence)",
    FieldName.STAKEHOLDERS: "Who can accept or reject this change? (list)",
    FieldName.OWNER: "Who is responsible for doing the work?",
    FieldName.SYSTEM_REF: "Where does the change occur? (domain/identifier/path)",
    FieldName.QA_DOC: "How will correctness be evaluated? (checklist/procedure reference)",
    FieldName.UPDATE_SET: "What concrete actions will be taken? (list of deltas)",
    FieldName.QA_RESULTS: "What evidence shows success? (pass/fail + artifacts)",
}

# Labels tried, in order, on the enclosing #project node
DEFAULT_ALIASES: Dict[FieldName, Tuple[str, ...]] = {
    FieldName.INTENT: ("Intent", "Goal", "Objective"),
    FieldName.STAKEHOLDERS: ("Stakeholders", "Stakeholder", "Team", "People"),
    FieldName.OWNER: ("Owner", "Owners", "Assigned", "Responsible"),
    FieldName.SYSTEM_REF: ("System Reference", "System Ref", "Systems", "Reference", "Paths", "Credentials"),
    FieldName.QA_DOC: ("QA Document", "QA Documents", "QA Doc", "QA", "Testing", "Tests"),
    FieldName.UPDATE_SET: ("Update Set", "Updates", "Actions", "Tasks", "Deltas"),
    FieldName.QA_RESULTS: ("QA Results", "Results", "Evidence", "Proof"),
}

DEFAULT_TEMPLATES: Dict[FieldName, str] = {
    FieldName.INTENT: "When complete, {title} will [describe the outcome]",
    FieldName.STAKEHOLDERS: "[Name]: can accept/reject\n[Name]: must be informed",
    FieldName.OWNER: "[Person/Team responsible]",
    FieldName.SYSTEM_REF: "[Domain]: [identifier] / [path]",
    FieldName.QA_DOC: "[Verification step 1]\n[Verification step 2]",
    FieldName.UPDATE_SET: "[Action 1]\n[Action 2]\n[Action 3]",
    FieldName.QA_RESULTS: "Pass/Fail: [result]\nEvidence: [link to artifacts]",
}

# Fields whose project values collapse to a single line
SINGLE_VALUE_FIELDS = frozenset({FieldName.OWNER})


@dataclass(frozen=True)
class Suggestion:
    """Suggested text for a field and where it came from."""
    field: FieldName
    text: str
    source: str  # "project" | "template"
    label: Optional[str] = None


@dataclass
class PromptCatalog:
    prompts: Dict[FieldName, str] = field(default_factory=lambda: dict(DEFAULT_PROMPTS))
    aliases: Dict[FieldName, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    templates: Dict[FieldName, str] = field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    placeholder_title: str = "[this idea]"

    def prompt(self, field_name: FieldName) -> str:
        return self.prompts.get(field_name, f"Provide value for {field_name.value}")

    def suggest(
        self,
        field_name: FieldName,
        idea: Optional[Idea] = None,
        project_id: Optional[str] = None,
        lookup: Optional[ProjectValueLookup] = None
    ) -> Suggestion:
        """
        Prefer values already written on the enclosing project (first
        matching alias wins), else fall back to the generic template.
        """
        if project_id and lookup:
            for label in self.aliases.get(field_name, (field_name.label,)):
                values = lookup(project_id, label)
                if values:
                    text = values[0] if field_name in SINGLE_VALUE_FIELDS else "\n".join(values)
                    return Suggestion(field=field_name, text=text, source="project", label=label)

        title = idea.title if idea and idea.title else self.placeholder_title
        template = self.templates.get(field_name, f"[Provide {field_name.value}]")
        return Suggestion(field=field_name, text=template.format(title=title), source="template")


DEFAULT_CATALOG = PromptCatalog()


def get_field_prompt(field_name: FieldName) -> str:
    return DEFAULT_CATALOG.prompt(field_name)


def get_field_suggestion(
    field_name: FieldName,
    idea: Optional[Idea] = None,
    project_id: Optional[str] = None,
    lookup: Optional[ProjectValueLookup] = None
) -> Suggestion:
    return DEFAULT_CATALOG.suggest(field_name, idea, project_id, lookup)
