"""
API Mapper
==========

Transforms validation reports into JSON-ready DTOs, and proposed-idea
payloads back into Idea records. Values are exposed as-is: unresolved
fields keep their failure reason, nothing is smoothed over.
"""
from typing import Any, Dict, List, Mapping, Optional

from ..contracts.base import FieldName, FIELD_ORDER, Error
from ..contracts.idea import FieldSlot, FieldValue, Idea, QaResults, QaStatus, SystemRef
from ..contracts.report import FieldResolution, StructuralIssue, ValidationReport, WriteDecision
from ..prompts import Suggestion


def map_value(value: Optional[FieldValue]) -> Any:
    """Field value -> JSON value."""
    if value is None:
        return None
    if isinstance(value, SystemRef):
        return {
            "domain": value.domain,
            "identifier": value.identifier,
            "path": value.path,
            "version": value.version,
            "display": str(value),
        }
    if isinstance(value, QaResults):
        return {"status": value.status.value, "evidence": list(value.evidence)}
    if isinstance(value, tuple):
        return list(value)
    return value


def _map_resolution(resolution: FieldResolution) -> Dict[str, Any]:
    return {
        "field": resolution.field.value,
        "label": resolution.field.label,
        "resolved": resolution.resolved,
        "value": map_value(resolution.value),
        "source": resolution.source.value if resolution.source else None,
        "error": resolution.error,
    }


def _map_issue(issue: StructuralIssue) -> Dict[str, Any]:
    return {
        "code": issue.code.value,
        "field": issue.field.value if issue.field else None,
        "message": issue.message,
        "blocks_write": issue.blocks_write,
    }


def map_report_to_dto(report: ValidationReport) -> Dict[str, Any]:
    """Map a ValidationReport to the ValidationReportDTO shape."""
    return {
        "idea_id": report.idea_id,
        "state": report.state.value,
        "state_tag": report.state.tag,
        "next_field": report.next_field.value if report.next_field else None,
        "errors": list(report.errors),
        "warnings": list(report.warnings),
        "issues": [_map_issue(i) for i in report.issues + report.warning_issues],
        "unresolved_fields": [f.value for f in report.unresolved_fields],
        "resolution": [_map_resolution(r) for r in report.resolution],
    }


def map_write_decision_to_dto(decision: WriteDecision) -> Dict[str, Any]:
    return {
        "allowed": decision.allowed,
        "errors": list(decision.errors),
        "issues": [_map_issue(i) for i in decision.issues],
        "report": map_report_to_dto(decision.report) if decision.report else None,
    }


def map_error_to_dto(error: Error) -> Dict[str, Any]:
    return {
        "code": error.code.name,
        "message": error.message,
        "context": dict(error.context),
    }


def map_suggestion_to_dto(suggestion: Suggestion, prompt: str) -> Dict[str, Any]:
    return {
        "field": suggestion.field.value,
        "prompt": prompt,
        "text": suggestion.text,
        "source": suggestion.source,
        "label": suggestion.label,
    }


def map_field_catalog(prompts: Mapping[FieldName, str]) -> List[Dict[str, Any]]:
    """The seven fields in canonical order with their metadata."""
    return [
        {
            "field": f.value,
            "label": f.label,
            "inheritable": f.inheritable,
            "is_list": f.is_list,
            "prompt": prompts.get(f),
        }
        for f in FIELD_ORDER
    ]


# =============================================================================
# INBOUND: payload -> Idea
# =============================================================================

def _parse_value(field_name: FieldName, raw: Any) -> Optional[FieldValue]:
    if raw is None:
        return None
    if field_name is FieldName.SYSTEM_REF:
        if isinstance(raw, Mapping):
            return SystemRef(
                domain=raw.get("domain", ""),
                identifier=raw.get("identifier", ""),
                path=raw.get("path"),
                version=raw.get("version"),
            )
        return SystemRef.parse(str(raw))
    if field_name is FieldName.QA_RESULTS:
        if isinstance(raw, Mapping):
            return QaResults(
                status=QaStatus(raw.get("status", QaStatus.UNKNOWN.value)),
                evidence=tuple(raw.get("evidence", ())),
            )
        lines = [raw] if isinstance(raw, str) else list(raw)
        return QaResults.from_lines([str(line) for line in lines])
    if field_name.is_list:
        return tuple(str(v) for v in ([raw] if isinstance(raw, str) else raw))
    return str(raw)


def map_dto_to_idea(payload: Mapping[str, Any]) -> Idea:
    """
    Build an Idea from a proposed-idea payload:
    {"id", "parent_id", "title", "tags", "slots": {name: {"local", "inherited_from"}}}

    Raises ValueError for unknown field names or malformed values.
    """
    slots = {}
    for name, raw_slot in (payload.get("slots") or {}).items():
        field_name = FieldName(name)
        raw_slot = raw_slot or {}
        slots[field_name] = FieldSlot(
            local=_parse_value(field_name, raw_slot.get("local")),
            inherited_from=raw_slot.get("inherited_from"),
        )
    return Idea(
        id=payload["id"],
        parent_id=payload.get("parent_id"),
        title=payload.get("title") or "",
        tags=frozenset(payload.get("tags") or ()),
        slots=slots,
    )
