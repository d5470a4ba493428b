"""
Contract Enforcer: Validation API Server
========================================

Stateless-per-request HTTP surface over the enforcer. Every request
carries the outline export it refers to; the server keeps only the
audit trail and metrics between requests.

Endpoints:
- GET  /health                       -> Liveness
- GET  /api/v1/fields                -> Field catalog in canonical order
- POST /api/v1/validate              -> Reports for every idea
- POST /api/v1/validate/{idea_id}    -> Report for one idea
- POST /api/v1/validate-write        -> Admission decision for a proposed idea
- POST /api/v1/suggest/{idea_id}     -> Prompt + suggestion for a field

Usage:
    uvicorn enforcer.api.server:app --reload
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..contracts.base import FieldName
from ..contracts.events import AuditEventType
from ..engine import ContractEnforcer, EnforcerConfig, idea_not_found
from ..extraction import OutlineFormatError
from ..prompts import DEFAULT_PROMPTS
from .mapper import (
    map_dto_to_idea,
    map_error_to_dto,
    map_field_catalog,
    map_report_to_dto,
    map_suggestion_to_dto,
    map_write_decision_to_dto,
)

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

enforcer_instance: Optional[ContractEnforcer] = None


def get_enforcer() -> ContractEnforcer:
    """Return the process-wide enforcer, creating it from the environment if needed."""
    global enforcer_instance
    if enforcer_instance is None:
        enforcer_instance = ContractEnforcer(EnforcerConfig.from_env())
    return enforcer_instance


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the enforcer on startup."""
    global enforcer_instance

    config = EnforcerConfig.from_env()
    print(f"[*] Initializing Contract Enforcer (max_depth={config.store.max_depth}, "
          f"stale_days={config.observer.stale_days}, data_dir={config.data_dir})")
    enforcer_instance = ContractEnforcer(config)
    print("[*] Enforcer initialized successfully.")

    yield

    print("[*] Shutting down enforcer.")
    enforcer_instance = None


app = FastAPI(
    title="Contract Enforcer API",
    version="0.1.0",
    description="Field resolution, structural validation and lifecycle derivation for outline contracts",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class OutlineRequest(BaseModel):
    # Left untyped so a non-outline root reaches the extractor and becomes a 400.
    outline: Any


class SlotPayload(BaseModel):
    local: Any = None
    inherited_from: Optional[str] = None


class ProposedIdea(BaseModel):
    id: str
    parent_id: Optional[str] = None
    title: str = ""
    tags: List[str] = Field(default_factory=list)
    slots: Dict[str, SlotPayload] = Field(default_factory=dict)


class WriteRequest(OutlineRequest):
    idea: ProposedIdea


class SuggestRequest(OutlineRequest):
    field_name: Optional[str] = None


def _load(enforcer: ContractEnforcer, outline: Any):
    try:
        return enforcer.load_outline(outline)
    except OutlineFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _parse_field(name: Optional[str]) -> Optional[FieldName]:
    if name is None:
        return None
    try:
        return FieldName(name)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown field: {name}")


def _not_found(enforcer: ContractEnforcer, idea_id: str) -> HTTPException:
    error = idea_not_found(idea_id)
    enforcer.observability.log_audit(
        action="idea_not_found", layer="api", event_type=AuditEventType.ERROR, entity_id=idea_id
    )
    return HTTPException(status_code=404, detail=map_error_to_dto(error))


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    enforcer = get_enforcer()
    return {"status": "online", "ideas_loaded": len(enforcer.store)}


@app.get("/api/v1/fields")
async def get_fields():
    """The seven contract fields, in canonical order."""
    return {"fields": map_field_catalog(DEFAULT_PROMPTS)}


@app.post("/api/v1/validate")
async def validate_outline(request: OutlineRequest):
    """Validate every idea in the outline."""
    enforcer = get_enforcer()
    result = _load(enforcer, request.outline)
    reports = enforcer.validate_all()
    enforcer.observability.log_audit(action="validate_outline", layer="api", ideas=str(len(reports)))

    by_state: Dict[str, int] = {}
    for report in reports.values():
        by_state[report.state.value] = by_state.get(report.state.value, 0) + 1

    return {
        "ideas": [map_report_to_dto(r) for r in reports.values()],
        "extraction_errors": [map_error_to_dto(e) for e in result.errors],
        "summary": {"total": len(reports), "by_state": by_state},
    }


@app.post("/api/v1/validate/{idea_id}")
async def validate_single(idea_id: str, request: OutlineRequest):
    """Validate one idea of the outline."""
    enforcer = get_enforcer()
    _load(enforcer, request.outline)
    report = enforcer.validate_idea(idea_id)
    if report is None:
        raise _not_found(enforcer, idea_id)
    enforcer.observability.log_audit(action="validate_idea", layer="api", entity_id=idea_id)
    return map_report_to_dto(report)


@app.post("/api/v1/validate-write")
async def validate_write_endpoint(request: WriteRequest):
    """
    Admission control: would writing this idea leave it self-contradictory?
    Partially filled ideas are always allowed.
    """
    enforcer = get_enforcer()
    _load(enforcer, request.outline)
    try:
        proposed = map_dto_to_idea(request.idea.model_dump())
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    decision = enforcer.check_write(proposed)
    enforcer.observability.log_audit(
        action="validate_write", layer="api", entity_id=proposed.id, allowed=str(decision.allowed)
    )
    return map_write_decision_to_dto(decision)


@app.post("/api/v1/suggest/{idea_id}")
async def suggest(idea_id: str, request: SuggestRequest):
    """Prompt and suggested value for a field (default: the next one to fill)."""
    enforcer = get_enforcer()
    _load(enforcer, request.outline)
    field_name = _parse_field(request.field_name)
    if idea_id not in enforcer.store:
        raise _not_found(enforcer, idea_id)
    suggestion = enforcer.suggest(idea_id, field_name)
    enforcer.observability.log_audit(action="suggest", layer="api", entity_id=idea_id)
    if suggestion is None:
        return {"idea_id": idea_id, "complete": True, "suggestion": None}
    return {
        "idea_id": idea_id,
        "complete": False,
        "suggestion": map_suggestion_to_dto(suggestion, enforcer.catalog.prompt(suggestion.field)),
    }
