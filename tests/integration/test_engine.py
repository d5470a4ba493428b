"""
Engine Orchestration Tests

AXIOM UNDER TEST:
=================
The engine wires extraction, validation, observer and observability
together without adding semantics of its own.
"""

import pytest

from enforcer.contracts.base import ErrorCode, FieldName, LifecycleState
from enforcer.contracts.events import AuditEventType
from enforcer.contracts.idea import FieldSlot
from enforcer.engine import ContractEnforcer, EnforcerConfig
from enforcer.extraction import OutlineFormatError

from .fixtures import T1, T_WEEK_LATER, create_intent_only_idea, create_outline, create_store


@pytest.fixture
def enforcer():
    engine = ContractEnforcer()
    engine.load_outline(create_outline())
    return engine


class TestConfig:

    def test_defaults_filled(self):
        config = EnforcerConfig()
        assert config.store.max_depth == 50
        assert config.extraction.max_depth == 50
        assert config.observer.stale_days == 7
        assert config.data_dir is None

    def test_from_env(self):
        config = EnforcerConfig.from_env({
            "ENFORCER_MAX_DEPTH": "12",
            "ENFORCER_STALE_DAYS": "3",
            "ENFORCER_DATA_DIR": "/tmp/enforcer",
        })
        assert config.store.max_depth == 12
        assert config.extraction.max_depth == 12
        assert config.observer.stale_days == 3
        assert config.data_dir == "/tmp/enforcer"

    def test_from_empty_env(self):
        assert EnforcerConfig.from_env({}).store.max_depth == 50


class TestValidation:

    def test_validate_all(self, enforcer):
        reports = enforcer.validate_all()
        assert list(reports) == ["c-done", "c-mirror", "c-raw"]
        assert reports["c-done"].state is LifecycleState.DONE
        assert reports["c-raw"].state is LifecycleState.RAW
        assert reports["c-mirror"].state is LifecycleState.WANTING

    def test_unknown_idea(self, enforcer):
        assert enforcer.validate_idea("nope") is None

    def test_bad_outline_raises_format_error(self):
        with pytest.raises(OutlineFormatError):
            ContractEnforcer().load_outline(42)

    def test_check_write_rejection_counted(self, enforcer):
        proposed = enforcer.store["c-raw"].with_slot(
            FieldName.QA_RESULTS, FieldSlot(inherited_from="c-done")
        )
        decision = enforcer.check_write(proposed)
        assert not decision.allowed
        assert enforcer.observability.get_metrics().total("writes_rejected_total") == 1.0


class TestGuidance:

    def test_next_prompt(self, enforcer):
        field_name, prompt = enforcer.next_prompt("c-raw")
        assert field_name is FieldName.INTENT
        assert prompt.startswith("What must be true")
        assert enforcer.next_prompt("c-done") is None

    def test_suggestion_prefers_project_values(self, enforcer):
        suggestion = enforcer.suggest("c-mirror")
        assert suggestion.field is FieldName.STAKEHOLDERS
        assert suggestion.source == "project"
        assert suggestion.text == "Finance\nSupport"

    def test_suggestion_template_fallback(self, enforcer):
        suggestion = enforcer.suggest("c-raw", FieldName.INTENT)
        assert suggestion.source == "template"
        assert suggestion.text == "When complete, Refund flow will [describe the outcome]"

    def test_complete_idea_has_no_suggestion(self, enforcer):
        assert enforcer.suggest("c-done") is None


class TestObservation:

    def test_observe_and_stale(self, enforcer):
        enforcer.observe(now=T1)
        assert [idea.id for idea, _ in enforcer.stale_ideas(T_WEEK_LATER)] == ["c-done", "c-mirror", "c-raw"]
        assert enforcer.stale_ideas(T1) == []

    def test_timestamps_persisted_to_data_dir(self, tmp_path):
        config = EnforcerConfig(data_dir=str(tmp_path))
        first = ContractEnforcer(config)
        first.load_outline(create_outline())
        first.observe(now=T1)

        second = ContractEnforcer(EnforcerConfig(data_dir=str(tmp_path)))
        result = second.load_outline(create_outline())
        assert result.store["c-raw"].last_state_change_at == T1
        assert (tmp_path / "events.jsonl").exists()

    def test_unwritable_data_dir_surfaces_errors(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        engine = ContractEnforcer(EnforcerConfig(data_dir=str(blocker)))
        engine.load_outline(create_outline())

        observation = engine.observe(now=T1)
        assert observation.errors
        assert all(e.code is ErrorCode.STORAGE_WRITE_FAILED for e in observation.errors)
        assert "c-raw" in observation.reports

    def test_audit_trail(self, enforcer):
        enforcer.validate_all()
        report = enforcer.audit_report()
        assert report["by_layer"]["extraction"] == 1
        assert report["by_layer"]["validation"] == 3
        assert report["by_event_type"][AuditEventType.VALIDATION.value] == 3


class TestPrebuiltStore:

    def test_load_store_validates_without_outline(self):
        engine = ContractEnforcer()
        engine.load_store(create_store([create_intent_only_idea()]))
        assert engine.extraction is None
        assert engine.validate_idea("idea-1").state is LifecycleState.WANTING

    def test_suggestion_falls_back_to_template(self):
        engine = ContractEnforcer()
        engine.load_store(create_store([create_intent_only_idea()]))
        suggestion = engine.suggest("idea-1")
        assert suggestion.field is FieldName.STAKEHOLDERS
        assert suggestion.source == "template"
