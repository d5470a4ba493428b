"""
Persistence Tests

Timestamps survive a restart; the event log is append-only JSONL.
Failures are returned as StorageWriteResult data.
"""

import json

from enforcer.contracts.base import ErrorCode
from enforcer.contracts.events import ObserverEvent, ObserverEventType
from enforcer.storage import EventLog, TimestampLedger

from .fixtures import T1, T2


class TestTimestampLedger:

    def test_in_memory_by_default(self):
        ledger = TimestampLedger()
        assert ledger.record("a", T1).success
        assert ledger.get("a") == T1
        assert ledger.snapshot() == {"a": T1}

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "state" / "timestamps.json")
        ledger = TimestampLedger(path)
        ledger.record("a", T1)
        ledger.record("b", T2)
        ledger.forget("b")

        reloaded = TimestampLedger(path)
        assert reloaded.load_error is None
        assert reloaded.snapshot() == {"a": T1}

    def test_corrupt_file_reported_not_raised(self, tmp_path):
        path = tmp_path / "timestamps.json"
        path.write_text("{not json", encoding="utf-8")
        ledger = TimestampLedger(str(path))
        assert ledger.load_error.code is ErrorCode.STORAGE_READ_FAILED
        assert ledger.snapshot() == {}

    def test_write_failure_returned(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        ledger = TimestampLedger(str(blocker / "timestamps.json"))
        result = ledger.record("a", T1)
        assert not result.success
        assert result.error.code is ErrorCode.STORAGE_WRITE_FAILED


class TestEventLog:

    def test_appends_jsonl(self, tmp_path):
        path = tmp_path / "events.jsonl"
        log = EventLog(str(path))
        log.append(ObserverEvent(ObserverEventType.CONTRACT_ADDED, "a", T1))
        log.append(ObserverEvent(ObserverEventType.STALE, "a", T2, messages=("8 days",)))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event_type"] for line in lines] == ["contract_added", "stale"]
        assert EventLog(str(path)).read_all()[1]["messages"] == ["8 days"]
        assert len(log) == 2
