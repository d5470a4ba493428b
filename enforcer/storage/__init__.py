"""
Persistence Layer

RESPONSIBILITY: Persist observer-owned data between sessions
ALLOWED INPUTS: State-change timestamps, observer events
OUTPUTS: StorageWriteResult; loaded timestamps and events

WHAT THIS LAYER MUST NOT DO:
============================
- Store ideas or reports (they are recomputed from the document)
- Feed timestamps into resolution (the engine never reads clocks)
- Rewrite event history (the event log is append-only)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional
import json
import os

from ..contracts.base import Error, ErrorCode, Timestamp
from ..contracts.events import ObserverEvent


@dataclass(frozen=True)
class StorageWriteResult:
    success: bool
    error: Optional[Error] = None


def _storage_error(code: ErrorCode, message: str) -> Error:
    return Error(code=code, message=message, timestamp=datetime.now(timezone.utc))


# =============================================================================
# STATE TIMESTAMPS
# =============================================================================

class TimestampLedger:
    """
    Idea id -> timestamp of its last lifecycle transition.

    With a path, the whole ledger is rewritten as one JSON object on
    every save; without one it lives in memory only.
    """

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._timestamps: Dict[str, Timestamp] = {}
        self._load_error: Optional[Error] = None
        if path:
            self._load()

    def _load(self):
        if not os.path.exists(self._path):
            return
        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            self._timestamps = {
                idea_id: Timestamp.from_iso(value) for idea_id, value in data.items()
            }
        except (OSError, ValueError, AttributeError) as e:
            self._load_error = _storage_error(
                ErrorCode.STORAGE_READ_FAILED, f"Failed to load timestamps: {e}"
            )

    @property
    def load_error(self) -> Optional[Error]:
        return self._load_error

    def get(self, idea_id: str) -> Optional[Timestamp]:
        return self._timestamps.get(idea_id)

    def snapshot(self) -> Dict[str, Timestamp]:
        return dict(self._timestamps)

    def record(self, idea_id: str, timestamp: Timestamp) -> StorageWriteResult:
        self._timestamps[idea_id] = timestamp
        return self._save()

    def forget(self, idea_id: str) -> StorageWriteResult:
        if self._timestamps.pop(idea_id, None) is None:
            return StorageWriteResult(success=True)
        return self._save()

    def _save(self) -> StorageWriteResult:
        if not self._path:
            return StorageWriteResult(success=True)
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._path, 'w', encoding='utf-8') as f:
                json.dump(
                    {k: v.to_iso() for k, v in sorted(self._timestamps.items())},
                    f, indent=2
                )
            return StorageWriteResult(success=True)
        except OSError as e:
            return StorageWriteResult(
                success=False,
                error=_storage_error(ErrorCode.STORAGE_WRITE_FAILED, f"Failed to save timestamps: {e}")
            )


# =============================================================================
# EVENT LOG
# =============================================================================

class EventLog:
    """Append-only log of observer events (JSONL on disk when a path is set)."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._events: List[dict] = []

    def append(self, event: ObserverEvent) -> StorageWriteResult:
        record = event.to_dict()
        self._events.append(record)
        if not self._path:
            return StorageWriteResult(success=True)
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(record) + '\n')
            return StorageWriteResult(success=True)
        except OSError as e:
            return StorageWriteResult(
                success=False,
                error=_storage_error(ErrorCode.STORAGE_WRITE_FAILED, f"Failed to append event: {e}")
            )

    def read_all(self) -> List[dict]:
        """Events from disk if persisted, else this session's events."""
        if not self._path or not os.path.exists(self._path):
            return list(self._events)
        records = []
        with open(self._path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line:
                    records.append(json.loads(line))
        return records

    def __len__(self) -> int:
        return len(self._events)
