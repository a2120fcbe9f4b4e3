import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Tuple
from uuid import uuid4

from textlens.core.errors import RecordNotFound, StoreError
from textlens.services.types import AnalysisAttempt


class AnalysisStore:
    def append(self, attempt: AnalysisAttempt) -> str:
        raise NotImplementedError

    def list(self) -> List[AnalysisAttempt]:
        raise NotImplementedError

    def get(self, record_id: str) -> AnalysisAttempt:
        raise NotImplementedError

    def delete(self, record_id: str) -> None:
        raise NotImplementedError

    def ping(self) -> None:
        raise NotImplementedError


class InMemoryStore(AnalysisStore):
    def __init__(self) -> None:
        self._records: Dict[str, Tuple[int, AnalysisAttempt]] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def append(self, attempt: AnalysisAttempt) -> str:
        with self._lock:
            self._seq += 1
            record_id = str(uuid4())
            stored = replace(attempt, id=record_id, created_at=datetime.now(timezone.utc))
            self._records[record_id] = (self._seq, stored)
        return record_id

    def list(self) -> List[AnalysisAttempt]:
        with self._lock:
            rows = list(self._records.values())
        rows.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [attempt for _, attempt in rows]

    def get(self, record_id: str) -> AnalysisAttempt:
        with self._lock:
            item = self._records.get(record_id)
        if item is None:
            raise RecordNotFound(record_id)
        return item[1]

    def delete(self, record_id: str) -> None:
        with self._lock:
            if self._records.pop(record_id, None) is None:
                raise RecordNotFound(record_id)

    def ping(self) -> None:
        return None


class DisabledStore(AnalysisStore):
    """Used when no store connection is configured; history is unavailable."""

    def _unavailable(self) -> StoreError:
        return StoreError("record store is not configured")

    def append(self, attempt: AnalysisAttempt) -> str:
        raise self._unavailable()

    def list(self) -> List[AnalysisAttempt]:
        raise self._unavailable()

    def get(self, record_id: str) -> AnalysisAttempt:
        raise self._unavailable()

    def delete(self, record_id: str) -> None:
        raise self._unavailable()

    def ping(self) -> None:
        raise self._unavailable()
