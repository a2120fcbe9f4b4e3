import logging
from typing import Any, Dict, List, Optional

from supabase import create_client

from textlens.core.errors import RecordNotFound, StoreError
from textlens.db.client import AnalysisStore
from textlens.services.types import AnalysisAttempt

logger = logging.getLogger(__name__)


class SupabaseStore(AnalysisStore):
    def __init__(
        self,
        url: str,
        key: str,
        table: str = "analysis_records",
        client: Optional[Any] = None,
    ) -> None:
        self.table = table
        self.client: Any = client if client is not None else create_client(url, key)

    def _rows(self, query: Any, action: str) -> List[Dict[str, Any]]:
        try:
            res = query.execute()
        except Exception as exc:
            raise StoreError(f"{action} failed: {exc}") from exc
        return res.data or []

    def _attempt(self, row: Dict[str, Any]) -> AnalysisAttempt:
        try:
            return AnalysisAttempt.from_row(row)
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"unreadable record {row.get('id')}: {exc}") from exc

    def append(self, attempt: AnalysisAttempt) -> str:
        rows = self._rows(self.client.table(self.table).insert(attempt.to_row()), "insert")
        if not rows or rows[0].get("id") is None:
            raise StoreError("insert returned no record id")
        record_id = str(rows[0]["id"])
        logger.info("analysis record stored id=%s status=%s", record_id, attempt.status.value)
        return record_id

    def list(self) -> List[AnalysisAttempt]:
        query = self.client.table(self.table).select("*").order("created_at", desc=True)
        attempts: List[AnalysisAttempt] = []
        for row in self._rows(query, "list"):
            # Older rows were saved without validation; one bad row must not hide the rest.
            try:
                attempts.append(self._attempt(row))
            except StoreError as exc:
                logger.warning("skipping unreadable analysis record: %s", exc)
        return attempts

    def get(self, record_id: str) -> AnalysisAttempt:
        query = self.client.table(self.table).select("*").eq("id", record_id).limit(1)
        rows = self._rows(query, "get")
        if not rows:
            raise RecordNotFound(record_id)
        return self._attempt(rows[0])

    def delete(self, record_id: str) -> None:
        rows = self._rows(self.client.table(self.table).delete().eq("id", record_id), "delete")
        if not rows:
            raise RecordNotFound(record_id)

    def ping(self) -> None:
        self._rows(self.client.table(self.table).select("id").limit(1), "ping")
