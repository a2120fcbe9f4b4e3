import logging
from typing import TYPE_CHECKING, Optional

from textlens.core.config import Settings
from textlens.db.client import AnalysisStore, DisabledStore, InMemoryStore

if TYPE_CHECKING:
    from textlens.services.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

_store: Optional[AnalysisStore] = None
_orchestrator: Optional["Orchestrator"] = None


def create_store(settings: Settings) -> AnalysisStore:
    if settings.db_backend == "memory":
        return InMemoryStore()
    if not settings.store_configured:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; analysis history is disabled")
        return DisabledStore()
    from textlens.db.supabase_db import SupabaseStore

    try:
        return SupabaseStore(settings.supabase_url, settings.supabase_key, table=settings.records_table)
    except Exception as exc:
        logger.warning("supabase client init failed; analysis history is disabled", exc_info=exc)
        return DisabledStore()


def set_store(store: AnalysisStore) -> None:
    global _store
    _store = store


def get_store() -> AnalysisStore:
    if _store is None:
        raise RuntimeError("Record store not initialized")
    return _store


def set_orchestrator(orchestrator: "Orchestrator") -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> "Orchestrator":
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialized")
    return _orchestrator
