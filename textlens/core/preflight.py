from __future__ import annotations

import logging
from typing import Any, Dict, List

from textlens.core.config import Settings
from textlens.core.errors import StoreError
from textlens.db.client import AnalysisStore

logger = logging.getLogger(__name__)


def _check_required(value: str) -> bool:
    return bool(value and value.strip())


def collect_preflight(settings: Settings, store: AnalysisStore) -> Dict[str, Any]:
    checks: List[Dict[str, Any]] = []

    def add_check(key: str, ok: bool, severity: str, message: str, fix: str) -> None:
        checks.append(
            {
                "key": key,
                "ok": bool(ok),
                "severity": severity,
                "message": message,
                "fix": fix,
            }
        )

    db_backend = settings.db_backend or "supabase"

    add_check(
        "llm_api_key",
        _check_required(settings.llm_api_key),
        "blocker",
        "Completion service API key is required for analysis",
        "Set LLM_API_KEY (or DEEPSEEK_API_KEY) in server env.",
    )
    add_check(
        "db_backend",
        db_backend in {"supabase", "memory"},
        "warn",
        f"DB_BACKEND must be one of supabase/memory (current: {db_backend})",
        "Set DB_BACKEND=supabase or DB_BACKEND=memory.",
    )
    if db_backend == "supabase":
        add_check(
            "supabase_config",
            settings.store_configured,
            "warn",
            "SUPABASE_URL and SUPABASE_KEY are required for analysis history",
            "Set SUPABASE_URL and SUPABASE_KEY to your Supabase project.",
        )

    store_error = ""
    try:
        store.ping()
    except StoreError as exc:
        store_error = str(exc)
        logger.info("preflight store ping failed: %s", exc)
    add_check(
        "record_store",
        not store_error,
        "warn",
        f"Record store unreachable: {store_error}" if store_error else "Record store reachable",
        f"Create the {settings.records_table} table and check store credentials.",
    )

    blockers = [c for c in checks if c["severity"] == "blocker" and not c["ok"]]
    warnings = [c for c in checks if c["severity"] == "warn" and not c["ok"]]

    return {
        "status": "ok" if not blockers and not warnings else "degraded",
        "checks": checks,
        "blockers": blockers,
        "warnings": warnings,
        "runtime": {
            "app_env": settings.app_env,
            "db_backend": db_backend,
            "llm_model": settings.llm_model,
            "completion_timeout_s": settings.completion_timeout_s,
        },
    }
