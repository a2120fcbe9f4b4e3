import os
from dataclasses import dataclass
from typing import Tuple

from textlens.core.secret_loader import load_secrets_from_file


@dataclass(frozen=True)
class Settings:
    app_env: str = "dev"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.deepseek.com/v1"
    llm_model: str = "deepseek-chat"
    completion_timeout_s: float = 30.0
    supabase_url: str = ""
    supabase_key: str = ""
    records_table: str = "analysis_records"
    db_backend: str = "supabase"
    error_placeholder: bool = True
    cors_origins: Tuple[str, ...] = ("*",)
    # Pending record writes are abandoned after this long at shutdown.
    drain_timeout_s: float = 10.0
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    log_file: str = ""
    log_file_max_bytes: int = 10 * 1024 * 1024
    log_file_backups: int = 5

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url.strip() and self.supabase_key.strip())


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return ""


def load_settings() -> Settings:
    load_secrets_from_file()
    defaults = Settings()
    origins = tuple(o.strip() for o in (os.getenv("CORS_ORIGINS") or "*").split(",") if o.strip())
    return Settings(
        app_env=os.getenv("APP_ENV", "dev"),
        llm_api_key=_first_env("LLM_API_KEY", "DEEPSEEK_API_KEY"),
        llm_base_url=os.getenv("LLM_BASE_URL", "https://api.deepseek.com/v1"),
        llm_model=os.getenv("LLM_MODEL", "deepseek-chat"),
        completion_timeout_s=float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
        supabase_url=_first_env("SUPABASE_URL"),
        supabase_key=_first_env("SUPABASE_KEY", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY"),
        records_table=os.getenv("RECORDS_TABLE", "analysis_records"),
        db_backend=(os.getenv("DB_BACKEND") or "supabase").strip().lower(),
        error_placeholder=os.getenv("ANALYZE_ERROR_PLACEHOLDER", "1") == "1",
        cors_origins=origins or ("*",),
        drain_timeout_s=float(os.getenv("RECORD_DRAIN_TIMEOUT_SECONDS", "10")),
        log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
        log_format=os.getenv("LOG_FORMAT") or defaults.log_format,
        log_file=_first_env("LOG_FILE"),
        log_file_max_bytes=int(os.getenv("LOG_FILE_MAX_BYTES", str(defaults.log_file_max_bytes))),
        log_file_backups=int(os.getenv("LOG_FILE_BACKUP_COUNT", str(defaults.log_file_backups))),
    )
