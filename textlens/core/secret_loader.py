import os
from pathlib import Path

# "name: value" lines in a local secrets file, mapped onto env vars.
_LINE_PREFIXES = (
    ("deepseek api key", "DEEPSEEK_API_KEY"),
    ("llm api key", "LLM_API_KEY"),
    ("supabase url", "SUPABASE_URL"),
    ("supabase service_role", "SUPABASE_SERVICE_ROLE_KEY"),
    ("supabase anon key", "SUPABASE_ANON_KEY"),
    ("supabase key", "SUPABASE_KEY"),
)


def _iter_secret_paths() -> list[str]:
    candidates: list[str] = []
    env_path = os.getenv("SECRET_PATH")
    if env_path:
        candidates.append(env_path)

    home = Path.home()
    candidates.extend(
        [
            str(home / ".textlens/secrets.txt"),
            str(home / "Documents/textlens_secrets.txt"),
        ]
    )
    return candidates


def load_secrets_from_file() -> None:
    path = None
    for candidate in _iter_secret_paths():
        if candidate and os.path.exists(candidate):
            path = candidate
            break
    if not path:
        return

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read().splitlines()
    except OSError:
        return

    for line in content:
        lowered = line.strip().lower()
        for prefix, key in _LINE_PREFIXES:
            if lowered.startswith(prefix):
                _set_env_from_line(line, key)
                break


def _set_env_from_line(line: str, key: str) -> None:
    if os.getenv(key):
        return
    parts = line.split(":", 1)
    if len(parts) != 2:
        return
    value = parts[1].strip()
    if value:
        os.environ[key] = value
