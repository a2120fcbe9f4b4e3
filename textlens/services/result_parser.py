import json
import re

from pydantic import ValidationError as SchemaValidationError

from textlens.core.errors import MalformedOutput
from textlens.models.schemas import AnalysisResult

# Opening fence with an optional language tag, e.g. ```json
_LEADING_FENCE = re.compile(r"^```[\w-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?```\s*$")


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_result(raw_text: str) -> AnalysisResult:
    body = strip_code_fence(raw_text or "")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedOutput(raw_text, reason=f"invalid JSON at line {exc.lineno}") from exc
    if not isinstance(payload, dict):
        raise MalformedOutput(raw_text, reason="top-level value is not an object")
    try:
        return AnalysisResult.model_validate(payload)
    except SchemaValidationError as exc:
        raise MalformedOutput(raw_text, reason=f"{exc.error_count()} schema error(s)") from exc
