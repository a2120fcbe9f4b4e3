from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter

from textlens.core.errors import AnalysisError, ValidationError
from textlens.models.schemas import AnalysisResult

_TIMESTAMP = TypeAdapter(datetime)


class DomainVariant(str, Enum):
    GENERAL = "general"
    SALES = "sales"
    EDUCATION = "education"
    MEDICAL = "medical"

    @classmethod
    def parse(cls, value: Any) -> "DomainVariant":
        if value is None:
            return cls.GENERAL
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(v.value for v in cls)
        raise ValidationError(f"domainVariant must be one of: {allowed}")


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class CompletionBudget:
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class AnalysisRequest:
    text: str
    domain_variant: DomainVariant = DomainVariant.GENERAL

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalysisRequest":
        if not isinstance(payload, dict):
            raise ValidationError("request body must be a JSON object")
        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text must be a non-empty string")
        return cls(text=text, domain_variant=DomainVariant.parse(payload.get("domainVariant")))


@dataclass(frozen=True)
class AnalysisAttempt:
    domain_variant: DomainVariant
    input_text: str
    status: AttemptStatus
    result: Optional[AnalysisResult] = None
    error_message: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.status is AttemptStatus.SUCCESS:
            if self.result is None or self.error_message is not None:
                raise ValueError("successful attempt needs a result and no error message")
        elif self.result is not None or not self.error_message:
            raise ValueError("failed attempt needs an error message and an empty result")

    @classmethod
    def success(cls, request: AnalysisRequest, result: AnalysisResult) -> "AnalysisAttempt":
        return cls(
            domain_variant=request.domain_variant,
            input_text=request.text,
            status=AttemptStatus.SUCCESS,
            result=result,
        )

    @classmethod
    def failure(cls, variant: DomainVariant, input_text: str, message: str) -> "AnalysisAttempt":
        return cls(
            domain_variant=variant,
            input_text=input_text,
            status=AttemptStatus.ERROR,
            error_message=message,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "agent_type": self.domain_variant.value,
            "input_text": self.input_text,
            "analysis_result": self.result.to_wire() if self.result is not None else {},
            "status": self.status.value,
            "error_message": self.error_message,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AnalysisAttempt":
        status = AttemptStatus(row.get("status") or "error")
        payload = row.get("analysis_result") or {}
        result = AnalysisResult.model_validate(payload) if status is AttemptStatus.SUCCESS else None
        error_message = row.get("error_message")
        if status is AttemptStatus.ERROR and not error_message:
            error_message = "analysis failed"
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            created_at=_parse_timestamp(row.get("created_at")),
            domain_variant=_stored_variant(row.get("agent_type")),
            input_text=row.get("input_text") or "",
            status=status,
            result=result,
            error_message=None if status is AttemptStatus.SUCCESS else error_message,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "domainVariant": self.domain_variant.value,
            "inputText": self.input_text,
            "result": self.result.to_wire() if self.result is not None else {},
            "status": self.status.value,
            "errorMessage": self.error_message,
        }


def _stored_variant(value: Any) -> DomainVariant:
    try:
        return DomainVariant.parse(value)
    except ValidationError:
        return DomainVariant.GENERAL


def _parse_timestamp(value: Any) -> Optional[datetime]:
    # PostgREST trims trailing zeros, so fractions come with 1 to 6 digits.
    if value is None:
        return None
    parsed = _TIMESTAMP.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class AttributionResult:
    todo: str
    owner: Optional[str] = None


class AnalysisState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING_PROMPT = "building_prompt"
    AWAITING_COMPLETION = "awaiting_completion"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisSuccess:
    result: AnalysisResult
    states: List[AnalysisState] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisFailure:
    error: AnalysisError
    placeholder: AnalysisResult
    states: List[AnalysisState] = field(default_factory=list)


AnalysisOutcome = Union[AnalysisSuccess, AnalysisFailure]
