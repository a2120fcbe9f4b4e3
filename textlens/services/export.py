from datetime import datetime, timezone
from typing import List, Optional

from textlens.models.schemas import AnalysisResult
from textlens.services.attribution import attribute_all
from textlens.services.types import AnalysisAttempt, AttemptStatus, DomainVariant

VARIANT_NAMES = {
    DomainVariant.GENERAL: "General Analysis",
    DomainVariant.SALES: "Sales Analysis",
    DomainVariant.EDUCATION: "Education Analysis",
    DomainVariant.MEDICAL: "Medical Analysis",
}

UNASSIGNED = "[Unassigned]"


def _todo_section(result: AnalysisResult) -> str:
    if result.todos:
        lines = ["Action items:"]
        for index, item in enumerate(attribute_all(result.todos, result.people), start=1):
            owner = f"[{item.owner}]" if item.owner else UNASSIGNED
            lines.append(f"{index}. {owner} {item.todo}")
        return "\n".join(lines)
    if result.people:
        lines = ["People involved:"]
        lines.extend(f"{index}. {person}" for index, person in enumerate(result.people, start=1))
        return "\n".join(lines)
    return "No related content found."


def _result_sections(result: AnalysisResult) -> List[str]:
    sections: List[str] = []
    if result.themes:
        sections.append("Themes:\n" + ", ".join(result.themes))
    sections.append(_todo_section(result))
    if result.summary_paragraphs:
        numbered = [f"{index}. {para}" for index, para in enumerate(result.summary_paragraphs, start=1)]
        sections.append("Summary paragraphs:\n" + "\n\n".join(numbered))
    return sections


def render_result_text(result: AnalysisResult) -> str:
    return "\n\n".join(["Text Analysis Result", *_result_sections(result)])


def render_attempt_text(attempt: AnalysisAttempt) -> str:
    parts = [
        f"Text Analysis Result - {VARIANT_NAMES[attempt.domain_variant]}",
        "Input text:\n" + attempt.input_text,
    ]
    if attempt.result is not None:
        parts.append("Analysis result:")
        parts.extend(_result_sections(attempt.result))
    footer = [
        f"Analyzed at: {attempt.created_at.isoformat() if attempt.created_at else 'unknown'}",
        "Status: " + ("Success" if attempt.status is AttemptStatus.SUCCESS else "Failed"),
    ]
    if attempt.error_message:
        footer.append(f"Error: {attempt.error_message}")
    parts.append("\n".join(footer))
    return "\n\n".join(parts)


def export_filename(attempt: Optional[AnalysisAttempt] = None) -> str:
    if attempt is None:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
        return f"analysis_{stamp}.txt"
    day = (attempt.created_at or datetime.now(timezone.utc)).date().isoformat()
    return f"analysis_{attempt.domain_variant.value}_{day}.txt"
