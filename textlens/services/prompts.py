"""
Prompt construction for the analyze call.

One instruction per request: the analytical lens of the domain variant, the
user's text verbatim, and a canonical example of the JSON the parser expects.
"""

import json
from typing import Any, Dict

from textlens.services.types import AnalysisRequest, CompletionBudget, DomainVariant

VARIANT_LENSES: Dict[DomainVariant, str] = {
    DomainVariant.GENERAL: (
        "You are a professional text analysis assistant. Extract the key themes, "
        "the people involved, the action items, a summary, review questions and a topic outline."
    ),
    DomainVariant.SALES: (
        "You are a sales analysis assistant. Read the text as a sales conversation or report: "
        "surface customer needs, objections, deal opportunities and follow-up actions."
    ),
    DomainVariant.EDUCATION: (
        "You are an education analysis expert. Read the text as teaching material or a class record: "
        "surface knowledge points, learning suggestions and teaching improvements."
    ),
    DomainVariant.MEDICAL: (
        "You are a medical analysis consultant. Read the text as clinical notes or a consultation record: "
        "surface symptoms, diagnostic considerations, treatment options and follow-up actions. "
        "Do not invent findings that the text does not support."
    ),
}

VARIANT_BUDGETS: Dict[DomainVariant, CompletionBudget] = {
    DomainVariant.GENERAL: CompletionBudget(temperature=0.7, max_tokens=2000),
    DomainVariant.SALES: CompletionBudget(temperature=0.5, max_tokens=2000),
    DomainVariant.EDUCATION: CompletionBudget(temperature=0.6, max_tokens=2500),
    DomainVariant.MEDICAL: CompletionBudget(temperature=0.3, max_tokens=2500),
}

RESULT_EXAMPLE: Dict[str, Any] = {
    "themes": ["theme 1", "theme 2", "theme 3"],
    "people": ["person 1", "person 2", "person 3"],
    "todos": ["action item 1", "action item 2", "action item 3"],
    "summaryParagraphs": ["summary paragraph 1", "summary paragraph 2", "summary paragraph 3"],
    "qa": [
        {"question": "question 1", "answer": "answer 1"},
        {"question": "question 2", "answer": "answer 2"},
        {"question": "question 3", "answer": "answer 3"},
    ],
    "outline": {
        "id": "root",
        "label": "main topic",
        "children": [
            {
                "id": "n1",
                "label": "point 1",
                "children": [{"id": "n1_1", "label": "detail 1", "children": []}],
            },
            {
                "id": "n2",
                "label": "point 2",
                "children": [{"id": "n2_1", "label": "detail 2", "children": []}],
            },
        ],
    },
}

_TEMPLATE = """{lens}

Analyze the text between the markers and answer with JSON only.

<<<TEXT
{text}
TEXT>>>

Return exactly this structure (field names and nesting must match):
{example}

Rules:
- Answer with a single JSON object. No prose, no comments.
- Themes, summary paragraphs and Q&A pairs: about three of each is enough.
- Do NOT limit the number of people or action items. List every person and every action item the text contains.
- Outline node ids must be unique; the root id is "root". Nest sub-topics under "children".
- Use empty lists when the text has nothing for a field."""


def budget_for(variant: DomainVariant) -> CompletionBudget:
    return VARIANT_BUDGETS[variant]


def build_prompt(request: AnalysisRequest) -> str:
    return _TEMPLATE.format(
        lens=VARIANT_LENSES[request.domain_variant],
        text=request.text,
        example=json.dumps(RESULT_EXAMPLE, ensure_ascii=False, indent=2),
    )
