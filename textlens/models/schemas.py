from typing import Any, Dict, List, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

ROOT_ID = "root"

_LIST_KEYS = frozenset({"themes", "people", "todos", "summaryParagraphs", "summary_paragraphs", "qa"})


class QAPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str


class OutlineNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    children: List["OutlineNode"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_topic(cls, data: Any) -> Any:
        # Node-tree exports name the label "topic".
        if isinstance(data, dict) and "label" not in data and "topic" in data:
            data = {**data, "label": data["topic"]}
        return data

    def iter_ids(self):
        yield self.id
        for child in self.children:
            yield from child.iter_ids()


OutlineNode.model_rebuild()


def _empty_outline() -> OutlineNode:
    return OutlineNode(id=ROOT_ID, label="", children=[])


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    themes: List[str] = Field(default_factory=list)
    people: List[str] = Field(default_factory=list)
    todos: List[str] = Field(default_factory=list)
    summary_paragraphs: List[str] = Field(default_factory=list, alias="summaryParagraphs")
    qa: List[QAPair] = Field(default_factory=list)
    outline: OutlineNode = Field(default_factory=_empty_outline)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        # A null section means "nothing found", same as a missing one.
        data = {key: value for key, value in data.items() if not (key in _LIST_KEYS and value is None)}
        outline = data.get("outline")
        if outline is None and isinstance(data.get("mindMap"), dict):
            # Older prompt revisions wrapped the tree as {"meta", "format", "data"}.
            outline = data["mindMap"].get("data")
        if isinstance(outline, dict):
            data["outline"] = {**outline, "id": ROOT_ID}
        elif outline is None:
            data.pop("outline", None)
        data.pop("mindMap", None)
        return data

    @model_validator(mode="after")
    def _unique_outline_ids(self) -> "AnalysisResult":
        seen: Set[str] = set()
        for node_id in self.outline.iter_ids():
            if node_id in seen:
                raise ValueError(f"duplicate outline id {node_id!r}")
            seen.add(node_id)
        return self

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def placeholder_result() -> AnalysisResult:
    """Illustrative content returned next to a 500 so clients keep one response shape."""
    return AnalysisResult(
        themes=["Example theme"],
        people=["Example person"],
        todos=["Example action item"],
        summaryParagraphs=["This is an example summary paragraph."],
        qa=[QAPair(question="Example question", answer="Example answer")],
        outline=OutlineNode(
            id=ROOT_ID,
            label="Example theme",
            children=[
                OutlineNode(
                    id="n1",
                    label="Example point 1",
                    children=[OutlineNode(id="n1_1", label="Example detail 1")],
                ),
                OutlineNode(
                    id="n2",
                    label="Example point 2",
                    children=[OutlineNode(id="n2_1", label="Example detail 2")],
                ),
            ],
        ),
    )
