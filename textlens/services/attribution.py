"""
Task-to-person attribution.

Given an action item and the participants extracted from the same text, guess
who owns the item. Four tiers are tried in a fixed order and the first one
that produces a name wins:

1. direct mention: the first participant (list order) whose name occurs in
   the task;
2. delegation keyword: for each keyword in order that occurs in the task, the
   first participant whose name starts the text right after it;
3. pronoun fallback: if the task contains a third-person pronoun, the first
   participant;
4. modal-verb prefix: if the task starts with an obligation verb, the first
   participant named in the rest of the task.

The function is pure; display and export call it on every render and rely on
identical output for identical input.
"""

import re
from functools import lru_cache
from typing import List, Optional, Pattern, Sequence

from textlens.services.types import AttributionResult

DELEGATION_KEYWORDS = (
    "assigned to",
    "assigned by",
    "responsible for",
    "delegated to",
    "handed to",
    "entrusted to",
    "由",
    "负责",
    "指派给",
    "分配给",
    "交给",
    "委托给",
)

PRONOUNS = ("he", "she", "they", "him", "her", "them", "他", "她", "他们", "她们")

MODAL_VERBS = (
    "needs to",
    "need to",
    "has to",
    "have to",
    "should",
    "must",
    "需要",
    "应该",
    "必须",
    "要",
)


@lru_cache(maxsize=None)
def _word_pattern(word: str) -> Pattern[str]:
    if not word.isascii():
        return re.compile(re.escape(word))
    # "assigned to" also matches "assigned-to" and "Assigned  To".
    body = r"[\s-]+".join(re.escape(part) for part in word.split())
    return re.compile(rf"\b{body}\b", re.IGNORECASE)


def _known(people: Sequence[str]) -> List[str]:
    return [p for p in people if isinstance(p, str) and p.strip()]


def _direct_mention(task: str, people: Sequence[str]) -> Optional[str]:
    for person in people:
        if person in task:
            return person
    return None


def _delegation_keyword(task: str, people: Sequence[str]) -> Optional[str]:
    for keyword in DELEGATION_KEYWORDS:
        match = _word_pattern(keyword).search(task)
        if match is None:
            continue
        after = task[match.end():].strip()
        for person in people:
            if after.startswith(person):
                return person
    return None


def _pronoun_fallback(task: str, people: Sequence[str]) -> Optional[str]:
    for pronoun in PRONOUNS:
        if _word_pattern(pronoun).search(task):
            # No coreference resolution; the first participant is the default.
            return people[0]
    return None


def _modal_prefix(task: str, people: Sequence[str]) -> Optional[str]:
    stripped = task.lstrip()
    for verb in MODAL_VERBS:
        match = _word_pattern(verb).match(stripped)
        if match is None:
            continue
        rest = stripped[match.end():].strip()
        for person in people:
            if person in rest:
                return person
    return None


TIERS = (_direct_mention, _delegation_keyword, _pronoun_fallback, _modal_prefix)


def attribute(task: str, people: Sequence[str]) -> Optional[str]:
    known = _known(people)
    if not task or not known:
        return None
    for tier in TIERS:
        owner = tier(task, known)
        if owner is not None:
            return owner
    return None


def attribute_all(todos: Sequence[str], people: Sequence[str]) -> List[AttributionResult]:
    return [AttributionResult(todo=todo, owner=attribute(todo, people)) for todo in todos]
