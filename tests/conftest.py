import asyncio
import inspect
import json
from typing import List

import pytest

from textlens.core.config import Settings
from textlens.core.errors import StoreError
from textlens.db.client import AnalysisStore


def pytest_pyfunc_call(pyfuncitem):
    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(test_func(**kwargs))
    finally:
        loop.close()
    return True


SAMPLE_RESULT = {
    "themes": ["Quarterly planning", "Hiring"],
    "people": ["Ana", "Bo"],
    "todos": ["Ana drafts the budget", "assigned to Bo: book the venue", "file the report"],
    "summaryParagraphs": ["The team reviewed the plan.", "Hiring starts in May."],
    "qa": [{"question": "When does hiring start?", "answer": "May"}],
    "outline": {
        "id": "root",
        "label": "Planning meeting",
        "children": [
            {"id": "n1", "label": "Budget", "children": [{"id": "n1_1", "label": "Draft", "children": []}]},
            {"id": "n2", "label": "Hiring", "children": []},
        ],
    },
}


class ScriptedCompletion:
    """Stands in for the completion client: returns a fixed reply or raises."""

    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = json.dumps(SAMPLE_RESULT) if reply is None and error is None else reply
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    async def complete(self, prompt, budget):
        self.calls.append((prompt, budget))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FailingStore(AnalysisStore):
    def __init__(self):
        self.append_calls = 0

    def append(self, attempt):
        self.append_calls += 1
        raise StoreError("store offline")

    def list(self):
        raise StoreError("store offline")

    def get(self, record_id):
        raise StoreError("store offline")

    def delete(self, record_id):
        raise StoreError("store offline")

    def ping(self):
        raise StoreError("store offline")


@pytest.fixture
def sample_result():
    return json.loads(json.dumps(SAMPLE_RESULT))


@pytest.fixture
def completion_factory():
    return ScriptedCompletion


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def settings():
    return Settings(llm_api_key="test-key", db_backend="memory")
