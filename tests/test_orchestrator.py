import asyncio
import json
import threading
import time
from types import SimpleNamespace

import pytest

from textlens.core.config import Settings
from textlens.core.errors import (
    ConfigError,
    MalformedOutput,
    UpstreamHTTPError,
    UpstreamTimeout,
    ValidationError,
)
from textlens.db.client import InMemoryStore
from textlens.services.completion import CompletionClient
from textlens.services.orchestrator import Orchestrator
from textlens.services.types import (
    AnalysisFailure,
    AnalysisState,
    AnalysisSuccess,
    AttemptStatus,
    DomainVariant,
)

S = AnalysisState


async def test_success_runs_every_state_and_records_once(completion_factory):
    store = InMemoryStore()
    completion = completion_factory()
    orch = Orchestrator(store, completion)

    outcome = await orch.analyze({"text": "Planning notes", "domainVariant": "sales"})
    await orch.drain()

    assert isinstance(outcome, AnalysisSuccess)
    assert outcome.states == [
        S.IDLE,
        S.VALIDATING,
        S.BUILDING_PROMPT,
        S.AWAITING_COMPLETION,
        S.PARSING,
        S.PERSISTING,
        S.DONE,
    ]
    assert outcome.result.people == ["Ana", "Bo"]
    assert completion.calls[0][1].temperature == 0.5

    records = store.list()
    assert len(records) == 1
    assert records[0].status is AttemptStatus.SUCCESS
    assert records[0].domain_variant is DomainVariant.SALES
    assert records[0].input_text == "Planning notes"
    assert records[0].result == outcome.result
    assert records[0].error_message is None


async def test_successful_lists_have_no_missing_items(completion_factory):
    orch = Orchestrator(InMemoryStore(), completion_factory())
    outcome = await orch.analyze({"text": "notes"})
    await orch.drain()
    result = outcome.result
    for items in (result.themes, result.people, result.todos, result.summary_paragraphs):
        assert all(isinstance(item, str) for item in items)
    assert all(pair.question and pair.answer for pair in result.qa)


@pytest.mark.parametrize(
    "payload",
    [None, [], {}, {"text": ""}, {"text": "   "}, {"text": 42}, {"text": "ok", "domainVariant": "legal"}],
)
async def test_invalid_request_fails_validation_and_is_recorded(completion_factory, payload):
    store = InMemoryStore()
    completion = completion_factory()
    orch = Orchestrator(store, completion)

    outcome = await orch.analyze(payload)
    await orch.drain()

    assert isinstance(outcome, AnalysisFailure)
    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.status_code == 400
    assert outcome.states == [S.IDLE, S.VALIDATING, S.FAILED, S.PERSISTING]
    assert completion.calls == []
    records = store.list()
    assert len(records) == 1
    assert records[0].status is AttemptStatus.ERROR
    assert records[0].result is None
    assert records[0].error_message


@pytest.mark.parametrize(
    "error",
    [ConfigError("completion service API key is not configured"), UpstreamHTTPError(502), UpstreamTimeout(30)],
)
async def test_completion_failures_return_placeholder(completion_factory, error):
    store = InMemoryStore()
    orch = Orchestrator(store, completion_factory(error=error))

    outcome = await orch.analyze({"text": "notes"})
    await orch.drain()

    assert isinstance(outcome, AnalysisFailure)
    assert outcome.error is error
    assert outcome.error.status_code == 500
    assert outcome.states[-3:] == [S.AWAITING_COMPLETION, S.FAILED, S.PERSISTING]
    assert outcome.placeholder.themes == ["Example theme"]
    [record] = store.list()
    assert record.error_message == error.message


async def test_malformed_output_fails_in_parsing(completion_factory):
    store = InMemoryStore()
    orch = Orchestrator(store, completion_factory(reply="Here is your analysis: themes are..."))

    outcome = await orch.analyze({"text": "notes"})
    await orch.drain()

    assert isinstance(outcome.error, MalformedOutput)
    assert outcome.states[-3:] == [S.PARSING, S.FAILED, S.PERSISTING]
    [record] = store.list()
    assert "Here is your analysis" not in record.error_message


async def test_deadline_reaches_failed_timeout_and_records_error():
    class _Hanging:
        async def create(self, **kwargs):
            await asyncio.sleep(10)

    store = InMemoryStore()
    client = CompletionClient(
        Settings(llm_api_key="k", completion_timeout_s=0.05),
        client=SimpleNamespace(chat=SimpleNamespace(completions=_Hanging())),
    )
    orch = Orchestrator(store, client)

    start = time.monotonic()
    outcome = await orch.analyze({"text": "notes"})
    elapsed = time.monotonic() - start
    await orch.drain()

    assert isinstance(outcome.error, UpstreamTimeout)
    assert elapsed < 1.0
    [record] = store.list()
    assert record.status is AttemptStatus.ERROR


async def test_store_failure_does_not_change_outcome(completion_factory, failing_store):
    healthy = Orchestrator(InMemoryStore(), completion_factory())
    broken = Orchestrator(failing_store, completion_factory())

    expected = await healthy.analyze({"text": "notes"})
    await healthy.drain()
    outcome = await broken.analyze({"text": "notes"})
    await broken.drain()

    assert isinstance(outcome, AnalysisSuccess)
    assert outcome.result == expected.result
    assert outcome.states == expected.states
    assert failing_store.append_calls == 1


async def test_store_failure_does_not_change_error_outcome(completion_factory, failing_store):
    orch = Orchestrator(failing_store, completion_factory(error=UpstreamHTTPError(429)))
    outcome = await orch.analyze({"text": "notes"})
    await orch.drain()
    assert isinstance(outcome.error, UpstreamHTTPError)
    assert failing_store.append_calls == 1


async def test_response_does_not_wait_for_slow_store(completion_factory):
    class _SlowStore(InMemoryStore):
        def append(self, attempt):
            time.sleep(0.5)
            return super().append(attempt)

    store = _SlowStore()
    orch = Orchestrator(store, completion_factory())
    start = time.monotonic()
    outcome = await orch.analyze({"text": "notes"})
    assert time.monotonic() - start < 0.4
    assert isinstance(outcome, AnalysisSuccess)
    await orch.drain()
    assert len(store.list()) == 1


async def test_caller_cancellation_cancels_completion_and_records(completion_factory):
    store = InMemoryStore()
    orch = Orchestrator(store, completion_factory(delay=10))

    task = asyncio.ensure_future(orch.analyze({"text": "notes"}))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await orch.drain()

    [record] = store.list()
    assert record.status is AttemptStatus.ERROR
    assert record.error_message == "analysis cancelled"


async def test_fenced_reply_matches_bare_reply(completion_factory, sample_result):
    body = json.dumps(sample_result)
    results = []
    for reply in (f"```json\n{body}\n```", body):
        orch = Orchestrator(InMemoryStore(), completion_factory(reply=reply))
        outcome = await orch.analyze({"text": "notes"})
        await orch.drain()
        results.append(outcome.result)
    assert results[0] == results[1]


async def test_drain_abandons_hung_writes_after_timeout(completion_factory):
    release = threading.Event()

    class _HungStore(InMemoryStore):
        def append(self, attempt):
            release.wait(5)
            return super().append(attempt)

    store = _HungStore()
    orch = Orchestrator(store, completion_factory())
    await orch.analyze({"text": "notes"})

    start = time.monotonic()
    abandoned = await orch.drain(timeout=0.05)
    elapsed = time.monotonic() - start
    release.set()

    assert abandoned == 1
    assert elapsed < 1.0
    assert await orch.drain(timeout=0.05) == 0


async def test_drain_returns_zero_when_writes_finish(completion_factory):
    orch = Orchestrator(InMemoryStore(), completion_factory())
    await orch.analyze({"text": "notes"})
    assert await orch.drain(timeout=5) == 0
