import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Set, Tuple

from textlens.core.errors import AnalysisError, MalformedOutput
from textlens.db.client import AnalysisStore
from textlens.middleware.trace import trace_id_var
from textlens.models.schemas import AnalysisResult, placeholder_result
from textlens.services.prompts import budget_for, build_prompt
from textlens.services.result_parser import parse_result
from textlens.services.types import (
    AnalysisAttempt,
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisState,
    AnalysisSuccess,
    CompletionBudget,
    DomainVariant,
)

logger = logging.getLogger(__name__)


class Completion(Protocol):
    async def complete(self, prompt: str, budget: CompletionBudget) -> str:
        ...


class _Run:
    def __init__(self) -> None:
        self.states: List[AnalysisState] = [AnalysisState.IDLE]

    def advance(self, state: AnalysisState) -> None:
        logger.debug("trace=%s analysis state %s -> %s", trace_id_var.get(), self.states[-1].value, state.value)
        self.states.append(state)


def _salvage_input(payload: Any) -> Tuple[DomainVariant, str]:
    """Best-effort variant/text for recording a request that failed validation."""
    if not isinstance(payload, dict):
        return DomainVariant.GENERAL, ""
    text = payload.get("text")
    try:
        variant = DomainVariant.parse(payload.get("domainVariant"))
    except AnalysisError:
        variant = DomainVariant.GENERAL
    return variant, text if isinstance(text, str) else ""


class Orchestrator:
    """
    Runs one analysis per call: validate, build prompt, complete, parse.

    Every call dispatches exactly one record write (success or error) as an
    independent task. The response never waits on it and a failed write only
    shows up in the logs.
    """

    def __init__(
        self,
        store: AnalysisStore,
        completion: Completion,
        placeholder: Callable[[], AnalysisResult] = placeholder_result,
    ) -> None:
        self.store = store
        self.completion = completion
        self.placeholder = placeholder
        self._pending: Set[asyncio.Task] = set()

    async def analyze(self, payload: Any) -> AnalysisOutcome:
        run = _Run()
        request: Optional[AnalysisRequest] = None
        try:
            run.advance(AnalysisState.VALIDATING)
            request = AnalysisRequest.from_payload(payload)

            run.advance(AnalysisState.BUILDING_PROMPT)
            prompt = build_prompt(request)

            run.advance(AnalysisState.AWAITING_COMPLETION)
            raw_text = await self.completion.complete(prompt, budget_for(request.domain_variant))

            run.advance(AnalysisState.PARSING)
            result = parse_result(raw_text)
        except AnalysisError as exc:
            return self._fail(run, payload, request, exc)
        except asyncio.CancelledError:
            logger.info("trace=%s analysis cancelled by caller", trace_id_var.get())
            variant, text = self._describe(payload, request)
            self._dispatch_persist(AnalysisAttempt.failure(variant, text, "analysis cancelled"))
            raise

        run.advance(AnalysisState.PERSISTING)
        self._dispatch_persist(AnalysisAttempt.success(request, result))
        run.advance(AnalysisState.DONE)
        logger.info(
            "trace=%s analysis done variant=%s themes=%d people=%d todos=%d",
            trace_id_var.get(),
            request.domain_variant.value,
            len(result.themes),
            len(result.people),
            len(result.todos),
        )
        return AnalysisSuccess(result=result, states=run.states)

    def _fail(
        self,
        run: _Run,
        payload: Any,
        request: Optional[AnalysisRequest],
        exc: AnalysisError,
    ) -> AnalysisFailure:
        failed_in = run.states[-1]
        run.advance(AnalysisState.FAILED)
        if isinstance(exc, MalformedOutput):
            logger.warning(
                "trace=%s malformed completion output (%s): %r",
                trace_id_var.get(),
                exc.reason,
                exc.raw_text[:500],
            )
        else:
            logger.warning("trace=%s analysis failed in %s: %s", trace_id_var.get(), failed_in.value, exc.message)

        run.advance(AnalysisState.PERSISTING)
        variant, text = self._describe(payload, request)
        self._dispatch_persist(AnalysisAttempt.failure(variant, text, exc.message))
        return AnalysisFailure(error=exc, placeholder=self.placeholder(), states=run.states)

    @staticmethod
    def _describe(payload: Any, request: Optional[AnalysisRequest]) -> Tuple[DomainVariant, str]:
        if request is not None:
            return request.domain_variant, request.text
        return _salvage_input(payload)

    def _dispatch_persist(self, attempt: AnalysisAttempt) -> None:
        task = asyncio.get_running_loop().create_task(self._persist(attempt))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, attempt: AnalysisAttempt) -> Optional[str]:
        try:
            return await asyncio.to_thread(self.store.append, attempt)
        except Exception as exc:
            logger.warning("analysis record write failed status=%s", attempt.status.value, exc_info=exc)
            return None

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for record writes still in flight (shutdown, tests).

        With a timeout, writes still running when it expires are cancelled and
        counted; the return value is the number abandoned.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._pending:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break
            await asyncio.wait(list(self._pending), timeout=remaining)

        abandoned = list(self._pending)
        if abandoned:
            logger.warning("abandoning %d analysis record write(s) after %.1fs", len(abandoned), timeout)
            for task in abandoned:
                task.cancel()
            await asyncio.gather(*abandoned, return_exceptions=True)
        return len(abandoned)
