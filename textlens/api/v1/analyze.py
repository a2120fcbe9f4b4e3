import json
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from textlens.db.registry import get_orchestrator
from textlens.services.types import AnalysisFailure, AnalysisOutcome

router = APIRouter(prefix="/analyze", tags=["analyze"])


async def _read_payload(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        # Left to the orchestrator, which rejects it and records the attempt.
        return None


def _render(outcome: AnalysisOutcome, with_placeholder: bool) -> JSONResponse:
    if not isinstance(outcome, AnalysisFailure):
        return JSONResponse(outcome.result.to_wire())

    error = outcome.error
    body: Dict[str, Any] = {"error": error.message, "errorKind": error.kind}
    if error.status_code >= 500 and with_placeholder:
        body = {**outcome.placeholder.to_wire(), **body}
    return JSONResponse(body, status_code=error.status_code)


@router.post("")
async def analyze(request: Request):
    payload = await _read_payload(request)
    outcome = await get_orchestrator().analyze(payload)
    return _render(outcome, request.app.state.settings.error_placeholder)


@router.post("/{variant}")
async def analyze_variant(variant: str, request: Request):
    payload = await _read_payload(request)
    if isinstance(payload, dict) and payload.get("domainVariant") is None:
        payload = {**payload, "domainVariant": variant}
    outcome = await get_orchestrator().analyze(payload)
    return _render(outcome, request.app.state.settings.error_placeholder)
