import asyncio
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from textlens.core.errors import RecordNotFound, StoreError
from textlens.db.registry import get_store
from textlens.models.schemas import AnalysisResult
from textlens.services.attribution import attribute_all
from textlens.services.export import export_filename, render_attempt_text, render_result_text

logger = logging.getLogger(__name__)

router = APIRouter(tags=["records"])


def _store_failure(exc: StoreError, **extra) -> JSONResponse:
    if isinstance(exc, RecordNotFound):
        return JSONResponse({"error": str(exc)}, status_code=404)
    logger.warning("record store request failed: %s", exc)
    return JSONResponse({"error": f"record store unavailable: {exc}", **extra}, status_code=503)


def _attachment(text: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        text,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/records")
async def list_records():
    store = get_store()
    try:
        attempts = await asyncio.to_thread(store.list)
    except StoreError as exc:
        # History degrades to an empty list, with the failure visible to the caller.
        return _store_failure(exc, items=[])
    return {"items": [attempt.to_wire() for attempt in attempts]}


@router.get("/records/{record_id}")
async def get_record(record_id: str):
    store = get_store()
    try:
        attempt = await asyncio.to_thread(store.get, record_id)
    except StoreError as exc:
        return _store_failure(exc)
    item = attempt.to_wire()
    if attempt.result is not None:
        item["attributions"] = [
            {"todo": a.todo, "owner": a.owner}
            for a in attribute_all(attempt.result.todos, attempt.result.people)
        ]
    else:
        item["attributions"] = []
    return item


@router.delete("/records/{record_id}")
async def delete_record(record_id: str):
    store = get_store()
    try:
        await asyncio.to_thread(store.delete, record_id)
    except StoreError as exc:
        return _store_failure(exc)
    logger.info("analysis record deleted id=%s", record_id)
    return {"id": record_id, "deleted": True}


@router.get("/records/{record_id}/export")
async def export_record(record_id: str):
    store = get_store()
    try:
        attempt = await asyncio.to_thread(store.get, record_id)
    except StoreError as exc:
        return _store_failure(exc)
    return _attachment(render_attempt_text(attempt), export_filename(attempt))


@router.post("/export")
async def export_result(result: AnalysisResult):
    return _attachment(render_result_text(result), export_filename())
