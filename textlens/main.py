import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# .env is loaded before settings are read
load_dotenv()

from textlens.api.v1 import analyze, records
from textlens.core.config import Settings, load_settings
from textlens.core.logging import configure_logging
from textlens.core.preflight import collect_preflight
from textlens.db.client import AnalysisStore
from textlens.db.registry import create_store, get_store, set_orchestrator, set_store
from textlens.middleware.trace import TraceMiddleware
from textlens.services.completion import CompletionClient
from textlens.services.orchestrator import Completion, Orchestrator

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[AnalysisStore] = None,
    completion: Optional[Completion] = None,
) -> FastAPI:
    """Build the API with one settings object for the whole process."""
    settings = settings or load_settings()
    configure_logging(settings)
    store = store if store is not None else create_store(settings)
    completion = completion if completion is not None else CompletionClient(settings)
    orchestrator = Orchestrator(store, completion)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        set_store(store)
        set_orchestrator(orchestrator)
        logger.info(
            "textlens started env=%s store=%s model=%s",
            settings.app_env,
            type(store).__name__,
            settings.llm_model,
        )
        yield
        await orchestrator.drain(timeout=settings.drain_timeout_s)
        if isinstance(completion, CompletionClient):
            await completion.aclose()

    app = FastAPI(
        title="textlens API",
        description="Structured analysis of free-form text (themes, people, action items, summary, Q&A, outline).",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TraceMiddleware)

    app.include_router(analyze.router, prefix="/api/v1")
    app.include_router(records.router, prefix="/api/v1")

    @app.get("/health")
    def health_check():
        return collect_preflight(settings, get_store())

    # Registered eagerly too, so the routers work without the lifespan running.
    set_store(store)
    set_orchestrator(orchestrator)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "textlens.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
