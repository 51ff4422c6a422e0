from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from .capture import CaptureAdapter
from .config import Settings, load_settings
from .extraction import ContentExtractionClient
from .gemini_client import GeminiClient
from .generation import ReplyGenerationClient
from .models import CameraFailureRequest, CaptureRequest, PipelineSnapshot, TextRequest
from .pipeline import WingmanPipeline
from .safety import SafetyGate

BASE_DIR = Path(__file__).resolve().parent

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("wingman").setLevel(log_level)
logger = logging.getLogger("wingman.app")

EVENT_KEEPALIVE_SEC = 15.0


def build_pipeline(settings: Settings) -> WingmanPipeline:
    """Purpose: Construct the Gemini client, model clients and orchestrator.
    Inputs/Outputs: Input is Settings; output is a ready WingmanPipeline.
    Side Effects / State: Configures the Gemini SDK API key.
    Dependencies: GeminiClient, SafetyGate, ContentExtractionClient,
        ReplyGenerationClient, CaptureAdapter.
    Failure Modes: ConfigurationMissing when no API key is configured (fatal).
    If Removed: create_app has no pipeline to serve.
    Testing Notes: Tests pass their own pipeline to create_app instead.
    """
    gemini = GeminiClient(settings)
    safety = SafetyGate(
        gemini,
        settings.prompts_dir,
        model=settings.gemini_model_moderation,
        temperature=settings.moderation_temperature,
    )
    extractor = ContentExtractionClient(
        gemini,
        safety,
        settings.prompts_dir,
        model=settings.gemini_model_extraction,
    )
    generator = ReplyGenerationClient(
        gemini,
        safety,
        settings.prompts_dir,
        model=settings.gemini_model_replies,
        temperature=settings.generation_temperature,
    )
    return WingmanPipeline(
        CaptureAdapter(),
        extractor,
        generator,
        copy_feedback_seconds=settings.copy_feedback_seconds,
    )


def _sse(snapshot: PipelineSnapshot) -> str:
    return f"event: state\ndata: {snapshot.model_dump_json()}\n\n"


async def state_events(
    pipeline: WingmanPipeline,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive_sec: float = EVENT_KEEPALIVE_SEC,
) -> AsyncIterator[str]:
    """Purpose: Yield SSE frames: the current snapshot, then one per state change.
    Inputs/Outputs: Inputs are the pipeline, a disconnect check and the keep-alive
        interval; yields "event: state" frames and ": keep-alive" comments.
    Side Effects / State: Subscribes a queue listener for the stream's lifetime.
    Dependencies: WingmanPipeline.subscribe/snapshot.
    Failure Modes: None; the listener is removed on disconnect or when closed.
    If Removed: The browser only sees state it fetched itself.
    Testing Notes: Drive with asyncio and check listener_count after aclose().
    """
    queue: "asyncio.Queue[PipelineSnapshot]" = asyncio.Queue()
    unsubscribe = pipeline.subscribe(queue.put_nowait)
    try:
        yield _sse(pipeline.snapshot())
        while not await is_disconnected():
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=keepalive_sec)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield _sse(snapshot)
    finally:
        unsubscribe()
        logger.debug("state stream closed listeners=%s", pipeline.listener_count)


def create_app(settings: Optional[Settings] = None, pipeline: Optional[WingmanPipeline] = None) -> FastAPI:
    """Purpose: Build the FastAPI app serving the frontend and the pipeline API.
    Inputs/Outputs: Optional Settings and pipeline; returns a FastAPI instance.
    Side Effects / State: Mounts the static frontend when its directory exists.
    Dependencies: build_pipeline, FastAPI, StaticFiles.
    Failure Modes: ConfigurationMissing propagates when no pipeline is given and the
        API key is missing, so the server refuses to start.
    If Removed: There is no HTTP surface for the browser.
    Testing Notes: Pass a pipeline with fake clients and use TestClient.
    """
    settings = settings or load_settings()
    pipeline = pipeline or build_pipeline(settings)
    frontend_dir = settings.frontend_dir

    app = FastAPI(title="Desi Wingman")
    app.state.pipeline = pipeline
    if frontend_dir.exists():
        app.mount("/static", StaticFiles(directory=frontend_dir), name="static")
    else:
        logger.warning("frontend directory missing path=%s", frontend_dir)

    @app.get("/", include_in_schema=False)
    def serve_index() -> FileResponse:
        return FileResponse(frontend_dir / "index.html")

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/state", response_model=PipelineSnapshot)
    async def get_state() -> PipelineSnapshot:
        return pipeline.snapshot()

    @app.get("/api/events")
    async def events(request: Request) -> StreamingResponse:
        """Stream one snapshot per state change as server-sent events."""
        return StreamingResponse(
            state_events(pipeline, request.is_disconnected),
            media_type="text/event-stream",
        )

    @app.post("/api/capture", response_model=PipelineSnapshot)
    async def capture(request: CaptureRequest) -> PipelineSnapshot:
        return await pipeline.capture(request.source, request.data_url, request.filename)

    @app.post("/api/capture/failure", response_model=PipelineSnapshot)
    async def camera_failure(request: CameraFailureRequest) -> PipelineSnapshot:
        return pipeline.report_camera_failure(request.kind)

    @app.put("/api/text", response_model=PipelineSnapshot)
    async def set_text(request: TextRequest) -> PipelineSnapshot:
        return pipeline.set_text(request.text)

    @app.post("/api/replies", response_model=PipelineSnapshot)
    async def get_help() -> PipelineSnapshot:
        return await pipeline.get_help()

    @app.post("/api/clear", response_model=PipelineSnapshot)
    async def clear() -> PipelineSnapshot:
        return pipeline.clear()

    @app.post("/api/copied/{index}", response_model=PipelineSnapshot)
    async def mark_copied(index: int) -> PipelineSnapshot:
        try:
            return pipeline.mark_copied(index)
        except IndexError:
            raise HTTPException(status_code=404, detail="No reply option at that index")

    return app
