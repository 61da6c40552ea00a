"""Quill — FastAPI application entry point."""

from __future__ import annotations

import base64
import binascii
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, TypeAdapter, ValidationError

from quill.config import settings
from quill.errors import QuillError
from quill.models.request import GenerationRequest, RequestType
from quill.models.resource import FileSource, UploadedResource, apply_file_sources
from quill.orchestrator.batch import BatchOrchestrator, parse_batch
from quill.orchestrator.pipeline import Pipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Quill starting (default model %s, pdf mode %s)", settings.default_model, settings.pdf_mode)
    yield


app = FastAPI(
    title="Quill",
    description="Academic writing assistant with batch replies",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_pipeline: Pipeline | None = None


def get_pipeline() -> Pipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = Pipeline()
    return _pipeline


# --- Request / Response models ---


class GenerateResponse(BaseModel):
    content: str
    type: str


class BatchItemResponse(BaseModel):
    name: str | None
    post: str | None
    response: str | None = None
    error: str | None = None


class BatchResponse(BaseModel):
    total: int
    results: list[BatchItemResponse]


class StoredFile(BaseModel):
    """An upload as the browser keeps it between reloads."""

    name: str
    type: str = ""
    data: str  # base64
    sourceUrl: str = ""


class BatchStart(BaseModel):
    batchPosts: str
    context: str = ""
    additionalInstructions: str = ""
    aiModel: str = ""
    files: list[StoredFile] = []


# --- Errors ---


@app.exception_handler(QuillError)
async def quill_error_handler(request: Request, exc: QuillError) -> JSONResponse:
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


# --- Helpers ---

_FILE_SOURCES = TypeAdapter(list[FileSource])


def parse_file_sources(raw: str | None) -> list[FileSource]:
    """Decode the ``fileSources`` field; anything malformed means no citations."""
    try:
        return _FILE_SOURCES.validate_json(raw or "[]")
    except ValidationError as exc:
        logger.warning("Ignoring malformed fileSources: %s", exc.errors()[0]["msg"])
        return []


async def _read_uploads(files: list[UploadFile], file_sources: str | None) -> list[UploadedResource]:
    resources = [
        UploadedResource.from_upload(
            name=f.filename or "untitled",
            content=await f.read(),
            content_type=f.content_type,
        )
        for f in files
    ]
    apply_file_sources(resources, parse_file_sources(file_sources))
    return resources


def _decode_stored(stored: list[StoredFile]) -> list[UploadedResource]:
    resources = []
    for sf in stored:
        try:
            content = base64.b64decode(sf.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"File {sf.name} is not valid base64") from exc
        resource = UploadedResource.from_upload(sf.name, content, sf.type)
        resource.source_url = sf.sourceUrl
        resources.append(resource)
    return resources


async def _generate_or_500(pipeline: Pipeline, request: GenerationRequest) -> str | JSONResponse:
    try:
        return await pipeline.generate(request)
    except QuillError:
        raise
    except Exception as exc:
        logger.exception("Generation failed")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Failed to generate content"},
        )


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/generate", response_model=GenerateResponse)
async def generate(
    type: str = Form(""),
    context: str = Form(""),
    additional_instructions: str = Form("", alias="additionalInstructions"),
    page_count: str = Form("", alias="pageCount"),
    discussion_post: str = Form("", alias="discussionPost"),
    file_sources: str = Form("[]", alias="fileSources"),
    ai_model: str = Form("", alias="aiModel"),
    files: list[UploadFile] = File(default=[]),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Generate one discussion post, paper or reply."""
    request_type = RequestType.parse(type)
    request = GenerationRequest(
        type=request_type,
        context=context,
        additional_instructions=additional_instructions,
        page_count=page_count,
        discussion_post=discussion_post,
        resources=await _read_uploads(files, file_sources),
        model=ai_model,
    )
    outcome = await _generate_or_500(pipeline, request)
    if isinstance(outcome, JSONResponse):
        return outcome
    return GenerateResponse(content=outcome, type=request_type.value)


@app.post("/api/batch", response_model=BatchResponse)
async def generate_batch(
    batch_posts: str = Form("", alias="batchPosts"),
    context: str = Form(""),
    additional_instructions: str = Form("", alias="additionalInstructions"),
    file_sources: str = Form("[]", alias="fileSources"),
    ai_model: str = Form("", alias="aiModel"),
    files: list[UploadFile] = File(default=[]),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Reply to every post in a ``---`` separated batch and return all results."""
    items = parse_batch(batch_posts)
    shared = GenerationRequest(
        type=RequestType.BATCH_ITEM,
        context=context,
        additional_instructions=additional_instructions,
        resources=await _read_uploads(files, file_sources),
        model=ai_model,
    )
    results = await BatchOrchestrator(pipeline).run_all(items, shared)
    return BatchResponse(
        total=len(items),
        results=[BatchItemResponse(**r.to_dict()) for r in results],
    )


# --- WebSocket ---


@app.websocket("/ws/batch")
async def batch_ws(websocket: WebSocket, pipeline: Pipeline = Depends(get_pipeline)):
    """Run a batch and stream each finished reply as it completes."""
    await websocket.accept()
    try:
        while True:
            message = await websocket.receive_text()
            try:
                start = BatchStart.model_validate_json(message)
                resources = _decode_stored(start.files)
            except (ValidationError, ValueError) as exc:
                await websocket.send_json({"type": "error", "detail": str(exc)[:500]})
                continue

            items = parse_batch(start.batchPosts)
            shared = GenerationRequest(
                type=RequestType.BATCH_ITEM,
                context=start.context,
                additional_instructions=start.additionalInstructions,
                resources=resources,
                model=start.aiModel,
            )
            await websocket.send_json({"type": "status", "stage": "started", "total": len(items)})

            results = []
            async for event in BatchOrchestrator(pipeline).events(items, shared):
                results.append(event.result.to_dict())
                await websocket.send_json({
                    "type": "progress",
                    "processed": event.processed,
                    "total": event.total,
                    "result": event.result.to_dict(),
                })
            await websocket.send_json({"type": "done", "results": results})
    except WebSocketDisconnect:
        logger.info("Batch client disconnected")
