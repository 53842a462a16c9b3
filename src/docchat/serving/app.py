"""FastAPI application exposing upload and chat endpoints."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docchat.config import settings
from docchat.errors import DocChatError, EmptyStoreError, InputValidationError, StoreNotFoundError
from docchat.pipeline import RagPipeline
from docchat.retrieval.models import ChatMessage

logger = logging.getLogger(__name__)

app = FastAPI(
    title="DocChat API",
    version="0.1.0",
    description="Upload documents, then chat with answers grounded in their text.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_KIND = {
    "input": 400,
    "extraction": 422,
    "upstream": 502,
    "store": 500,
    "numeric": 500,
}


@lru_cache(maxsize=1)
def get_pipeline() -> RagPipeline:
    """Build the process-wide pipeline on first use."""
    return RagPipeline.from_settings()


# ── Request / Response schemas ────────────────────────────────────────
class ChatRequest(BaseModel):
    """Conversation so far; the last message is the question."""

    chats: list[ChatMessage]


class ChatResponse(BaseModel):
    output: ChatMessage


class UploadResponse(BaseModel):
    success: bool
    filePath: str
    fragments: int = 0
    written: int = 0
    skipped: int = 0


# ── Error mapping ─────────────────────────────────────────────────────
def _status_for(exc: DocChatError) -> int:
    if isinstance(exc, StoreNotFoundError):
        return 404
    if isinstance(exc, EmptyStoreError):
        return 409
    return _STATUS_BY_KIND.get(exc.kind, 500)


@app.exception_handler(DocChatError)
async def docchat_error_handler(request: Request, exc: DocChatError) -> JSONResponse:
    logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=_status_for(exc), content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InputValidationError("Invalid input format")
    return JSONResponse(status_code=400, content={"error": error.to_dict(), "detail": [e["msg"] for e in exc.errors()]})


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@app.post("/upload", response_model=UploadResponse)
async def upload(
    files: list[UploadFile] | None = File(default=None),
    pipeline: RagPipeline = Depends(get_pipeline),
) -> UploadResponse:
    """Save uploaded documents and ingest them as one batch."""
    if not files:
        raise InputValidationError("No files were uploaded")

    upload_dir = Path(pipeline.config.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    loop = asyncio.get_running_loop()
    paths: list[Path] = []
    for file in files:
        name = Path(file.filename or "").name
        if not name:
            raise InputValidationError("Uploaded file has no name")
        target = upload_dir / name
        await loop.run_in_executor(None, target.write_bytes, await file.read())
        paths.append(target)

    result = await pipeline.ingest(paths)
    return UploadResponse(
        success=result.success,
        filePath=result.store_path,
        fragments=result.fragments_extracted,
        written=result.records_written,
        skipped=result.duplicates_skipped,
    )


@app.post("/", response_model=ChatResponse)
async def chat(request: ChatRequest, pipeline: RagPipeline = Depends(get_pipeline)) -> ChatResponse:
    """Answer the last chat message from the ingested documents."""
    result = await pipeline.answer(request.chats)
    return ChatResponse(output=result.message)
