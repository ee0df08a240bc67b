"""Local model endpoints: catalog, selection, loading, chat and cache purge."""

import asyncio
import json

import structlog
from fastapi import APIRouter, status
from fastapi.responses import StreamingResponse

from pith_workbench.ai.catalog import get_model
from pith_workbench.ai.runtime import ProgressReport
from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import (
    AIStatusResponse,
    ChatMessageResponse,
    ChatRequest,
    ErrorResponse,
    LoadModelRequest,
    LoadModelResponse,
    ModelCachedResponse,
    ModelInfo,
    ModelListResponse,
    PurgeResponse,
    SetModelRequest,
)
from pith_workbench.context import WorkbenchContext
from pith_workbench.errors import EngineNotInitializedError, UnknownModelError, WorkbenchError

logger = structlog.get_logger()

router = APIRouter(prefix="/ai", tags=["ai"])


def _status(context: WorkbenchContext) -> AIStatusResponse:
    lifecycle = context.lifecycle
    return AIStatusResponse(
        status=lifecycle.status.status,
        progress=lifecycle.status.progress,
        progress_val=lifecycle.status.progress_val,
        error=lifecycle.status.error,
        current_model=lifecycle.get_current_model(),
        loaded_model=lifecycle.loaded_model,
    )


@router.get("/models", response_model=ModelListResponse, summary="List available models")
async def list_models(context: Workbench) -> ModelListResponse:
    lifecycle = context.lifecycle
    return ModelListResponse(
        models=[ModelInfo(**model.to_dict()) for model in lifecycle.models],
        current_model=lifecycle.get_current_model(),
        loaded_model=lifecycle.loaded_model,
    )


@router.get("/status", response_model=AIStatusResponse, summary="Assistant status")
async def get_status(context: Workbench) -> AIStatusResponse:
    return _status(context)


@router.put(
    "/model",
    response_model=AIStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Select the model to use",
)
async def set_model(request: SetModelRequest, context: Workbench) -> AIStatusResponse:
    context.chat.switch_model(request.model_id)
    return _status(context)


@router.get(
    "/models/{model_id}/cached",
    response_model=ModelCachedResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Check whether a model is downloaded",
)
async def check_cached(model_id: str, context: Workbench) -> ModelCachedResponse:
    if get_model(model_id) is None:
        raise UnknownModelError(f"Unknown model: {model_id}", details={"model": model_id})
    cached = await context.lifecycle.check_cached(model_id)
    return ModelCachedResponse(model_id=model_id, cached=cached)


@router.post(
    "/load",
    response_model=LoadModelResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Load a model",
    description="Downloads the model if needed and loads it. Progress reports are returned in order.",
)
async def load_model(request: LoadModelRequest, context: Workbench) -> LoadModelResponse:
    progress: list[str] = []

    def on_progress(report: ProgressReport) -> None:
        if report.text:
            progress.append(report.text)

    model_id = await context.lifecycle.init(on_progress, request.model_id)
    return LoadModelResponse(model_id=model_id, progress=progress)


@router.post(
    "/chat",
    response_model=ChatMessageResponse,
    responses={409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Ask the assistant",
)
async def chat(request: ChatRequest, context: Workbench) -> ChatMessageResponse:
    message = await context.chat.ask(request.prompt)
    return ChatMessageResponse(**message.to_dict())


@router.post(
    "/chat/stream",
    responses={409: {"model": ErrorResponse}},
    summary="Ask the assistant, streaming the answer",
    description=(
        "Newline-delimited JSON. Each `{\"text\": ...}` line carries the whole answer "
        "so far; the last line is `{\"done\": true, \"message\": ...}` or `{\"error\": ...}`."
    ),
)
async def chat_stream(request: ChatRequest, context: Workbench) -> StreamingResponse:
    if context.lifecycle.loaded_model is None:
        raise EngineNotInitializedError("AI Engine not initialized. Load a model first.")

    queue: asyncio.Queue[dict | None] = asyncio.Queue()

    async def produce() -> None:
        try:
            message = await context.chat.ask(
                request.prompt, lambda text: queue.put_nowait({"text": text})
            )
            queue.put_nowait({"done": True, "message": message.to_dict()})
        except WorkbenchError as e:
            queue.put_nowait({"error": e.to_dict()})
        except Exception as e:
            logger.error("chat_stream_failed", error=str(e), exc_info=True)
            queue.put_nowait({"error": {"error": "internal_server_error", "message": str(e), "details": {}}})
        finally:
            queue.put_nowait(None)

    async def lines():
        task = asyncio.create_task(produce())
        try:
            while (item := await queue.get()) is not None:
                yield json.dumps(item, default=str) + "\n"
        finally:
            await task

    return StreamingResponse(lines(), media_type="application/x-ndjson")


@router.delete(
    "/cache",
    response_model=PurgeResponse,
    summary="Unload and delete downloaded models",
)
async def purge_models(context: Workbench) -> PurgeResponse:
    report = await context.chat.purge()
    return PurgeResponse(count=report.count, models=report.models)


@router.delete(
    "/transcript",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear the conversation",
)
async def clear_transcript(context: Workbench) -> None:
    context.chat.clear()
