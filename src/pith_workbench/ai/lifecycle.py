"""Model lifecycle: selection, loading, streamed generation and cache purge.

Status moves idle -> loading -> ready -> generating -> ready. `error` is
reachable from loading and generating, and switching to another model moves
ready back to idle. At most one model is loaded at a time; loads and
generations run one after another.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

import structlog

from pith_workbench import metrics
from pith_workbench.ai.catalog import (
    AVAILABLE_MODELS,
    AIModel,
    default_model_id,
    get_model,
    is_model_cache_entry,
    match_cache_entry,
)
from pith_workbench.ai.runtime import InferenceRuntime, ProgressCallback, ProgressReport
from pith_workbench.errors import (
    EngineNotInitializedError,
    UnknownModelError,
    UnsupportedPlatformError,
)
from pith_workbench.preferences import LAST_MODEL_KEY, PreferencesStore

logger = structlog.get_logger()

StatusName = Literal["idle", "loading", "ready", "generating", "error"]

SYSTEM_PROMPT_TEMPLATE = """
You are Pith AI, an advanced Data Analyst running locally on the user's device.

Your role is to analyze data and provide conversational, insightful answers - NOT just generate SQL queries.

When the user asks a question:
1. First, provide a clear, natural language answer or insight
2. If SQL is needed to answer the question, write the query in a ```sql code block
3. After the query executes, interpret the results and explain what they mean in plain English

Guidelines:
- Be conversational and friendly
- Explain trends, patterns, and insights you discover
- Use the schema context to understand the data structure
- For questions like "which employee has the highest salary", answer: "Based on the data, [Name] has the highest salary at $X. Here's the query I used:" followed by the SQL
- Always interpret query results - don't just show raw data
- Use DuckDB SQL dialect

Available Schema:
{context}
"""


def build_messages(prompt: str, schema_context: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT_TEMPLATE.format(context=schema_context)},
        {"role": "user", "content": prompt},
    ]


@dataclass
class AIStatus:
    status: StatusName = "idle"
    progress: str | None = None
    progress_val: float | None = None
    error: str | None = None


@dataclass
class PurgeReport:
    """Catalog models removed from the cache. Unrecognized entries are deleted but not reported."""

    count: int = 0
    models: list[str] = field(default_factory=list)


class ModelLifecycleManager:
    """Owns the current model selection and the single loaded model."""

    def __init__(
        self,
        runtime: InferenceRuntime,
        preferences: PreferencesStore | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ):
        self.runtime = runtime
        self.preferences = preferences
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.status = AIStatus()
        saved = preferences.get(LAST_MODEL_KEY) if preferences else None
        self._current_model = default_model_id(saved)
        self._loaded_model: str | None = None
        self._lock = asyncio.Lock()

    @property
    def models(self) -> list[AIModel]:
        return AVAILABLE_MODELS

    @property
    def loaded_model(self) -> str | None:
        return self._loaded_model

    def get_current_model(self) -> str:
        return self._current_model

    def set_model(self, model_id: str) -> None:
        """Select a model and persist the choice. Does not load or unload anything."""
        if get_model(model_id) is None:
            raise UnknownModelError(f"Unknown model: {model_id}", details={"model": model_id})
        self._current_model = model_id
        if self.preferences is not None:
            self.preferences.set(LAST_MODEL_KEY, model_id)
        if self._loaded_model is not None and self._loaded_model != model_id:
            self.status = AIStatus(status="idle")
        logger.info("model_selected", model=model_id)

    async def check_cached(self, model_id: str | None = None) -> bool:
        target = model_id or self._current_model
        try:
            return await self.runtime.has_model(target)
        except Exception as e:
            logger.debug("model_cache_check_failed", model=target, error=str(e))
            return False

    async def init(
        self, on_progress: ProgressCallback | None = None, model_id: str | None = None
    ) -> str:
        """
        Make `model_id` (default: the current selection) the loaded model.

        A different loaded model is unloaded first. Calling init for the model
        that is already loaded returns immediately. Progress reports from the
        runtime are passed to `on_progress` unchanged, as many as it sends.
        Returns the loaded model id.
        """
        target = model_id or self._current_model
        if get_model(target) is None:
            raise UnknownModelError(f"Unknown model: {target}", details={"model": target})

        async with self._lock:
            if self._loaded_model is not None and self._loaded_model != target:
                await self._unload_locked(reason="switch")

            if self._loaded_model is not None:
                return self._loaded_model

            if not await self.runtime.probe():
                self.status = AIStatus(status="error", error="runtime unavailable")
                raise UnsupportedPlatformError(
                    "Local inference runtime is not available. "
                    "Install and start Ollama, or set OLLAMA_URL to a reachable server.",
                    details={"model": target},
                )

            self.status = AIStatus(status="loading", progress="Starting...")
            logger.info("model_load_start", model=target)
            start_time = time.perf_counter()

            def forward(report: ProgressReport) -> None:
                self.status.progress = report.text
                self.status.progress_val = report.progress
                if on_progress is not None:
                    on_progress(report)

            try:
                await self.runtime.load(target, forward)
            except Exception as e:
                self.status = AIStatus(status="error", error=str(e))
                metrics.MODEL_LOADS_TOTAL.labels(model=target, status="error").inc()
                logger.error("model_load_failed", model=target, error=str(e))
                raise

            duration = time.perf_counter() - start_time
            self._loaded_model = target
            self._current_model = target
            self.status = AIStatus(status="ready")
            metrics.MODEL_LOADS_TOTAL.labels(model=target, status="success").inc()
            metrics.MODEL_LOAD_DURATION.labels(model=target).observe(duration)
            logger.info("model_load_complete", model=target, duration_ms=round(duration * 1000, 2))
            return target

    async def generate(
        self,
        prompt: str,
        schema_context: str,
        on_update: Callable[[str], None] | None = None,
    ) -> str:
        """
        Stream a reply to `prompt` and return the final text.

        `on_update` receives the cumulative text after every chunk.
        """
        if self._loaded_model is None:
            raise EngineNotInitializedError("AI Engine not initialized. Load a model first.")

        async with self._lock:
            model_id = self._loaded_model
            if model_id is None:
                raise EngineNotInitializedError("AI Engine not initialized. Load a model first.")

            self.status = AIStatus(status="generating")
            messages = build_messages(prompt, schema_context)
            start_time = time.perf_counter()
            full_response = ""
            chunks = 0
            try:
                async for content in self.runtime.chat(
                    model_id, messages, self.temperature, self.max_tokens
                ):
                    chunks += 1
                    full_response += content
                    if on_update is not None:
                        on_update(full_response)
            except Exception as e:
                self.status = AIStatus(status="error", error=str(e))
                metrics.GENERATIONS_TOTAL.labels(status="error").inc()
                logger.error("generation_failed", model=model_id, error=str(e))
                raise

            duration = time.perf_counter() - start_time
            self.status = AIStatus(status="ready")
            metrics.GENERATIONS_TOTAL.labels(status="success").inc()
            metrics.GENERATION_DURATION.observe(duration)
            metrics.GENERATION_CHUNKS_TOTAL.inc(chunks)
            logger.info(
                "generation_complete",
                model=model_id,
                chunks=chunks,
                characters=len(full_response),
                duration_ms=round(duration * 1000, 2),
            )
            return full_response

    async def unload(self) -> None:
        async with self._lock:
            await self._unload_locked(reason="request")

    async def _unload_locked(self, reason: str) -> None:
        if self._loaded_model is None:
            return
        previous = self._loaded_model
        await self.runtime.unload(previous)
        self._loaded_model = None
        self.status = AIStatus(status="idle")
        metrics.MODEL_UNLOADS_TOTAL.inc()
        logger.info("model_unloaded", model=previous, reason=reason)

    async def purge(self) -> PurgeReport:
        """Unload, then delete every cache entry that belongs to a known model family."""
        async with self._lock:
            await self._unload_locked(reason="purge")

            report = PurgeReport()
            for key in await self.runtime.list_cache():
                if not is_model_cache_entry(key):
                    continue
                logger.debug("purging_cache_entry", key=key)
                model = match_cache_entry(key)
                if model is not None and model.name not in report.models:
                    report.models.append(model.name)
                await self.runtime.delete_cache(key)

            report.count = len(report.models)
            logger.info("model_purged", count=report.count, models=report.models)
            return report

    async def aclose(self) -> None:
        await self.runtime.aclose()
