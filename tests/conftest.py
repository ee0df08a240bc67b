"""Pytest configuration and fixtures."""

import asyncio
from pathlib import Path

import pytest

from pith_workbench.ai.runtime import InferenceRuntime, ProgressReport
from pith_workbench.config import Settings
from pith_workbench.context import create_context

SALES_CSV = "id,name,amount\n1,Widget,9.99\n2,Gadget,19.5\n3,Gizmo,5.25\n"


class FakeRuntime(InferenceRuntime):
    """In-process stand-in for the Ollama runtime that records every call."""

    def __init__(self, chunks=("Hel", "lo", " world"), available=True, cache=()):
        self.chunks = list(chunks)
        self.available = available
        self.cache = list(cache)
        self.progress = ["pulling manifest", "verifying sha256 digest", "success"]
        self.load_error: Exception | None = None
        self.chat_error: Exception | None = None
        self.has_model_error: Exception | None = None
        self.calls: list[tuple[str, str | None]] = []
        self.messages: list[dict[str, str]] = []

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def probe(self) -> bool:
        self.calls.append(("probe", None))
        return self.available

    async def load(self, model_id, on_progress=None):
        self.calls.append(("load", model_id))
        if self.load_error is not None:
            raise self.load_error
        for text in self.progress:
            if on_progress is not None:
                on_progress(ProgressReport(text=text))
            await asyncio.sleep(0)

    async def chat(self, model_id, messages, temperature, max_tokens):
        self.calls.append(("chat", model_id))
        self.messages = messages
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        if self.chat_error is not None:
            raise self.chat_error

    async def unload(self, model_id):
        self.calls.append(("unload", model_id))

    async def list_cache(self):
        return list(self.cache)

    async def delete_cache(self, key):
        self.calls.append(("delete", key))
        self.cache.remove(key)

    async def has_model(self, model_id):
        if self.has_model_error is not None:
            raise self.has_model_error
        return model_id in self.cache


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every path at a temporary directory."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        database_path=None,
        duckdb_threads=2,
        duckdb_memory_limit="1GB",
        ollama_url="http://ollama.test",
    )


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def context(test_settings, fake_runtime):
    """A workbench context with the fake runtime. Call `await context.start()` in the test."""
    ctx = create_context(test_settings, runtime=fake_runtime)
    yield ctx
    ctx.manager.reset()


@pytest.fixture
def sales_csv(tmp_path) -> Path:
    path = tmp_path / "sales.csv"
    path.write_text(SALES_CSV)
    return path


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)
