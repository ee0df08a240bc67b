"""Local inference runtime abstraction and the Ollama implementation.

The lifecycle manager only talks to `InferenceRuntime`. `OllamaRuntime`
speaks the Ollama REST API: model downloads and chat responses are streamed
as newline-delimited JSON. Transport and protocol failures surface as
`ModelLoadError` (model management) or `GenerationError` (chat).
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from pith_workbench.errors import GenerationError, ModelLoadError, WorkbenchError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ProgressReport:
    """One status update emitted while a model is being loaded."""

    text: str
    progress: float | None = None
    raw: dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[ProgressReport], None]


class InferenceRuntime(ABC):
    """Operations the model lifecycle manager needs from a local runtime."""

    @abstractmethod
    async def probe(self) -> bool:
        """Return True when the runtime can run models on this host."""

    @abstractmethod
    async def load(self, model_id: str, on_progress: ProgressCallback | None = None) -> None:
        """Fetch (if needed) and load the weights for `model_id`."""

    @abstractmethod
    def chat(
        self,
        model_id: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        """Stream the assistant reply as incremental text chunks."""

    @abstractmethod
    async def unload(self, model_id: str) -> None:
        """Release the loaded weights of `model_id`."""

    @abstractmethod
    async def list_cache(self) -> list[str]:
        """Keys of every locally cached model."""

    @abstractmethod
    async def delete_cache(self, key: str) -> None:
        """Delete one local cache entry."""

    @abstractmethod
    async def has_model(self, model_id: str) -> bool:
        """Whether `model_id` is in the local cache."""

    async def aclose(self) -> None:
        return None


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.text or f"HTTP {response.status_code}"


def _parse_line(line: str, error_class: type[WorkbenchError], model_id: str) -> dict[str, Any]:
    try:
        data = json.loads(line)
    except ValueError as e:
        raise error_class(
            f"Malformed response line from runtime: {line[:200]}", details={"model": model_id}
        ) from e
    if not isinstance(data, dict):
        raise error_class(
            f"Unexpected response line from runtime: {line[:200]}", details={"model": model_id}
        )
    return data


def _progress_from(data: dict[str, Any]) -> float | None:
    total = data.get("total")
    completed = data.get("completed")
    if not total or completed is None:
        return None
    return min(float(completed) / float(total), 1.0)


class OllamaRuntime(InferenceRuntime):
    """Runtime backed by an Ollama server."""

    def __init__(self, base_url: str, timeout: float = 600.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=5.0),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def probe(self) -> bool:
        try:
            response = await self.client.get("/api/version")
        except httpx.HTTPError as e:
            logger.warning("runtime_probe_failed", url=self.base_url, error=str(e))
            return False
        if response.status_code != 200:
            logger.warning("runtime_probe_failed", url=self.base_url, status_code=response.status_code)
            return False
        logger.debug("runtime_probe_ok", url=self.base_url)
        return True

    async def load(self, model_id: str, on_progress: ProgressCallback | None = None) -> None:
        try:
            async with self.client.stream(
                "POST", "/api/pull", json={"model": model_id, "stream": True}
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise ModelLoadError(_error_text(response), details={"model": model_id})
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = _parse_line(line, ModelLoadError, model_id)
                    if data.get("error"):
                        raise ModelLoadError(data["error"], details={"model": model_id})
                    if on_progress is not None:
                        on_progress(ProgressReport(
                            text=data.get("status", ""),
                            progress=_progress_from(data),
                            raw=data,
                        ))

            # An empty generate request loads the weights into memory
            response = await self.client.post(
                "/api/generate", json={"model": model_id, "prompt": "", "stream": False}
            )
            if response.status_code >= 400:
                raise ModelLoadError(_error_text(response), details={"model": model_id})
        except httpx.HTTPError as e:
            raise ModelLoadError(str(e), details={"model": model_id}) from e

    async def chat(
        self,
        model_id: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        payload = {
            "model": model_id,
            "messages": messages,
            "stream": True,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        try:
            async with self.client.stream("POST", "/api/chat", json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise GenerationError(_error_text(response), details={"model": model_id})
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = _parse_line(line, GenerationError, model_id)
                    if data.get("error"):
                        raise GenerationError(data["error"], details={"model": model_id})
                    content = (data.get("message") or {}).get("content") or ""
                    if content:
                        yield content
                    if data.get("done"):
                        break
        except httpx.HTTPError as e:
            raise GenerationError(str(e), details={"model": model_id}) from e

    async def unload(self, model_id: str) -> None:
        try:
            response = await self.client.post(
                "/api/generate", json={"model": model_id, "keep_alive": 0}
            )
        except httpx.HTTPError as e:
            raise ModelLoadError(f"Failed to unload {model_id}: {e}", details={"model": model_id}) from e
        if response.status_code >= 400:
            raise ModelLoadError(
                f"Failed to unload {model_id}: {_error_text(response)}", details={"model": model_id}
            )

    async def list_cache(self) -> list[str]:
        try:
            response = await self.client.get("/api/tags")
        except httpx.HTTPError as e:
            raise ModelLoadError(f"Failed to list cached models: {e}") from e
        if response.status_code >= 400:
            raise ModelLoadError(f"Failed to list cached models: {_error_text(response)}")
        try:
            return [entry["name"] for entry in response.json().get("models", [])]
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            raise ModelLoadError(f"Malformed model list from runtime: {e}") from e

    async def delete_cache(self, key: str) -> None:
        try:
            response = await self.client.request("DELETE", "/api/delete", json={"model": key})
        except httpx.HTTPError as e:
            raise ModelLoadError(f"Failed to delete {key}: {e}", details={"model": key}) from e
        if response.status_code == 404:
            logger.debug("runtime_cache_entry_missing", model=key)
            return
        if response.status_code >= 400:
            raise ModelLoadError(
                f"Failed to delete {key}: {_error_text(response)}", details={"model": key}
            )

    async def has_model(self, model_id: str) -> bool:
        try:
            response = await self.client.post("/api/show", json={"model": model_id})
        except httpx.HTTPError as e:
            raise ModelLoadError(str(e), details={"model": model_id}) from e
        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            raise ModelLoadError(_error_text(response), details={"model": model_id})
        return True
