"""Ollama inference client used by the summarizer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol

from websearch.config import settings


@dataclass
class GenerationChunk:
    text: str
    done: bool = False
    eval_count: int | None = None


class InferenceClient(Protocol):
    def generate(
        self,
        *,
        model: str,
        prompt: str,
        options: dict[str, Any],
    ) -> AsyncIterator[GenerationChunk]: ...


def _field(chunk: Any, name: str, default: Any = None) -> Any:
    if isinstance(chunk, dict):
        return chunk.get(name, default)
    return getattr(chunk, name, default)


def to_chunk(raw: Any) -> GenerationChunk:
    eval_count = _field(raw, "eval_count")
    return GenerationChunk(
        text=_field(raw, "response", "") or "",
        done=bool(_field(raw, "done", False)),
        eval_count=int(eval_count) if isinstance(eval_count, int) else None,
    )


class OllamaClient:
    """Streams ``generate`` output from an Ollama server as GenerationChunks.

    Errors (unknown model, connection refused, HTTP errors) surface either when
    the request is opened or on the first iteration; callers treat both alike.
    """

    def __init__(self, host: str | None = None, *, timeout: float | None = None, client: Any = None):
        self.host = host or settings.ollama_host
        self._client = client
        self._timeout = timeout

    def _get_client(self) -> Any:
        if self._client is None:
            from ollama import AsyncClient

            self._client = AsyncClient(host=self.host, timeout=self._timeout)
        return self._client

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        options: dict[str, Any],
    ) -> AsyncIterator[GenerationChunk]:
        stream = await self._get_client().generate(
            model=model,
            prompt=prompt,
            stream=True,
            options=options,
        )
        async for raw in stream:
            yield to_chunk(raw)


_client: OllamaClient | None = None


def client() -> OllamaClient:
    """Get or create the default inference client."""
    global _client
    if _client is None:
        _client = OllamaClient()
    return _client
