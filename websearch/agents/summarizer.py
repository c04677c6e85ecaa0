"""Streaming answer generation over an ordered chain of models."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable, Sequence

from loguru import logger

from websearch.config import DEFAULT_FALLBACK_MODELS, settings
from websearch.errors import AllModelsFailedError, ModelError
from websearch.llm_client import InferenceClient, client as llm_client
from websearch.models.documents import FetchedDocument
from websearch.services.logger import log_model_attempt
from websearch.services.prompt_store import get_prompt, render_prompt

# baseline and medium tiers as (upper bound on prompt source chars, num_ctx);
# anything larger gets the large tier
CONTEXT_TIERS = (
    (8_000, 4096),
    (32_000, 8192),
)
MAX_CONTEXT_SIZE = 16384

GENERATION_OPTIONS = {
    "temperature": 0.7,
    "top_p": 0.9,
    "top_k": 40,
    "repeat_penalty": 1.1,
    "num_predict": 2048,
}


def build_model_chain(
    default_model: str,
    fallbacks: Iterable[str] = DEFAULT_FALLBACK_MODELS,
) -> list[str]:
    """Configured model first, then the fallbacks, without duplicates."""
    chain: list[str] = []
    for model in (default_model, *fallbacks):
        name = (model or "").strip()
        if name and name not in chain:
            chain.append(name)
    return chain


def select_context_size(total_chars: int) -> int:
    for limit, num_ctx in CONTEXT_TIERS:
        if total_chars <= limit:
            return num_ctx
    return MAX_CONTEXT_SIZE


def build_options(num_ctx: int) -> dict[str, Any]:
    return {"num_ctx": num_ctx, **GENERATION_OPTIONS}


def format_sources(documents: Sequence[FetchedDocument]) -> str:
    if not documents:
        return get_prompt("summarizer.no_sources")
    return "\n".join(doc.formatted() for doc in documents)


def build_prompt(query: str, documents: Sequence[FetchedDocument]) -> str:
    return render_prompt(
        "summarizer.answer_prompt",
        query=query,
        sources=format_sources(documents),
    )


@dataclass
class ModelAttempt:
    model: str
    error: str | None = None
    duration_ms: int = 0


@dataclass
class SummaryResult:
    text: str
    model: str
    tokens: int
    attempts: list[ModelAttempt] = field(default_factory=list)
    duration_ms: int = 0


class Summarizer:
    """Streams an answer, falling back through the model chain on failure.

    A model that fails before producing any text is skipped in favour of the
    next one. Once text has reached the caller a failure is raised as
    ModelError instead.
    """

    def __init__(
        self,
        client: InferenceClient | None = None,
        *,
        default_model: str | None = None,
        fallbacks: Iterable[str] | None = None,
    ):
        self.client = client or llm_client()
        self.model_chain = build_model_chain(
            default_model or settings.ollama_model,
            settings.fallback_model_list if fallbacks is None else fallbacks,
        )
        self.attempts: list[ModelAttempt] = []
        self.last_result: SummaryResult | None = None

    @property
    def failed_attempts(self) -> list[ModelAttempt]:
        return [attempt for attempt in self.attempts if attempt.error is not None]

    async def summarize(
        self,
        query: str,
        documents: Sequence[FetchedDocument],
        model_chain: Sequence[str] | None = None,
    ) -> AsyncIterator[str]:
        chain = list(model_chain) if model_chain else list(self.model_chain)
        prompt = build_prompt(query, documents)
        num_ctx = select_context_size(sum(doc.length for doc in documents))
        options = build_options(num_ctx)

        self.attempts = []
        self.last_result = None
        started = time.monotonic()
        last_error: BaseException | None = None

        logger.info(
            f"Summarizing {len(documents)} documents (num_ctx={num_ctx}, chain={chain})"
        )

        for model in chain:
            t0 = time.monotonic()
            fragments: list[str] = []
            eval_count: int | None = None
            try:
                async for chunk in self.client.generate(model=model, prompt=prompt, options=options):
                    if chunk.text:
                        fragments.append(chunk.text)
                        yield chunk.text
                    if chunk.done and chunk.eval_count is not None:
                        eval_count = chunk.eval_count
            except Exception as exc:
                elapsed_ms = int((time.monotonic() - t0) * 1000)
                log_model_attempt(
                    model,
                    caller="summarizer",
                    duration_ms=elapsed_ms,
                    num_ctx=num_ctx,
                    error=str(exc),
                )
                self.attempts.append(ModelAttempt(model=model, error=str(exc), duration_ms=elapsed_ms))
                if fragments:
                    raise ModelError(
                        f"Model {model} failed after streaming had started: {exc}",
                        model=model,
                    ) from exc
                logger.info(f"Model {model} failed before producing output, trying next model")
                last_error = exc
                continue

            elapsed_ms = int((time.monotonic() - t0) * 1000)
            tokens = eval_count if eval_count is not None else len(fragments)
            log_model_attempt(
                model,
                caller="summarizer",
                tokens=tokens,
                duration_ms=elapsed_ms,
                num_ctx=num_ctx,
            )
            self.attempts.append(ModelAttempt(model=model, duration_ms=elapsed_ms))
            self.last_result = SummaryResult(
                text="".join(fragments),
                model=model,
                tokens=tokens,
                attempts=list(self.attempts),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return

        raise AllModelsFailedError(chain, last_error) from last_error
