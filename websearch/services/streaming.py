from __future__ import annotations

from typing import Any

from websearch.models.events import EventType, PipelineEvent
from websearch.models.schemas import SearchRunResult


def search_started(query: str, search_url: str) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.SEARCH_STARTED,
        data={"query": query, "search_url": search_url},
    )


def search_completed(urls: list[str], duration_ms: int) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.SEARCH_COMPLETED,
        data={"urls": urls, "count": len(urls), "duration_ms": duration_ms},
    )


def fetch_started(url_count: int, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.FETCH_STARTED, data={"url_count": url_count, **kwargs})


def document_fetched(url: str, length: int, from_cache: bool) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.DOCUMENT_FETCHED,
        data={"url": url, "length": length, "from_cache": from_cache},
    )


def fetch_completed(attempted: int, successful: int, cache_hits: int, duration_ms: int) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.FETCH_COMPLETED,
        data={
            "attempted": attempted,
            "successful": successful,
            "cache_hits": cache_hits,
            "duration_ms": duration_ms,
        },
    )


def summary_started(model_chain: list[str], sources_count: int) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.SUMMARY_STARTED,
        data={"model_chain": model_chain, "sources_count": sources_count},
    )


def model_failed(model: str, error: str) -> PipelineEvent:
    return PipelineEvent(event=EventType.MODEL_FAILED, data={"model": model, "error": error})


def answer_chunk(text: str) -> PipelineEvent:
    return PipelineEvent(event=EventType.ANSWER_CHUNK, data={"text": text})


def run_complete(result: SearchRunResult) -> PipelineEvent:
    return PipelineEvent(event=EventType.RUN_COMPLETE, data={"result": result})


def error(message: str, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.ERROR, data={"message": message, **kwargs})
