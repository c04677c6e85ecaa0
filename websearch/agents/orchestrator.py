"""Search, retrieve and summarize pipeline."""
from __future__ import annotations

from typing import AsyncGenerator

import httpx
from loguru import logger

from websearch.agents.summarizer import Summarizer
from websearch.config import Settings, settings as default_settings
from websearch.errors import ModelError, SearchError
from websearch.llm_client import InferenceClient, OllamaClient
from websearch.models.documents import FetchedDocument
from websearch.models.events import PipelineEvent
from websearch.models.schemas import RunStatus, SearchRunResult, SourceInfo
from websearch.services import streaming
from websearch.services.logger import log_event
from websearch.services.metrics import RetrievalMetrics, StageTimer, log_metrics
from websearch.services.retrieval import retrieve_all
from websearch.tools import searxng_search
from websearch.tools.page_cache import PageCache
from websearch.tools.page_fetcher import PageFetcher

NO_RESULTS_MESSAGE = "No search results found. Try a different query."
NO_DOCUMENTS_MESSAGE = (
    "None of the search results could be retrieved; the answer is not based on web sources. "
    "Try a different query."
)


class WebSearchPipeline:
    """Runs one query end to end and reports progress as PipelineEvents.

    The page cache lives as long as the pipeline, so repeated runs on one
    instance are served from the cache while entries are fresh.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        inference_client: InferenceClient | None = None,
        cache: PageCache | None = None,
        fetcher: PageFetcher | None = None,
        summarizer: Summarizer | None = None,
        search_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or default_settings
        s = self.settings

        if cache is None and s.cache_enabled:
            cache = PageCache(
                ttl_seconds=s.cache_ttl_minutes * 60,
                max_entries=s.cache_max_entries,
            )
        self.cache = cache
        self.fetcher = fetcher or PageFetcher(self.cache, max_page_chars=s.max_page_chars)
        self.summarizer = summarizer or Summarizer(
            inference_client or OllamaClient(s.ollama_host, timeout=s.timeout_seconds),
            default_model=s.ollama_model,
            fallbacks=s.fallback_model_list,
        )
        self.search_client = search_client
        self.last_result: SearchRunResult | None = None

    async def run(self, query: str) -> AsyncGenerator[PipelineEvent, None]:
        if not query or not query.strip():
            raise ValueError("Query must not be empty")
        query = query.strip()
        s = self.settings

        self.last_result = None
        metrics = RetrievalMetrics()
        total_timer = StageTimer().start()
        log_event("run_started", query, search_url=s.search_url, model=s.ollama_model)

        # 1. Search
        yield streaming.search_started(query, s.search_url)
        search_timer = StageTimer()
        try:
            with search_timer:
                urls = await searxng_search.search(
                    query,
                    s.max_results,
                    s.timeout,
                    search_url=s.search_url,
                    http_client=self.search_client,
                )
        except SearchError as exc:
            metrics.search_duration_ms = search_timer.elapsed_ms
            logger.error(f"Search failed: {exc}")
            yield streaming.error(str(exc), stage="search")
            yield self._complete(query, metrics, total_timer, status="failed", message=str(exc))
            return

        metrics.search_duration_ms = search_timer.elapsed_ms
        metrics.total_urls = len(urls)
        yield streaming.search_completed(urls, metrics.search_duration_ms)

        if not urls:
            logger.info(f"No eligible search results for: {query}")
            yield self._complete(
                query, metrics, total_timer, status="no_results", message=NO_RESULTS_MESSAGE
            )
            return

        # 2. Retrieve
        yield streaming.fetch_started(len(urls), timeout_ms=s.timeout)
        with StageTimer() as fetch_timer:
            outcome = await retrieve_all(
                urls,
                s.timeout,
                fetcher=self.fetcher,
                max_parallel=s.fetch_max_parallel or None,
            )
        metrics.fetch_duration_ms = fetch_timer.elapsed_ms
        metrics.successful_urls = outcome.successful
        metrics.cache_hits = outcome.cache_hits

        for doc in outcome.documents:
            yield streaming.document_fetched(doc.source_url, doc.length, doc.from_cache)
        yield streaming.fetch_completed(
            outcome.attempted,
            outcome.successful,
            outcome.cache_hits,
            metrics.fetch_duration_ms,
        )
        documents = outcome.documents

        # 3. Summarize (runs even with zero documents)
        yield streaming.summary_started(self.summarizer.model_chain, len(documents))
        answer_parts: list[str] = []
        reported_failures = 0
        ai_timer = StageTimer().start()
        try:
            async for fragment in self.summarizer.summarize(query, documents):
                for event in self._failure_events(reported_failures):
                    yield event
                reported_failures = len(self.summarizer.failed_attempts)
                answer_parts.append(fragment)
                yield streaming.answer_chunk(fragment)
        except ModelError as exc:
            metrics.ai_duration_ms = ai_timer.stop()
            for event in self._failure_events(reported_failures):
                yield event
            logger.error(f"Summarization failed: {exc}")
            yield streaming.error(str(exc), stage="summarize")
            yield self._complete(
                query,
                metrics,
                total_timer,
                status="failed",
                message=str(exc),
                urls=urls,
                documents=documents,
                answer="".join(answer_parts),
            )
            return

        metrics.ai_duration_ms = ai_timer.stop()
        for event in self._failure_events(reported_failures):
            yield event

        summary = self.summarizer.last_result
        if summary is not None:
            metrics.total_tokens = summary.tokens
            metrics.model_used = summary.model

        status: RunStatus = "ok" if documents else "no_documents"
        yield self._complete(
            query,
            metrics,
            total_timer,
            status=status,
            message="" if documents else NO_DOCUMENTS_MESSAGE,
            urls=urls,
            documents=documents,
            answer=summary.text if summary is not None else "".join(answer_parts),
        )

    def _failure_events(self, already_reported: int) -> list[PipelineEvent]:
        return [
            streaming.model_failed(attempt.model, attempt.error or "")
            for attempt in self.summarizer.failed_attempts[already_reported:]
        ]

    def _complete(
        self,
        query: str,
        metrics: RetrievalMetrics,
        total_timer: StageTimer,
        *,
        status: RunStatus,
        message: str = "",
        urls: list[str] | None = None,
        documents: list[FetchedDocument] | None = None,
        answer: str = "",
    ) -> PipelineEvent:
        metrics.total_duration_ms = total_timer.stop()
        if self.cache is not None:
            stats = self.cache.stats()
            metrics.cache_size = stats.size
            metrics.cache_total_hits = stats.total_hits
            metrics.cache_average_age_minutes = round(stats.average_age_minutes, 2)
        log_metrics(metrics)
        result = SearchRunResult(
            query=query,
            urls=urls or [],
            sources=[
                SourceInfo(
                    url=doc.source_url,
                    length=doc.length,
                    fetch_ms=doc.fetch_ms,
                    from_cache=doc.from_cache,
                )
                for doc in documents or []
            ],
            answer=answer,
            model=metrics.model_used,
            metrics=metrics.to_dict(),
            status=status,
            message=message,
        )
        self.last_result = result
        log_event("run_complete", status, query=query, sources=len(result.sources))
        return streaming.run_complete(result)
