from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import httpx
from loguru import logger

from websearch.models.documents import FetchedDocument
from websearch.tools.page_fetcher import PageFetcher


@dataclass(slots=True)
class RetrievalOutcome:
    documents: list[FetchedDocument] = field(default_factory=list)
    attempted: int = 0

    @property
    def successful(self) -> int:
        return len(self.documents)

    @property
    def cache_hits(self) -> int:
        return sum(1 for doc in self.documents if doc.from_cache)


async def retrieve_all(
    urls: list[str],
    timeout_ms: int,
    *,
    fetcher: PageFetcher,
    max_parallel: int | None = None,
) -> RetrievalOutcome:
    """Fetch every URL concurrently and keep the successes, in input order.

    All tasks start together; each carries its own timeout. The call returns
    only after every task has finished. ``max_parallel`` (when > 0) bounds how
    many requests are in flight at once.
    """
    if not urls:
        return RetrievalOutcome()

    semaphore = asyncio.Semaphore(max_parallel) if max_parallel and max_parallel > 0 else None

    async with httpx.AsyncClient(follow_redirects=True) as client:

        async def run_one(url: str) -> FetchedDocument | None:
            if semaphore is None:
                return await fetcher.fetch(url, timeout_ms, http_client=client)
            async with semaphore:
                return await fetcher.fetch(url, timeout_ms, http_client=client)

        results = await asyncio.gather(
            *(run_one(url) for url in urls),
            return_exceptions=True,
        )

    outcome = RetrievalOutcome(attempted=len(urls))
    for url, item in zip(urls, results):
        if isinstance(item, BaseException):
            if isinstance(item, asyncio.CancelledError):
                raise item
            logger.warning(f"Fetch task for {url} raised: {item!r}")
            continue
        if item is not None:
            outcome.documents.append(item)

    logger.info(
        f"Retrieved {outcome.successful}/{outcome.attempted} documents "
        f"({outcome.cache_hits} from cache)"
    )
    return outcome
