from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from websearch.config import MAX_RESULTS_CEILING
from websearch.errors import SearchError
from websearch.models.documents import SearchResult
from websearch.tools import web_utils


def parse_results(payload: Any) -> list[SearchResult]:
    """Map a SearXNG JSON payload to SearchResults, preserving backend order."""
    if not isinstance(payload, dict):
        raise ValueError("response is not a JSON object")
    raw_results = payload.get("results")
    if not isinstance(raw_results, list):
        raise ValueError("response has no 'results' list")

    mapped: list[SearchResult] = []
    for item in raw_results:
        if not isinstance(item, dict):
            continue
        url = item.get("url")
        if not isinstance(url, str) or not url.strip():
            continue
        mapped.append(
            SearchResult(
                url=url.strip(),
                title=str(item.get("title") or ""),
                content=str(item.get("content") or ""),
                engine=str(item.get("engine") or ""),
            )
        )
    return mapped


def select_candidate_urls(results: list[SearchResult], max_results: int) -> list[str]:
    """Filter, de-duplicate and truncate result URLs in rank order."""
    limit = min(max(int(max_results), 1), MAX_RESULTS_CEILING)
    urls: list[str] = []
    seen: set[str] = set()
    for result in results:
        if not web_utils.is_eligible(result.url):
            logger.debug(f"Filtered out: {result.url}")
            continue
        if result.url in seen:
            continue
        seen.add(result.url)
        urls.append(result.url)
        if len(urls) >= limit:
            break
    return urls


async def search_results(
    query: str,
    *,
    search_url: str,
    timeout_ms: int,
    http_client: httpx.AsyncClient | None = None,
) -> list[SearchResult]:
    """Run one SearXNG query. Any transport or payload problem raises SearchError."""
    params = {"q": query, "format": "json"}
    headers = {"Accept": "application/json"}
    timeout_seconds = max(timeout_ms / 1000.0, 0.001)

    async def _do_request(client: httpx.AsyncClient) -> httpx.Response:
        return await client.get(search_url, params=params, headers=headers, timeout=timeout_seconds)

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await _do_request(client)
        else:
            response = await _do_request(http_client)
    except httpx.TimeoutException as exc:
        raise SearchError(f"Search request timed out after {timeout_ms}ms.", search_url=search_url) from exc
    except httpx.HTTPError as exc:
        raise SearchError(f"Search request failed: {exc}.", search_url=search_url) from exc

    if not response.is_success:
        raise SearchError(
            f"Search backend returned HTTP {response.status_code}.",
            search_url=search_url,
        )

    try:
        return parse_results(response.json())
    except (json.JSONDecodeError, ValueError) as exc:
        raise SearchError(f"Search backend returned unusable JSON: {exc}.", search_url=search_url) from exc


async def search(
    query: str,
    max_results: int,
    timeout_ms: int,
    *,
    search_url: str,
    http_client: httpx.AsyncClient | None = None,
) -> list[str]:
    """Return candidate URLs for ``query``: eligible, unique, at most ``max_results``."""
    results = await search_results(
        query,
        search_url=search_url,
        timeout_ms=timeout_ms,
        http_client=http_client,
    )
    urls = select_candidate_urls(results, max_results)
    logger.info(f"Search returned {len(results)} results, {len(urls)} eligible URLs")
    return urls
