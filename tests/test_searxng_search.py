from __future__ import annotations

import httpx
import pytest

from websearch.errors import SearchError
from websearch.models.documents import SearchResult
from websearch.tools import searxng_search

SEARCH_URL = "http://searx.local/search"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _payload(*urls: str) -> dict:
    return {"query": "q", "results": [{"url": url, "title": f"Title {i}"} for i, url in enumerate(urls)]}


@pytest.mark.asyncio
async def test_search_sends_json_query_and_filters_results():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json=_payload(
                "https://en.wikipedia.org/wiki/Qubit",
                "https://www.youtube.com/watch?v=abc",
                "https://en.wikipedia.org/wiki/Qubit",
                "https://example.com/paper.pdf",
                "https://physics.example.org/qubits",
            ),
        )

    async with _client(handler) as client:
        urls = await searxng_search.search(
            "what is a qubit", 5, 5000, search_url=SEARCH_URL, http_client=client
        )

    assert urls == ["https://en.wikipedia.org/wiki/Qubit", "https://physics.example.org/qubits"]
    request = captured[0]
    assert request.url.params["q"] == "what is a qubit"
    assert request.url.params["format"] == "json"
    assert request.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_search_truncates_to_max_results_in_rank_order():
    urls_in = [f"https://site{i}.example.com/page" for i in range(10)]

    async with _client(lambda request: httpx.Response(200, json=_payload(*urls_in))) as client:
        urls = await searxng_search.search("q", 3, 5000, search_url=SEARCH_URL, http_client=client)

    assert urls == urls_in[:3]


@pytest.mark.asyncio
async def test_search_with_empty_results_is_not_an_error():
    async with _client(lambda request: httpx.Response(200, json={"results": []})) as client:
        urls = await searxng_search.search("q", 5, 5000, search_url=SEARCH_URL, http_client=client)

    assert urls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="internal error"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"answers": []}),
    ],
    ids=["http-500", "not-json", "json-array", "missing-results"],
)
async def test_search_raises_search_error_for_bad_responses(response):
    async with _client(lambda request: response) as client:
        with pytest.raises(SearchError) as exc_info:
            await searxng_search.search("q", 5, 5000, search_url=SEARCH_URL, http_client=client)

    assert SEARCH_URL in str(exc_info.value)


@pytest.mark.asyncio
async def test_search_raises_search_error_when_backend_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(SearchError, match="reachable"):
            await searxng_search.search("q", 5, 5000, search_url=SEARCH_URL, http_client=client)


def test_parse_results_skips_items_without_url():
    results = searxng_search.parse_results(
        {"results": [{"title": "no url"}, "garbage", {"url": " https://a.example.com ", "engine": "ddg"}]}
    )

    assert results == [SearchResult(url="https://a.example.com", engine="ddg")]


def test_select_candidate_urls_clamps_limit():
    results = [SearchResult(url=f"https://s{i}.example.com") for i in range(30)]

    assert len(searxng_search.select_candidate_urls(results, 0)) == 1
    assert len(searxng_search.select_candidate_urls(results, 50)) == 20
