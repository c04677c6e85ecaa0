from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

import httpx
from loguru import logger

from websearch.errors import ExtractionError, FetchError
from websearch.models.documents import FetchedDocument
from websearch.tools import content_extractor, web_utils
from websearch.tools.page_cache import PageCache

# Desktop browser header set; some sites reject obvious automated clients.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}
HTML_CONTENT_TYPES = ("text/html", "application/xhtml")
MIN_RAW_LENGTH = 100
MIN_TEXT_LENGTH = content_extractor.MIN_TEXT_LENGTH


def _is_html(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(kind in lowered for kind in HTML_CONTENT_TYPES)


class PageFetcher:
    """Fetches one page, extracts readable text, and caches the result.

    Every per-URL failure (network error, timeout, bad status, non-HTML,
    too-short body or text) is logged as a warning and returns None.
    """

    def __init__(
        self,
        cache: PageCache | None = None,
        *,
        max_page_chars: int = 8000,
        min_raw_length: int = MIN_RAW_LENGTH,
        min_text_length: int = MIN_TEXT_LENGTH,
    ):
        self.cache = cache
        self.max_page_chars = max_page_chars
        self.min_raw_length = min_raw_length
        self.min_text_length = min_text_length

    async def fetch(
        self,
        url: str,
        timeout_ms: int,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> FetchedDocument | None:
        started = time.monotonic()

        if self.cache is not None:
            cached = self.cache.get(url)
            if cached is not None:
                logger.debug(f"Cache hit: {url}")
                return FetchedDocument(
                    source_url=url,
                    text=cached,
                    from_cache=True,
                    fetch_ms=int((time.monotonic() - started) * 1000),
                )

        timeout_seconds = max(timeout_ms / 1000.0, 0.001)
        try:
            raw_html = await asyncio.wait_for(
                self._download(url, timeout_seconds, http_client),
                timeout=timeout_seconds,
            )
            # extraction is CPU bound; keep it off the event loop
            text = await asyncio.to_thread(
                content_extractor.extract,
                raw_html,
                min_length=self.min_text_length,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {timeout_ms}ms: {url}")
            return None
        except httpx.TimeoutException:
            logger.warning(f"Timed out after {timeout_ms}ms: {url}")
            return None
        except (FetchError, ExtractionError) as exc:
            logger.warning(f"Skipping {url}: {exc}")
            return None
        except httpx.HTTPError as exc:
            logger.warning(f"Network error for {url}: {exc}")
            return None
        except Exception as exc:
            logger.warning(f"Unexpected error fetching {url}: {exc!r}")
            return None

        cleaned = web_utils.clean_content(text, max_length=self.max_page_chars)
        if len(cleaned) < self.min_text_length:
            logger.warning(
                f"Skipping {url}: cleaned text too short ({len(cleaned)} < {self.min_text_length} chars)"
            )
            return None
        if self.cache is not None:
            self.cache.set(url, cleaned)

        return FetchedDocument(
            source_url=url,
            text=cleaned,
            fetched_at=datetime.now(timezone.utc),
            from_cache=False,
            fetch_ms=int((time.monotonic() - started) * 1000),
        )

    async def _download(
        self,
        url: str,
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None,
    ) -> str:
        async def _do_request(client: httpx.AsyncClient) -> str:
            response = await client.get(
                url,
                headers=BROWSER_HEADERS,
                timeout=timeout_seconds,
                follow_redirects=True,
            )
            if not response.is_success:
                raise FetchError(f"HTTP {response.status_code} {response.reason_phrase}")

            content_type = response.headers.get("content-type", "")
            if not _is_html(content_type):
                raise FetchError(f"Not HTML (content-type={content_type or 'missing'})")

            body = response.text
            if len(body) <= self.min_raw_length:
                raise FetchError(f"Body too short ({len(body)} chars)")
            return body

        if http_client is None:
            async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
                return await _do_request(client)
        return await _do_request(http_client)
