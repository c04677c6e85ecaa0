from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup
from loguru import logger

from websearch.errors import ExtractionError

MIN_TEXT_LENGTH = 50


@dataclass
class ExtractedContent:
    text: str
    method: str


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(
        raw_html,
        include_comments=False,
        include_tables=False,
        include_images=False,
        include_links=False,
        output_format="txt",
    )
    if not isinstance(extracted, str):
        return ""
    return _normalize_text(extracted)


def _parse_readabilipy_payload(payload: dict[str, Any]) -> str:
    plain_text = payload.get("plain_text")
    if isinstance(plain_text, list):
        chunks: list[str] = []
        for item in plain_text:
            if isinstance(item, str):
                chunks.append(item)
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                chunks.append(item["text"])
        return _normalize_text("\n\n".join(chunks))
    if isinstance(plain_text, str):
        return _normalize_text(plain_text)
    return ""


def _extract_with_readabilipy(raw_html: str) -> str:
    from readabilipy import simple_json_from_html_string

    # use_readability=False keeps this in pure Python (no node.js dependency)
    payload = simple_json_from_html_string(raw_html, use_readability=False)
    if not isinstance(payload, dict):
        return ""
    return _parse_readabilipy_payload(payload)


def _extract_with_soup(raw_html: str) -> str:
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "header", "footer", "form", "svg", "iframe"]):
        tag.decompose()
    body = soup.body or soup
    return _normalize_text(body.get_text("\n"))


EXTRACTORS = (
    ("trafilatura", _extract_with_trafilatura),
    ("readabilipy", _extract_with_readabilipy),
    ("soup", _extract_with_soup),
)


def extract_main_content(raw_html: str, *, min_length: int = MIN_TEXT_LENGTH) -> ExtractedContent:
    """Extract the primary article text from an HTML document.

    Tries trafilatura first, then readabilipy, then a plain BeautifulSoup text
    pass. Raises ExtractionError when nothing usable comes out or the best
    result is shorter than ``min_length``.
    """
    best_text = ""
    best_method = ""
    errors: list[str] = []
    for method, fn in EXTRACTORS:
        try:
            text = fn(raw_html)
        except Exception as exc:
            errors.append(f"{method}: {exc}")
            continue
        if len(text) >= min_length:
            logger.debug(f"Extracted {len(text)} chars with {method}")
            return ExtractedContent(text=text, method=method)
        if len(text) > len(best_text):
            best_text, best_method = text, method

    if not best_text:
        detail = "; ".join(errors) if errors else "no text found"
        raise ExtractionError(f"Extraction produced no text ({detail})")
    raise ExtractionError(
        f"Extracted text too short: {len(best_text)} < {min_length} chars (method={best_method})"
    )


def extract(raw_html: str, *, min_length: int = MIN_TEXT_LENGTH) -> str:
    return extract_main_content(raw_html, min_length=min_length).text
