from __future__ import annotations

import pytest

from websearch.errors import ExtractionError
from websearch.tools import content_extractor

ARTICLE_BODY = " ".join(["Quantum computers use qubits to represent information."] * 10)


def _set_extractors(monkeypatch, trafilatura="", readabilipy="", soup=""):
    def const(value):
        def fn(_raw_html):
            if isinstance(value, Exception):
                raise value
            return value

        return fn

    monkeypatch.setattr(
        content_extractor,
        "EXTRACTORS",
        (
            ("trafilatura", const(trafilatura)),
            ("readabilipy", const(readabilipy)),
            ("soup", const(soup)),
        ),
    )


def test_extract_main_content_uses_trafilatura_first(monkeypatch):
    _set_extractors(monkeypatch, trafilatura=ARTICLE_BODY, readabilipy="other text " * 20)

    result = content_extractor.extract_main_content(
        "<html><head><title>Article</title></head><body>Body</body></html>"
    )

    assert result.method == "trafilatura"
    assert "qubits" in result.text


def test_successful_extraction_does_not_reparse_html(monkeypatch):
    _set_extractors(monkeypatch, trafilatura=ARTICLE_BODY)

    def no_soup(*_args, **_kwargs):
        raise AssertionError("html must not be re-parsed after a successful extraction")

    monkeypatch.setattr(content_extractor, "BeautifulSoup", no_soup)

    result = content_extractor.extract_main_content("<html><head><title>Article</title></head><body>Body</body></html>")

    assert result == content_extractor.ExtractedContent(text=ARTICLE_BODY, method="trafilatura")


def test_extract_main_content_falls_back_in_order(monkeypatch):
    _set_extractors(monkeypatch, trafilatura=RuntimeError("parser crashed"), readabilipy="", soup=ARTICLE_BODY)

    result = content_extractor.extract_main_content("<html><body>Body</body></html>")

    assert result.method == "soup"
    assert result.text == ARTICLE_BODY


def test_extract_raises_when_no_text(monkeypatch):
    _set_extractors(monkeypatch)

    with pytest.raises(ExtractionError, match="no text"):
        content_extractor.extract("<html><body></body></html>")


def test_extract_raises_when_text_too_short(monkeypatch):
    _set_extractors(monkeypatch, trafilatura="short text")

    with pytest.raises(ExtractionError, match="too short"):
        content_extractor.extract("<html><body>short text</body></html>", min_length=50)


def test_parse_readabilipy_payload_handles_plain_text_dicts():
    payload = {
        "title": "Readability Title",
        "plain_text": [
            {"text": "Line one"},
            {"text": "Line two"},
            "Line three",
            {"unexpected": True},
        ],
    }

    assert content_extractor._parse_readabilipy_payload(payload) == "Line one\n\nLine two\n\nLine three"


def test_soup_extractor_drops_scripts_and_navigation():
    raw_html = (
        "<html><head><script>var tracking = 1;</script></head><body>"
        "<nav>Home | About</nav><p>Readable paragraph.</p><footer>Copyright</footer>"
        "</body></html>"
    )

    text = content_extractor._extract_with_soup(raw_html)

    assert text == "Readable paragraph."
