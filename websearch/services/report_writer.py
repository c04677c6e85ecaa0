"""Render a SearchRunResult as json, markdown, html or plain text."""
from __future__ import annotations

import html
from pathlib import Path

from loguru import logger

from websearch.config import OUTPUT_FORMATS
from websearch.models.schemas import SearchRunResult

EXTENSION_FORMATS = {
    ".json": "json",
    ".md": "markdown",
    ".markdown": "markdown",
    ".html": "html",
    ".htm": "html",
    ".txt": "text",
    ".text": "text",
}

METRIC_LABELS = (
    ("total_duration_ms", "Total time (ms)"),
    ("search_duration_ms", "Search time (ms)"),
    ("fetch_duration_ms", "Fetch time (ms)"),
    ("ai_duration_ms", "AI time (ms)"),
    ("total_urls", "URLs found"),
    ("successful_urls", "URLs processed"),
    ("cache_hits", "Cache hits"),
    ("cache_size", "Cache entries"),
    ("total_tokens", "Tokens"),
    ("model_used", "Model"),
)


def detect_format(path: str | Path) -> str | None:
    return EXTENSION_FORMATS.get(Path(path).suffix.lower())


def _metric_rows(result: SearchRunResult) -> list[tuple[str, str]]:
    return [
        (label, str(result.metrics[key]))
        for key, label in METRIC_LABELS
        if result.metrics.get(key) is not None
    ]


def render_text(result: SearchRunResult) -> str:
    lines = [
        f"Query: {result.query}",
        f"Date: {result.timestamp.isoformat()}",
        f"Status: {result.status}",
    ]
    if result.message:
        lines.append(result.message)
    lines += ["", "Answer:", result.answer or "(no answer)", "", "Sources:"]
    if result.sources:
        lines += [f"  {i}. {source.url}" for i, source in enumerate(result.sources, 1)]
    else:
        lines.append("  (none)")
    lines += ["", "Metrics:"]
    lines += [f"  {label}: {value}" for label, value in _metric_rows(result)]
    return "\n".join(lines) + "\n"


def render_markdown(result: SearchRunResult) -> str:
    lines = [
        f"# {result.query}",
        "",
        f"*{result.timestamp.isoformat()}* · status: `{result.status}`",
        "",
    ]
    if result.message:
        lines += [f"> {result.message}", ""]
    lines += ["## Answer", "", result.answer or "_No answer._", "", "## Sources", ""]
    if result.sources:
        lines += [
            f"{i}. <{source.url}>{' (cached)' if source.from_cache else ''}"
            for i, source in enumerate(result.sources, 1)
        ]
    else:
        lines.append("_None._")
    lines += ["", "## Metrics", "", "| Metric | Value |", "|---|---|"]
    lines += [f"| {label} | {value} |" for label, value in _metric_rows(result)]
    return "\n".join(lines) + "\n"


def render_html(result: SearchRunResult) -> str:
    esc = html.escape
    answer = "".join(
        f"<p>{esc(paragraph)}</p>\n" for paragraph in result.answer.split("\n\n") if paragraph.strip()
    ) or "<p><em>No answer.</em></p>\n"
    sources = "".join(
        f'<li><a href="{esc(source.url, quote=True)}">{esc(source.url)}</a></li>\n'
        for source in result.sources
    )
    metrics = "".join(
        f"<tr><th>{esc(label)}</th><td>{esc(value)}</td></tr>\n"
        for label, value in _metric_rows(result)
    )
    message = f"<p class=\"message\">{esc(result.message)}</p>\n" if result.message else ""
    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{esc(result.query)}</title>\n"
        "</head>\n<body>\n"
        f"<h1>{esc(result.query)}</h1>\n"
        f"<p><small>{esc(result.timestamp.isoformat())} &middot; {esc(result.status)}</small></p>\n"
        f"{message}"
        f"<h2>Answer</h2>\n{answer}"
        f"<h2>Sources</h2>\n<ol>\n{sources}</ol>\n"
        f"<h2>Metrics</h2>\n<table>\n{metrics}</table>\n"
        "</body>\n</html>\n"
    )


def render_report(result: SearchRunResult, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return result.model_dump_json(indent=2)
    if fmt == "markdown":
        return render_markdown(result)
    if fmt == "html":
        return render_html(result)
    if fmt in ("text", "console"):
        return render_text(result)
    raise ValueError(f"Unknown output format {fmt!r}; expected one of {OUTPUT_FORMATS}")


def write_report(result: SearchRunResult, path: str | Path, fmt: str | None = None) -> Path:
    """Write the report to ``path``; the format defaults to the file extension, then text."""
    target = Path(path)
    fmt = fmt or detect_format(target) or "text"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_report(result, fmt), encoding="utf-8")
    logger.info(f"Saved {fmt} report to {target}")
    return target
