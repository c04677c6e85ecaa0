from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

SOURCE_SEPARATOR = "─" * 80


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SearchResult:
    url: str
    title: str = ""
    content: str = ""
    engine: str = ""


@dataclass(slots=True)
class FetchedDocument:
    source_url: str
    text: str
    fetched_at: datetime = field(default_factory=_utc_now)
    from_cache: bool = False
    fetch_ms: int = 0

    @property
    def length(self) -> int:
        return len(self.text)

    def formatted(self) -> str:
        """Text with source attribution, as placed in the summarization prompt."""
        return f"Source: {self.source_url}\n{self.text}\n{SOURCE_SEPARATOR}\n"
