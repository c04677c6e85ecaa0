from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

RunStatus = Literal["ok", "no_results", "no_documents", "failed"]


class SourceInfo(BaseModel):
    url: str
    length: int
    fetch_ms: int = 0
    from_cache: bool = False


class SearchRunResult(BaseModel):
    query: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    urls: list[str] = Field(default_factory=list)
    sources: list[SourceInfo] = Field(default_factory=list)
    answer: str = ""
    model: str | None = None
    metrics: dict[str, Any] = Field(default_factory=dict)
    status: RunStatus = "ok"
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status != "failed"
