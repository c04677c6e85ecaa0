from __future__ import annotations

import time
from dataclasses import asdict, dataclass

from loguru import logger


@dataclass
class RetrievalMetrics:
    """Per-run counters and stage timings, read at report time."""

    total_urls: int = 0
    successful_urls: int = 0
    cache_hits: int = 0
    search_duration_ms: int = 0
    fetch_duration_ms: int = 0
    ai_duration_ms: int = 0
    total_duration_ms: int = 0
    total_tokens: int = 0
    model_used: str | None = None
    cache_size: int = 0
    cache_total_hits: int = 0
    cache_average_age_minutes: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class StageTimer:
    """Context manager measuring a stage in whole milliseconds.

    A stage that ran reports at least 1 ms.
    """

    def __init__(self) -> None:
        self.started: float | None = None
        self.elapsed_ms: int = 0

    def __enter__(self) -> "StageTimer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> "StageTimer":
        self.started = time.perf_counter()
        return self

    def stop(self) -> int:
        if self.started is not None:
            self.elapsed_ms = max(int((time.perf_counter() - self.started) * 1000), 1)
        return self.elapsed_ms


def log_metrics(metrics: RetrievalMetrics) -> None:
    logger.info(f"METRICS: {metrics.to_dict()}")


def format_metrics(metrics: RetrievalMetrics) -> str:
    lines = [
        "Performance metrics:",
        f"  Total time:   {metrics.total_duration_ms}ms",
        f"  Search time:  {metrics.search_duration_ms}ms",
        f"  Fetch time:   {metrics.fetch_duration_ms}ms",
        f"  AI time:      {metrics.ai_duration_ms}ms",
        f"  URLs:         {metrics.successful_urls}/{metrics.total_urls} processed",
        f"  Cache hits:   {metrics.cache_hits}",
        f"  Cache:        {metrics.cache_size} entries, {metrics.cache_total_hits} hits, "
        f"avg age {metrics.cache_average_age_minutes:.1f} min",
        f"  Tokens:       {metrics.total_tokens}",
    ]
    if metrics.model_used:
        lines.append(f"  Model:        {metrics.model_used}")
    return "\n".join(lines)
