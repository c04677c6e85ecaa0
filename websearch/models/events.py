from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    SEARCH_STARTED = "search_started"
    SEARCH_COMPLETED = "search_completed"
    FETCH_STARTED = "fetch_started"
    DOCUMENT_FETCHED = "document_fetched"
    FETCH_COMPLETED = "fetch_completed"
    SUMMARY_STARTED = "summary_started"
    MODEL_FAILED = "model_failed"
    ANSWER_CHUNK = "answer_chunk"
    RUN_COMPLETE = "run_complete"
    ERROR = "error"


@dataclass
class PipelineEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data, default=str)}\n\n"
