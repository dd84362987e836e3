from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    RESEARCH_STARTED = "research_started"
    ROUND_STARTED = "round_started"
    SEARCH_COMPLETED = "search_completed"
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    NEXT_QUERY = "next_query"
    RESEARCH_COMPLETE = "research_complete"
    ERROR = "error"


@dataclass
class ProgressEvent:
    event: EventType
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return {"message": self.message, **self.data}

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.payload())}\n\n"
