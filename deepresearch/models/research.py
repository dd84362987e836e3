from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

NEXT_QUERY_START = "<NEXT_QUERY>"
NEXT_QUERY_END = "</NEXT_QUERY>"
_NEXT_QUERY_PATTERN = re.compile(
    re.escape(NEXT_QUERY_START) + r"(.*?)" + re.escape(NEXT_QUERY_END),
    re.DOTALL,
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def extract_next_query(analysis_text: str, default_query: str) -> str:
    """Return the first tagged follow-up query in the analysis, or the default.

    A missing tag or a tag with only whitespace inside yields ``default_query``.
    """
    match = _NEXT_QUERY_PATTERN.search(analysis_text or "")
    if match:
        suggested = match.group(1).strip()
        if suggested:
            return suggested
    return default_query


class SearchMode(str, Enum):
    STANDARD = "standard"
    DEEP = "deep"


@dataclass(frozen=True, slots=True)
class SearchItem:
    title: str
    url: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url, "content": self.content}


@dataclass(frozen=True, slots=True)
class SearchResult:
    query: str
    items: tuple[SearchItem, ...] = ()
    timestamp: str = field(default_factory=now_timestamp)
    error: str | None = None
    mode: SearchMode = SearchMode.STANDARD

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_deep(self) -> bool:
        return self.mode is SearchMode.DEEP

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.items],
            "query": self.query,
            "timestamp": self.timestamp,
            "error": self.error,
            "mode": self.mode.value,
        }


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    text: str
    timestamp: str = field(default_factory=now_timestamp)
    error: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def next_query(self, default_query: str) -> str:
        return extract_next_query(self.text, default_query)


@dataclass(frozen=True, slots=True)
class RoundRecord:
    round: int
    query: str

    def to_dict(self) -> dict[str, Any]:
        return {"round": self.round, "query": self.query}


@dataclass(frozen=True, slots=True)
class RoundAnalysis:
    round: int
    analysis: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"round": self.round, "analysis": self.analysis, "timestamp": self.timestamp}


@dataclass(frozen=True, slots=True)
class ResearchReport:
    """Final output of one research run, successful or not."""

    analysis: str = ""
    search_history: tuple[RoundRecord, ...] = ()
    rounds: tuple[RoundAnalysis, ...] = ()
    depth: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "analysis": self.analysis,
            "rounds": [r.to_dict() for r in self.rounds],
            "search_history": [h.to_dict() for h in self.search_history],
            "depth": self.depth,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
