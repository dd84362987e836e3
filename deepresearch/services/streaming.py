from __future__ import annotations

from typing import Any

from deepresearch.models.events import EventType, ProgressEvent


def research_started(query: str, depth: int) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.RESEARCH_STARTED,
        message=f"Starting deep research ({depth} rounds), this may take a few minutes.",
        data={"query": query, "depth": depth},
    )


def round_started(round_number: int, query: str) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.ROUND_STARTED,
        message=f"Deep research round {round_number}. Searching: {query}",
        data={"round": round_number, "query": query},
    )


def search_completed(round_number: int, results_count: int) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.SEARCH_COMPLETED,
        message=f"Found {results_count} results, preparing expert analysis.",
        data={"round": round_number, "results_count": results_count},
    )


def analysis_started(round_number: int) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.ANALYSIS_STARTED,
        message="Expert analysis started...",
        data={"round": round_number},
    )


def analysis_completed(round_number: int) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.ANALYSIS_COMPLETED,
        message=f"Deep research round {round_number} completed.",
        data={"round": round_number},
    )


def next_query(round_number: int, query: str, *, suggested: bool) -> ProgressEvent:
    if suggested:
        message = f"Expert suggestion: research further into {query}"
    else:
        message = f"No follow-up suggested, continuing with: {query}"
    return ProgressEvent(
        event=EventType.NEXT_QUERY,
        message=message,
        data={"round": round_number, "query": query, "suggested": suggested},
    )


def research_complete(report: dict[str, Any]) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.RESEARCH_COMPLETE,
        message="Deep research complete, all round analyses consolidated.",
        data={"report": report},
    )


def error(message: str, round_number: int | None = None) -> ProgressEvent:
    data: dict[str, Any] = {}
    if round_number is not None:
        data["round"] = round_number
    return ProgressEvent(event=EventType.ERROR, message=message, data=data)
