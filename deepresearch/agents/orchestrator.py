"""Multi-round research loop: search, analyze, pick the next query, repeat."""
from __future__ import annotations

from typing import AsyncGenerator, Callable, Protocol, Sequence

from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import ValidationError
from deepresearch.models.events import ProgressEvent
from deepresearch.models.research import (
    AnalysisResult,
    ResearchReport,
    RoundAnalysis,
    RoundRecord,
    SearchResult,
    extract_next_query,
)
from deepresearch.services import logger as log_service
from deepresearch.services import streaming

ProgressCallback = Callable[[ProgressEvent], None]


class SearchClient(Protocol):
    async def search(self, query: str, deep_mode: bool = False) -> SearchResult: ...


class AnalysisClient(Protocol):
    async def analyze(
        self,
        search_result: SearchResult,
        question: str,
        previous_analysis: str | None = None,
        round_number: int = 1,
        total_rounds: int = 2,
        history: Sequence[RoundRecord] = (),
    ) -> AnalysisResult: ...


def clamp_depth(depth: int, *, min_depth: int = 2, max_depth: int = 10) -> int:
    return min(max(min_depth, int(depth)), max_depth)


def consolidate_analysis(rounds: Sequence[RoundAnalysis]) -> str:
    parts = [f"Deep research summary - based on {len(rounds)} rounds of iterative analysis\n\n"]
    for index, round_analysis in enumerate(rounds, start=1):
        parts.append(f"Round {index} analysis:\n")
        parts.append(f"{round_analysis.analysis}\n\n")
    return "".join(parts)


class ResearchOrchestrator:
    """Drives the search/analysis rounds for one research question.

    ``research`` is an async generator of progress events; ``run`` wraps it for
    callers that want a callback and the final report. Round state lives in
    local variables of each ``research`` call, so one instance never leaks
    history between runs.
    """

    def __init__(
        self,
        search_executor: SearchClient,
        analysis_executor: AnalysisClient,
        *,
        min_depth: int | None = None,
        max_depth: int | None = None,
    ):
        self.search_executor = search_executor
        self.analysis_executor = analysis_executor
        self.min_depth = settings.research_min_depth if min_depth is None else min_depth
        self.max_depth = settings.research_max_depth if max_depth is None else max_depth
        self.report: ResearchReport | None = None

    async def run(
        self,
        initial_query: str,
        original_question: str,
        depth: int = 2,
        on_progress: ProgressCallback | None = None,
    ) -> ResearchReport:
        async for event in self.research(initial_query, original_question, depth):
            if on_progress is not None:
                on_progress(event)
        assert self.report is not None
        return self.report

    async def research(
        self,
        initial_query: str,
        original_question: str,
        depth: int = 2,
    ) -> AsyncGenerator[ProgressEvent, None]:
        if not initial_query or not initial_query.strip():
            raise ValidationError("Research query must not be empty")

        self.report = None
        depth = clamp_depth(depth, min_depth=self.min_depth, max_depth=self.max_depth)
        logger.info(f"Starting deep research. Query: '{initial_query}', depth: {depth}")
        yield streaming.research_started(initial_query, depth)

        history: list[RoundRecord] = [RoundRecord(round=1, query=initial_query)]
        rounds: list[RoundAnalysis] = []
        current_query = initial_query
        previous_analysis: str | None = None

        for round_number in range(1, depth + 1):
            yield streaming.round_started(round_number, current_query)
            log_service.log_research_step(round_number, "search", "started", {"query": current_query})

            search_result = await self.search_executor.search(current_query, deep_mode=True)
            if search_result.has_error:
                message = f"Round {round_number} search failed: {search_result.error}"
                log_service.log_research_step(
                    round_number, "search", "failed", {"query": current_query, "error": search_result.error}
                )
                yield streaming.error(message, round_number)
                self.report = ResearchReport(search_history=tuple(history), depth=depth, error=message)
                return

            results_count = len(search_result.items)
            log_service.log_research_step(round_number, "search", "completed", {"results_count": results_count})
            yield streaming.search_completed(round_number, results_count)

            yield streaming.analysis_started(round_number)
            analysis_result = await self.analysis_executor.analyze(
                search_result,
                original_question,
                previous_analysis,
                round_number,
                depth,
                tuple(history),
            )
            if analysis_result.has_error:
                message = f"Round {round_number} analysis failed: {analysis_result.error}"
                log_service.log_research_step(
                    round_number, "analysis", "failed", {"query": current_query, "error": analysis_result.error}
                )
                yield streaming.error(message, round_number)
                self.report = ResearchReport(
                    search_history=tuple(history),
                    rounds=tuple(rounds),
                    depth=depth,
                    error=message,
                )
                return

            rounds.append(
                RoundAnalysis(
                    round=round_number,
                    analysis=analysis_result.text,
                    timestamp=analysis_result.timestamp,
                )
            )
            previous_analysis = analysis_result.text
            log_service.log_research_step(round_number, "analysis", "completed")
            yield streaming.analysis_completed(round_number)

            if round_number < depth:
                # Falls back to the initial query, not the one just searched.
                suggested_query = extract_next_query(analysis_result.text, "")
                suggested = bool(suggested_query)
                next_query = suggested_query or initial_query
                if suggested:
                    logger.info(f"Next round query extracted: {next_query}")
                else:
                    logger.info("No next query tag found, reusing the initial query")
                current_query = next_query
                history.append(RoundRecord(round=round_number + 1, query=next_query))
                yield streaming.next_query(round_number, next_query, suggested=suggested)

        self.report = ResearchReport(
            analysis=consolidate_analysis(rounds),
            search_history=tuple(history),
            rounds=tuple(rounds),
            depth=depth,
        )
        logger.info(f"Deep research complete after {depth} rounds")
        yield streaming.research_complete(self.report.to_dict())
