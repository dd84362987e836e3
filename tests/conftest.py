from __future__ import annotations

from typing import Sequence

import pytest

from deepresearch.models.research import (
    AnalysisResult,
    RoundRecord,
    SearchItem,
    SearchMode,
    SearchResult,
)


class FakeSearchExecutor:
    """Records every search and answers from a fixed script."""

    def __init__(self, errors: dict[int, str] | None = None, results_per_call: int = 2):
        self.calls: list[tuple[str, bool]] = []
        self.errors = errors or {}
        self.results_per_call = results_per_call

    async def search(self, query: str, deep_mode: bool = False) -> SearchResult:
        self.calls.append((query, deep_mode))
        call_number = len(self.calls)
        mode = SearchMode.DEEP if deep_mode else SearchMode.STANDARD
        if call_number in self.errors:
            return SearchResult(query=query, error=self.errors[call_number], mode=mode)
        items = tuple(
            SearchItem(title=f"{query} #{i}", url=f"https://example.com/{call_number}/{i}", content="body")
            for i in range(self.results_per_call)
        )
        return SearchResult(query=query, items=items, mode=mode)


class FakeAnalysisExecutor:
    """Returns scripted analysis texts and records the arguments it saw."""

    def __init__(self, texts: Sequence[str] | None = None, errors: dict[int, str] | None = None):
        self.texts = list(texts or [])
        self.errors = errors or {}
        self.calls: list[dict] = []

    async def analyze(
        self,
        search_result: SearchResult,
        question: str,
        previous_analysis: str | None = None,
        round_number: int = 1,
        total_rounds: int = 2,
        history: Sequence[RoundRecord] = (),
    ) -> AnalysisResult:
        self.calls.append(
            {
                "query": search_result.query,
                "question": question,
                "previous_analysis": previous_analysis,
                "round_number": round_number,
                "total_rounds": total_rounds,
                "history": tuple(history),
            }
        )
        call_number = len(self.calls)
        if call_number in self.errors:
            return AnalysisResult(text="", error=self.errors[call_number])
        if call_number <= len(self.texts):
            return AnalysisResult(text=self.texts[call_number - 1])
        return AnalysisResult(text=f"analysis {call_number}")


@pytest.fixture
def fake_search():
    return FakeSearchExecutor()


@pytest.fixture
def fake_analysis():
    return FakeAnalysisExecutor()
