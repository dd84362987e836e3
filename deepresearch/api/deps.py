from __future__ import annotations

from deepresearch.agents.orchestrator import ResearchOrchestrator
from deepresearch.config import settings
from deepresearch.services.analysis_executor import AnalysisExecutor
from deepresearch.tools.exa_search import SearchExecutor


def build_orchestrator() -> ResearchOrchestrator:
    """Build a fresh orchestrator and clients from settings, one per run."""
    search_executor = SearchExecutor(settings.exa_api_key, api_url=settings.search_api_url)
    analysis_executor = AnalysisExecutor(
        settings.analysis_api_key,
        settings.analysis_api_url,
        provider=settings.analysis_provider,
        model=settings.analysis_model,
    )
    return ResearchOrchestrator(search_executor, analysis_executor)
