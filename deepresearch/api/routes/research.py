from __future__ import annotations

import json

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from deepresearch.api import deps
from deepresearch.config import settings
from deepresearch.models.research import now_timestamp
from deepresearch.models.schemas import (
    ErrorResponse,
    ResearchRequest,
    ResearchResponse,
    RoundRecordResponse,
)
from deepresearch.services import logger as log_service
from deepresearch.services import streaming

router = APIRouter(prefix="/api/research", tags=["research"])

MISSING_QUERY_ERROR = "Missing required parameter: query"


def _error_response(status_code: int, error: str, progress: list[str] | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, progress=progress or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "",
    response_model=ResearchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def run_research(request: ResearchRequest):
    """Run a full deep research and return the consolidated analysis."""
    query = request.query.strip()
    if not query:
        return _error_response(400, MISSING_QUERY_ERROR)

    depth = request.depth if request.depth is not None else settings.research_default_depth
    log_service.log_event("api_research_started", "API research request", query=query[:100], depth=depth)

    progress: list[str] = []
    try:
        orchestrator = deps.build_orchestrator()
        report = await orchestrator.run(
            query,
            query,
            depth,
            on_progress=lambda event: progress.append(event.message),
        )
    except Exception as exc:
        logger.exception(f"API research failed unexpectedly for '{query}'")
        return _error_response(500, f"Internal server error: {exc}", progress)

    if not report.succeeded:
        logger.error(f"API research failed for '{query}': {report.error}")
        return _error_response(500, report.error or "Research failed", progress)

    log_service.log_event("api_research_completed", "API research request completed", query=query[:100])
    return ResearchResponse(
        query=query,
        depth=report.depth,
        analysis=report.analysis,
        search_history=[RoundRecordResponse(**record.to_dict()) for record in report.search_history],
        progress=progress,
        timestamp=now_timestamp(),
    )


@router.get("/stream")
async def stream_research(query: str = "", depth: int | None = None):
    """SSE endpoint that streams research progress events."""
    query = query.strip()
    if not query:
        return _error_response(400, MISSING_QUERY_ERROR)

    effective_depth = depth if depth is not None else settings.research_default_depth

    async def event_generator():
        log_service.log_event("stream_research_started", "Streaming research started", query=query[:100])
        try:
            orchestrator = deps.build_orchestrator()
            async for event in orchestrator.research(query, query, effective_depth):
                yield {"event": event.event.value, "data": json.dumps(event.payload())}
        except Exception as exc:
            logger.exception(f"Streaming research failed unexpectedly for '{query}'")
            failure = streaming.error(f"Internal server error: {exc}")
            yield {"event": failure.event.value, "data": json.dumps(failure.payload())}

    return EventSourceResponse(event_generator())
