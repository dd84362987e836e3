"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from deepresearch.config import settings

# Configure loguru
LOG_DIR = Path(settings.log_dir)
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Remove default handler
logger.remove()

# Add console handler with color
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

# Add file handler
logger.add(
    LOG_DIR / "deepresearch_{time:YYYY-MM-DD}.log",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
    rotation="00:00",  # New file at midnight
    retention="7 days",
    compression="zip",
)

# Reduce noise from framework/network libraries
for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "hpack",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_llm_call(
    model: str,
    caller: str,
    duration_ms: int = 0,
    attempt: int = 1,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log an LLM API call."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "model": model,
        "caller": caller,
        "duration_ms": duration_ms,
        "attempt": attempt,
        "status": status,
        "error": error,
    }
    if error:
        logger.warning(f"LLM_CALL_FAILED: {call_data}")
    else:
        logger.info(f"LLM_CALL: {call_data}")


def log_search_call(
    query: str,
    mode: str,
    results_count: int = 0,
    duration_ms: int = 0,
    attempt: int = 1,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log a search provider call."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "query": query[:200],
        "mode": mode,
        "results_count": results_count,
        "duration_ms": duration_ms,
        "attempt": attempt,
        "status": status,
        "error": error,
    }
    if error:
        logger.warning(f"SEARCH_CALL_FAILED: {call_data}")
    else:
        logger.info(f"SEARCH_CALL: {call_data}")


def log_research_step(
    round_number: int,
    step_type: str,
    status: str,
    data: Optional[dict] = None,
) -> None:
    """Log a research step."""
    step_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "round": round_number,
        "step_type": step_type,
        "status": status,
        "data": data,
    }
    if status == "failed":
        logger.error(f"RESEARCH_STEP: {step_data}")
    else:
        logger.info(f"RESEARCH_STEP: {step_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
