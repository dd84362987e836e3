from __future__ import annotations

from pydantic import BaseModel


# --- Requests ---


class ResearchRequest(BaseModel):
    query: str = ""
    depth: int | None = None


# --- Responses ---


class RoundRecordResponse(BaseModel):
    round: int
    query: str


class ResearchResponse(BaseModel):
    success: bool = True
    query: str
    depth: int
    analysis: str
    search_history: list[RoundRecordResponse]
    progress: list[str]
    timestamp: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    progress: list[str] = []
