from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import ExhaustedRetriesError, FormatError, TransportError, ValidationError
from deepresearch.models.research import SearchItem, SearchMode, SearchResult, now_timestamp
from deepresearch.services import logger as log_service
from deepresearch.tools.retry import RetryPolicy, call_with_retries

DEFAULT_TITLE = "untitled"
DEFAULT_CONTENT = "no content"


@dataclass(frozen=True, slots=True)
class SearchModeProfile:
    num_results: int
    max_characters: int
    result_cap: int


def default_profiles() -> dict[SearchMode, SearchModeProfile]:
    return {
        SearchMode.STANDARD: SearchModeProfile(
            num_results=settings.search_standard_num_results,
            max_characters=settings.search_standard_max_characters,
            result_cap=settings.search_standard_result_cap,
        ),
        SearchMode.DEEP: SearchModeProfile(
            num_results=settings.search_deep_num_results,
            max_characters=settings.search_deep_max_characters,
            result_cap=settings.search_deep_result_cap,
        ),
    }


def build_request_params(query: str, profile: SearchModeProfile) -> dict[str, Any]:
    return {
        "query": query,
        "type": "auto",
        "contents": {
            "text": {
                "maxCharacters": profile.max_characters,
                "includeHtmlTags": True,
            },
            "livecrawl": "always",
        },
        "num_results": profile.num_results,
    }


def normalize_results(raw_results: list[Any], *, cap: int) -> tuple[SearchItem, ...]:
    """Map provider records to SearchItems, tolerating missing fields."""
    items: list[SearchItem] = []
    for record in raw_results[: max(cap, 0)]:
        if not isinstance(record, dict):
            record = {}
        content = record.get("summary") or record.get("text") or record.get("snippet") or DEFAULT_CONTENT
        items.append(
            SearchItem(
                title=record.get("title") or DEFAULT_TITLE,
                url=record.get("url") or "",
                content=content,
            )
        )
    return tuple(items)


class SearchExecutor:
    """Exa web search client with linear-backoff retries."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str | None = None,
        retry_policy: RetryPolicy | None = None,
        profiles: dict[SearchMode, SearchModeProfile] | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Search API key must not be empty")
        self.api_key = api_key
        self.api_url = api_url or settings.search_api_url
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.max_retries,
            base_delay=settings.retry_base_delay,
        )
        self.profiles = profiles or default_profiles()
        self.timeout = timeout or httpx.Timeout(
            settings.http_timeout,
            connect=settings.http_connect_timeout,
        )
        self._transport = transport
        logger.debug(f"SearchExecutor initialized, API URL: {self.api_url}")

    @property
    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-api-key": self.api_key}

    async def search(self, query: str, deep_mode: bool = False) -> SearchResult:
        """Search once per attempt; failures come back in ``SearchResult.error``."""
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")

        mode = SearchMode.DEEP if deep_mode else SearchMode.STANDARD
        profile = self.profiles[mode]
        params = build_request_params(query, profile)
        logger.info(f"Running {mode.value} search: {query}")

        async def attempt_search(attempt: int) -> tuple[SearchItem, ...]:
            t0 = time.monotonic()
            try:
                payload = await self._post(params)
                items = normalize_results(payload["results"], cap=profile.result_cap)
            except (TransportError, FormatError) as exc:
                log_service.log_search_call(
                    query,
                    mode.value,
                    duration_ms=int((time.monotonic() - t0) * 1000),
                    attempt=attempt,
                    status="failed",
                    error=str(exc),
                )
                raise
            log_service.log_search_call(
                query,
                mode.value,
                results_count=len(items),
                duration_ms=int((time.monotonic() - t0) * 1000),
                attempt=attempt,
            )
            return items

        try:
            items = await call_with_retries(
                attempt_search,
                policy=self.retry_policy,
                label="search",
            )
        except ExhaustedRetriesError as exc:
            logger.error(f"Search failed after {exc.attempts} attempts for '{query}': {exc.last_error}")
            return SearchResult(
                query=query,
                timestamp=now_timestamp(),
                error=str(exc.last_error),
                mode=mode,
            )

        logger.info(f"Search complete, {len(items)} results")
        return SearchResult(query=query, items=items, timestamp=now_timestamp(), mode=mode)

    async def _post(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=params, headers=self.headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Search request failed: {exc}") from exc

        if response.status_code != 200:
            raise TransportError(f"Search API request failed, HTTP status: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise FormatError(f"Search API returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise FormatError("Invalid search API response format")
        return payload
