"""LLM analysis client for OpenAI-compatible chat completion endpoints."""
from __future__ import annotations

import time
from typing import Any, Callable, Sequence

import httpx
from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import ExhaustedRetriesError, FormatError, TransportError
from deepresearch.models.research import (
    NEXT_QUERY_END,
    NEXT_QUERY_START,
    AnalysisResult,
    RoundRecord,
    SearchResult,
    now_timestamp,
)
from deepresearch.services import logger as log_service
from deepresearch.services.prompt_store import render_prompt
from deepresearch.tools.retry import RetryPolicy, call_with_retries

PROVIDER_DASHSCOPE = "dashscope"
PROVIDER_OPENAI = "openai"

# DashScope takes the raw key; OpenAI expects a bearer token.
AUTH_HEADER_BUILDERS: dict[str, Callable[[str], str]] = {
    PROVIDER_DASHSCOPE: lambda api_key: api_key,
    PROVIDER_OPENAI: lambda api_key: f"Bearer {api_key}",
}


def authorization_header(provider: str, api_key: str) -> str:
    builder = AUTH_HEADER_BUILDERS.get(provider)
    if builder is None:
        raise ValueError(f"Unsupported analysis provider: {provider}")
    return builder(api_key)


def build_analysis_prompt(
    search_result: SearchResult,
    question: str,
    previous_analysis: str | None,
    round_number: int,
    total_rounds: int,
    history: Sequence[RoundRecord],
) -> str:
    """Assemble the user prompt for one analysis round."""
    sections = [
        render_prompt("analysis.requirements"),
        render_prompt("analysis.persona"),
        render_prompt("analysis.background"),
        render_prompt("analysis.topic", question=question),
    ]
    if previous_analysis:
        sections.append(render_prompt("analysis.previous", previous_analysis=previous_analysis))
    sections.append(
        render_prompt("analysis.progress", round_number=round_number, total_rounds=total_rounds)
    )

    history_lines = [render_prompt("analysis.history_header")]
    history_lines.extend(
        render_prompt("analysis.history_line", round=record.round, query=record.query)
        for record in history
    )
    sections.append("\n".join(history_lines) + "\n")

    result_lines = [render_prompt("analysis.results_header")]
    result_lines.extend(
        render_prompt(
            "analysis.result_item",
            index=index,
            title=item.title,
            url=item.url,
            content=item.content,
        )
        for index, item in enumerate(search_result.items, start=1)
    )
    sections.append("\n".join(result_lines))

    if round_number < total_rounds:
        sections.append(
            render_prompt(
                "analysis.next_query_instruction",
                start_tag=NEXT_QUERY_START,
                end_tag=NEXT_QUERY_END,
            )
        )
    return "\n".join(sections)


class AnalysisExecutor:
    def __init__(
        self,
        api_key: str,
        api_url: str,
        *,
        provider: str = PROVIDER_DASHSCOPE,
        model: str = "qwen-plus-latest",
        temperature: float | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        provider = provider.lower().strip()
        if provider not in AUTH_HEADER_BUILDERS:
            raise ValueError(f"Unsupported analysis provider: {provider}")
        self.api_key = api_key
        self.api_url = api_url
        self.provider = provider
        self.model = model
        self.temperature = settings.analysis_temperature if temperature is None else temperature
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.max_retries,
            base_delay=settings.retry_base_delay,
        )
        self.timeout = timeout or httpx.Timeout(
            settings.http_timeout,
            connect=settings.http_connect_timeout,
        )
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": authorization_header(self.provider, self.api_key),
        }

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": render_prompt("analysis.system_prompt")},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
        }

    async def analyze(
        self,
        search_result: SearchResult,
        question: str,
        previous_analysis: str | None = None,
        round_number: int = 1,
        total_rounds: int = 2,
        history: Sequence[RoundRecord] = (),
    ) -> AnalysisResult:
        """Analyze one round of search results; failures come back in ``error``."""
        logger.info(f"Analyzing search results for round {round_number}/{total_rounds}")
        prompt = build_analysis_prompt(
            search_result,
            question,
            previous_analysis,
            round_number,
            total_rounds,
            history,
        )
        payload = self.build_payload(prompt)

        async def attempt_analysis(attempt: int) -> str:
            t0 = time.monotonic()
            try:
                text = await self._post(payload)
            except (TransportError, FormatError) as exc:
                log_service.log_llm_call(
                    self.model,
                    caller="analysis",
                    duration_ms=int((time.monotonic() - t0) * 1000),
                    attempt=attempt,
                    status="failed",
                    error=str(exc),
                )
                raise
            log_service.log_llm_call(
                self.model,
                caller="analysis",
                duration_ms=int((time.monotonic() - t0) * 1000),
                attempt=attempt,
            )
            return text

        try:
            text = await call_with_retries(
                attempt_analysis,
                policy=self.retry_policy,
                label="analysis",
            )
        except ExhaustedRetriesError as exc:
            logger.error(
                f"Analysis failed after {exc.attempts} attempts "
                f"(round {round_number}, query '{search_result.query}'): {exc.last_error}"
            )
            return AnalysisResult(text="", timestamp=now_timestamp(), error=str(exc.last_error))

        logger.info(f"Analysis complete for round {round_number}")
        return AnalysisResult(text=text, timestamp=now_timestamp())

    async def _post(self, payload: dict[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=self.headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Analysis request failed: {exc}") from exc

        if response.status_code != 200:
            raise TransportError(f"Analysis API request failed, HTTP status: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise FormatError(f"Analysis API returned invalid JSON: {exc}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise FormatError("Invalid analysis API response format") from exc
        if not isinstance(content, str):
            raise FormatError("Invalid analysis API response format")
        return content
