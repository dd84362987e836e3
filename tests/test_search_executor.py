from __future__ import annotations

import json

import httpx
import pytest

from deepresearch.exceptions import ValidationError
from deepresearch.models.research import SearchMode
from deepresearch.tools.exa_search import (
    SearchExecutor,
    SearchModeProfile,
    build_request_params,
    normalize_results,
)
from deepresearch.tools.retry import RetryPolicy

NO_WAIT = RetryPolicy(max_attempts=3, base_delay=0)


def make_executor(handler, **kwargs) -> SearchExecutor:
    return SearchExecutor(
        "exa-key",
        api_url="https://search.test/search",
        retry_policy=NO_WAIT,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_build_request_params_matches_provider_shape():
    params = build_request_params("quantum", SearchModeProfile(num_results=13, max_characters=1500, result_cap=15))
    assert params == {
        "query": "quantum",
        "type": "auto",
        "contents": {
            "text": {"maxCharacters": 1500, "includeHtmlTags": True},
            "livecrawl": "always",
        },
        "num_results": 13,
    }


def test_normalize_results_applies_fallbacks_and_cap():
    raw = [
        {"title": "A", "url": "https://a.com", "summary": "sum", "text": "txt"},
        {"text": "only text"},
        {"snippet": "snip"},
        {},
        "not-a-dict",
    ]
    items = normalize_results(raw, cap=4)

    assert len(items) == 4
    assert (items[0].title, items[0].url, items[0].content) == ("A", "https://a.com", "sum")
    assert (items[1].title, items[1].url, items[1].content) == ("untitled", "", "only text")
    assert items[2].content == "snip"
    assert items[3].content == "no content"


@pytest.mark.asyncio
async def test_search_posts_deep_mode_request_and_normalizes():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        results = [{"title": f"r{i}", "url": f"https://r/{i}", "text": "t"} for i in range(20)]
        return httpx.Response(200, json={"results": results})

    executor = make_executor(handler)
    result = await executor.search("quantum computing advances", deep_mode=True)

    assert not result.has_error
    assert result.mode is SearchMode.DEEP
    assert result.query == "quantum computing advances"
    assert len(result.items) == 15
    assert len(seen) == 1
    body = json.loads(seen[0].content)
    assert body["num_results"] == 13
    assert body["contents"]["text"]["maxCharacters"] == 1500
    assert seen[0].headers["x-api-key"] == "exa-key"
    assert seen[0].method == "POST"


@pytest.mark.asyncio
async def test_search_standard_mode_uses_smaller_profile():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        results = [{"title": f"r{i}"} for i in range(12)]
        return httpx.Response(200, json={"results": results})

    result = await make_executor(handler).search("q")

    assert result.mode is SearchMode.STANDARD
    assert len(result.items) == 10
    assert seen[0]["num_results"] == 10
    assert seen[0]["contents"]["text"]["maxCharacters"] == 1000


@pytest.mark.asyncio
async def test_search_retries_then_succeeds():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(502)
        if calls["n"] == 2:
            return httpx.Response(200, text="not json")
        return httpx.Response(200, json={"results": [{"title": "ok"}]})

    result = await make_executor(handler).search("q", deep_mode=True)

    assert calls["n"] == 3
    assert not result.has_error
    assert result.items[0].title == "ok"


@pytest.mark.asyncio
async def test_search_returns_error_result_after_three_failures():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(500)

    result = await make_executor(handler).search("q", deep_mode=True)

    assert calls["n"] == 3
    assert result.has_error
    assert "500" in result.error
    assert result.items == ()


@pytest.mark.asyncio
async def test_search_treats_missing_results_array_as_failure():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, json={"data": []})

    result = await make_executor(handler).search("q")

    assert calls["n"] == 3
    assert result.error == "Invalid search API response format"


@pytest.mark.asyncio
async def test_search_wraps_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_executor(handler).search("q")

    assert result.has_error
    assert "connection refused" in result.error


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   "])
async def test_search_rejects_empty_query_without_network(query):
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, json={"results": []})

    with pytest.raises(ValidationError):
        await make_executor(handler).search(query, deep_mode=True)
    assert calls["n"] == 0


def test_search_executor_requires_api_key():
    with pytest.raises(ValueError):
        SearchExecutor("")
