from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from deepresearch.exceptions import ExhaustedRetriesError, FormatError, TransportError, ValidationError
from deepresearch.tools.retry import RetryPolicy, call_with_retries


def flaky(failures: int, exc_type: type[Exception] = TransportError):
    attempts: list[int] = []

    async def operation(attempt: int) -> str:
        attempts.append(attempt)
        if attempt <= failures:
            raise exc_type(f"failure {attempt}")
        return "ok"

    return operation, attempts


def test_retry_policy_delay_is_linear():
    policy = RetryPolicy(max_attempts=3, base_delay=1.5)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_call_with_retries_succeeds_when_failures_below_limit(failures):
    operation, attempts = flaky(failures)
    with patch("deepresearch.tools.retry.asyncio.sleep", new=AsyncMock()):
        result = await call_with_retries(operation, policy=RetryPolicy(), label="test")

    assert result == "ok"
    assert attempts == list(range(1, failures + 2))


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [3, 5])
async def test_call_with_retries_exhausts_after_three_attempts(failures):
    operation, attempts = flaky(failures, FormatError)
    with patch("deepresearch.tools.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(ExhaustedRetriesError) as excinfo:
            await call_with_retries(operation, policy=RetryPolicy(base_delay=1.0), label="test")

    assert attempts == [1, 2, 3]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, FormatError)
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_call_with_retries_does_not_retry_validation_errors():
    operation, attempts = flaky(1, ValidationError)
    with pytest.raises(ValidationError):
        await call_with_retries(operation, policy=RetryPolicy(), label="test")
    assert attempts == [1]
