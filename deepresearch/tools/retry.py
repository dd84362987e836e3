from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from deepresearch.exceptions import RETRYABLE_ERRORS, ExhaustedRetriesError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Linear backoff: the wait after attempt N is ``base_delay * N``."""
        return max(self.base_delay, 0.0) * attempt


async def call_with_retries(
    operation: Callable[[int], Awaitable[T]],
    *,
    policy: RetryPolicy,
    label: str,
) -> T:
    """Run ``operation(attempt)`` until it succeeds or the policy is exhausted.

    Only retryable errors are retried. Anything else propagates on the first
    attempt.
    """
    max_attempts = max(int(policy.max_attempts), 1)
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(attempt)
        except RETRYABLE_ERRORS as exc:
            last_error = exc
            logger.warning(f"{label} attempt {attempt}/{max_attempts} failed: {exc}")
            if attempt < max_attempts:
                await asyncio.sleep(policy.delay_for(attempt))

    raise ExhaustedRetriesError(label, max_attempts, last_error)
